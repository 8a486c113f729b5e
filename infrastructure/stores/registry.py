import logging
from typing import TYPE_CHECKING

from infrastructure.config.models import StoreBackend

if TYPE_CHECKING:
    from .base import TermStore

logger = logging.getLogger(__name__)

# Backend -> Store class
_STORE_REGISTRY: dict[StoreBackend, type["TermStore"]] = {}


def register_store(backend: StoreBackend, store_cls: type["TermStore"], *, override: bool = False) -> None:
    """Register a store class for a backend.

    This is the plugin hook: store modules call this at import time.
    """
    if (backend in _STORE_REGISTRY) and not override:
        existing = _STORE_REGISTRY[backend]
        raise RuntimeError(
            f"Store already registered for backend={backend.value}: {existing.__name__}. "
            f"Use override=True to replace."
        )
    _STORE_REGISTRY[backend] = store_cls
    logger.debug("Registered store for backend=%s: %s", backend.value, store_cls.__name__)


def get_store_class(backend: StoreBackend) -> type["TermStore"] | None:
    """Return the registered store class (or None if not registered yet)."""
    return _STORE_REGISTRY.get(backend)
