"""Factory for creating term stores."""

import importlib
import logging

from infrastructure.config.models import StoreBackend, StoreConfig

from .base import TermStore
from .registry import get_store_class

logger = logging.getLogger(__name__)

# Backend -> module under infrastructure/stores/
_BACKEND_MODULES: dict[StoreBackend, str] = {
    StoreBackend.SQL: "sql",
    StoreBackend.MEMORY: "memory",
}


def _ensure_backend_imported(backend: StoreBackend) -> None:
    """Lazy-import the backend module to trigger `register_store(...)`."""
    module_name = f"{__package__}.{_BACKEND_MODULES[backend]}"
    try:
        importlib.import_module(module_name)
    except ModuleNotFoundError as e:
        if getattr(e, "name", None) == module_name:
            raise RuntimeError(
                f"No store module found for backend='{backend.value}'. "
                f"Expected file: infrastructure/stores/{_BACKEND_MODULES[backend]}.py"
            ) from e
        raise


def make_store(cfg: StoreConfig) -> TermStore:
    """
    Factory function to create the configured term store.
    Args:
        cfg: Store configuration
    Returns:
        An instance of TermStore for the configured backend.
    Raises:
        RuntimeError: If the backend did not register a store class.
    """
    store_cls = get_store_class(cfg.backend)

    if store_cls is None:
        _ensure_backend_imported(cfg.backend)
        store_cls = get_store_class(cfg.backend)

    if store_cls is None:
        raise RuntimeError(
            f"Backend '{cfg.backend.value}' did not register a store. "
            f"Make sure {_BACKEND_MODULES[cfg.backend]}.py calls register_store(...)."
        )

    logger.info("Opening %s term store (%s)", cfg.backend.value, store_cls.__name__)
    return store_cls.from_cfg(cfg)  # type: ignore[attr-defined]
