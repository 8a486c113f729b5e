"""
Infrastructure layer: External dependencies and I/O boundaries.

Contains adapters for:
- Term stores (SQL database, in-memory)
- Configuration loading (YAML, environment)
- Import tables (CSV, Excel)
- Observability (logging)

This is the only layer that performs I/O operations.
"""

# Most commonly used - exposed at top level for convenience
from infrastructure.config import StoreBackend, StoreConfig, load_store_config
from infrastructure.stores import TermStore, make_store

__all__ = [
    # Term stores (most commonly used)
    "make_store",
    "TermStore",
    # Configuration (most commonly used)
    "load_store_config",
    "StoreConfig",
    "StoreBackend",
]
