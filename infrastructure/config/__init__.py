"""
Configuration management: models, loading, and validation.

Handles:
- StoreConfig: Term store backend, database URL and table prefix
- Taxonomy registry loading from YAML
- Environment variable overrides

The loader module performs file I/O; models are pure Pydantic classes.
"""

from infrastructure.config.loader import load_store_config, parse_store_config
from infrastructure.config.models import StoreBackend, StoreConfig

__all__ = [
    "StoreConfig",
    "StoreBackend",
    "load_store_config",
    "parse_store_config",
]
