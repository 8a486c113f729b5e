"""
Term store backends.

Implements the Term Store interface the builder writes through:
- SQL (SQLAlchemy; SQLite, MySQL, PostgreSQL, ...)
- In-memory (for testing and dry runs)

All stores implement the TermStore interface.
"""

from infrastructure.stores.base import TermStore
from infrastructure.stores.factory import make_store
from infrastructure.stores.memory import InMemoryTermStore
from infrastructure.stores.sql import SqlTermStore, build_term_tables, make_engine

__all__ = [
    # Abstract base
    "TermStore",
    # Concrete implementations
    "SqlTermStore",
    "InMemoryTermStore",
    # Factory (most commonly used)
    "make_store",
    # SQL helpers
    "build_term_tables",
    "make_engine",
]
