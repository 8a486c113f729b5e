"""
Application layer: Use cases and workflow orchestration.

This layer coordinates between domain logic and infrastructure:
- TermBuilder: fluent insert/update/clone of a single term
- import_terms: bulk insert from a table
"""

from application.bulk_import import ImportColumns, ImportReport, import_terms
from application.term_builder import TermBuilder

__all__ = [
    # Main entry point
    "TermBuilder",
    # Bulk import
    "import_terms",
    "ImportColumns",
    "ImportReport",
]
