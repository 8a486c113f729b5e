"""
Taxonomy management: slug normalization and the taxonomy registry.

All functions in this module are pure (no file I/O).
"""

from domain.taxonomy.loader import parse_taxonomy_registry
from domain.taxonomy.normalizer import TaxonomyRegistry, TaxonomySpec, sanitize_slug, term_name_key

__all__ = [
    "TaxonomyRegistry",
    "TaxonomySpec",
    "parse_taxonomy_registry",
    "sanitize_slug",
    "term_name_key",
]
