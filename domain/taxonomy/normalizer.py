"""Slug normalization and the taxonomy registry."""

import re
import unicodedata
from functools import cached_property

from pydantic import BaseModel, Field


def sanitize_slug(raw: object) -> str:
    """
    Normalize a term name or user-supplied slug to URL-safe form.

    Examples:
        >>> sanitize_slug("Light Blue")
        'light-blue'
        >>> sanitize_slug("  Crème Brûlée!! ")
        'creme-brulee'

    Args:
        raw: Raw value (can be None, str, or other types)

    Returns:
        Lowercase ASCII slug, or empty string if nothing usable remains
    """
    if raw is None:
        return ""
    s = str(raw).strip()
    if not s:
        return ""
    s = unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")
    s = s.lower()
    s = re.sub(r"[^a-z0-9_\s-]", "", s)
    s = re.sub(r"[\s_-]+", "-", s)
    return s.strip("-")


def term_name_key(name: str) -> str:
    """Case-insensitive comparison key for term names (Unicode casefold, outer whitespace ignored)."""
    return name.strip().casefold()


class TaxonomySpec(BaseModel):
    """A registered taxonomy."""

    name: str
    hierarchical: bool = False
    description: str = ""


class TaxonomyRegistry(BaseModel):
    """Taxonomies a term store accepts terms for."""

    taxonomies: list[TaxonomySpec] = Field(default_factory=list)

    @cached_property
    def _by_name(self) -> dict[str, TaxonomySpec]:
        return {t.name: t for t in self.taxonomies}

    def exists(self, taxonomy: str) -> bool:
        return taxonomy in self._by_name

    def is_hierarchical(self, taxonomy: str) -> bool:
        spec = self._by_name.get(taxonomy)
        return bool(spec and spec.hierarchical)

    def names(self) -> list[str]:
        return [t.name for t in self.taxonomies]
