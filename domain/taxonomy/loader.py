"""Parse the taxonomy registry from a YAML dict."""

from typing import Any

from domain.taxonomy.normalizer import TaxonomyRegistry, TaxonomySpec


def parse_taxonomy_registry(data: dict[str, Any]) -> TaxonomyRegistry:
    """
    Parse a pre-loaded ``taxonomies`` mapping into a TaxonomyRegistry.

    This is a pure function - it does NOT perform file I/O.
    The YAML loading happens in infrastructure.config.loader.

    Accepted shapes per entry::

        taxonomies:
          category: {hierarchical: true}
          post_tag: {}
          color: null

    Args:
        data: The ``taxonomies`` mapping (name -> options)

    Returns:
        TaxonomyRegistry in declaration order

    Raises:
        ValueError: If the mapping or an entry has the wrong type
    """
    if data is None:
        return TaxonomyRegistry()
    if not isinstance(data, dict):
        raise ValueError("taxonomies must be a mapping of name -> options")

    specs: list[TaxonomySpec] = []
    for name, options in data.items():
        key = str(name).strip()
        if not key:
            raise ValueError("taxonomy names must be non-empty")
        options = options or {}
        if not isinstance(options, dict):
            raise ValueError(f"options for taxonomy '{key}' must be a mapping")
        specs.append(
            TaxonomySpec(
                name=key,
                hierarchical=bool(options.get("hierarchical", False)),
                description=str(options.get("description", "") or ""),
            )
        )
    return TaxonomyRegistry(taxonomies=specs)
