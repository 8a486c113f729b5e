"""Base interface for term stores."""

import contextlib
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Any, ClassVar

from pydantic import ValidationError

from domain.schemas import TERM_ARG_KEYS, TERM_NAME_MAX_LENGTH, StoreError, TermArgs, TermRecord, TermWriteResult
from domain.taxonomy.normalizer import TaxonomyRegistry, sanitize_slug
from infrastructure.config.models import StoreBackend

logger = logging.getLogger(__name__)

StoreResult = TermWriteResult | StoreError
CopyResult = int | StoreError


class TermStore(ABC):
    """
    Abstract base class for term stores.
    Common interface for storage backends (SQL database, in-memory).

    insert_term()/update_term() implement the host platform's term rules on top of a
    small set of lookup/write primitives. Validation failures are returned as
    StoreError values; nothing in the public surface raises for bad input.

    All concrete stores must implement:
    - the _find_* / _write_* primitives
    - copy_object_relationships() and copy_term_metadata()
    """

    backend: StoreBackend
    taxonomies: TaxonomyRegistry

    # Backend exceptions converted to StoreError(code="db_error")
    _backend_errors: ClassVar[tuple[type[Exception], ...]] = ()

    def __init__(self, *, taxonomies: TaxonomyRegistry) -> None:
        self.taxonomies = taxonomies

    # ---- public surface ----

    def get_term(self, term_id: int, taxonomy: str | None = None) -> TermRecord | None:
        """Return the term with this id (optionally restricted to one taxonomy)."""
        record = self._find_term(int(term_id))
        if record is None:
            return None
        if taxonomy is not None and record.taxonomy != taxonomy:
            return None
        return record

    def insert_term(self, name: str, taxonomy: str, args: Mapping[str, Any]) -> StoreResult:
        """Create a term. ``name``/``taxonomy`` win over the same keys in ``args``."""
        try:
            with self._unit_of_work():
                return self._insert(name, taxonomy, dict(args))
        except self._backend_errors as e:
            logger.exception("insert_term failed in backend (taxonomy=%s)", taxonomy)
            return StoreError(code="db_error", message=f"Could not insert term into the database: {e}")

    def update_term(self, term_id: int, taxonomy: str, args: Mapping[str, Any]) -> StoreResult:
        """Update a term. Keys missing from ``args`` keep their stored values."""
        try:
            with self._unit_of_work():
                return self._update(int(term_id), taxonomy, dict(args))
        except self._backend_errors as e:
            logger.exception("update_term failed in backend (term_id=%s)", term_id)
            return StoreError(code="db_error", message=f"Could not update term in the database: {e}")

    @abstractmethod
    def copy_object_relationships(self, from_term_id: int, to_term_id: int) -> CopyResult:
        """
        Duplicate every object relationship of ``from_term_id`` onto ``to_term_id``.

        Additive: existing rows of the target are neither removed nor deduplicated.
        Per-row ordering (term_order) is preserved.

        Returns:
            Number of rows copied, or StoreError
        """
        raise NotImplementedError

    @abstractmethod
    def copy_term_metadata(self, from_term_id: int, to_term_id: int) -> CopyResult:
        """
        Duplicate every metadata row of ``from_term_id`` onto ``to_term_id``, key/value verbatim.

        Returns:
            Number of rows copied, or StoreError
        """
        raise NotImplementedError

    # ---- primitives ----

    @contextlib.contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        """Scope one insert/update. SQL stores run it in a transaction."""
        yield

    @abstractmethod
    def _find_term(self, term_id: int) -> TermRecord | None: ...

    @abstractmethod
    def _find_by_slug(self, slug: str, taxonomy: str) -> TermRecord | None: ...

    @abstractmethod
    def _find_by_name(self, name: str, taxonomy: str, parent: int) -> TermRecord | None: ...

    @abstractmethod
    def _next_term_group(self) -> int: ...

    @abstractmethod
    def _set_term_group(self, term_id: int, term_group: int) -> None: ...

    @abstractmethod
    def _write_new_term(
        self,
        *,
        name: str,
        slug: str,
        taxonomy: str,
        description: str,
        parent: int,
        term_group: int,
    ) -> TermWriteResult: ...

    @abstractmethod
    def _write_existing_term(
        self,
        term_id: int,
        *,
        name: str,
        slug: str,
        description: str,
        parent: int,
        term_group: int,
    ) -> TermWriteResult: ...

    # ---- term rules ----

    def _parse_args(self, args: dict[str, Any]) -> TermArgs | StoreError:
        known = {k: v for k, v in args.items() if k in TERM_ARG_KEYS}
        ignored = sorted(set(args) - set(known))
        if ignored:
            logger.debug("Ignoring unknown term args: %s", ignored)
        try:
            return TermArgs(**known)
        except ValidationError as e:
            errors = e.errors()
            if any(err.get("loc") == ("name",) and err.get("type") == "string_too_long" for err in errors):
                return StoreError(
                    code="term_name_too_long",
                    message=f"Term name must not exceed {TERM_NAME_MAX_LENGTH} characters.",
                )
            fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in errors})
            return StoreError(
                code="invalid_term_args",
                message=f"Invalid term arguments: {', '.join(fields)}",
                data={"errors": [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors]},
            )

    def _check_taxonomy(self, taxonomy: str) -> StoreError | None:
        if not self.taxonomies.exists(taxonomy):
            return StoreError(code="invalid_taxonomy", message="Invalid taxonomy.", data={"taxonomy": taxonomy})
        return None

    def _resolve_parent(self, parent: int | None, taxonomy: str, *, term_id: int = 0) -> int | StoreError:
        parent = int(parent or 0)
        if not parent:
            return 0
        if not self.taxonomies.is_hierarchical(taxonomy):
            logger.debug("Taxonomy %s is not hierarchical; dropping parent=%d", taxonomy, parent)
            return 0

        parent_term = self._find_term(parent)
        if parent_term is None or parent_term.taxonomy != taxonomy:
            return StoreError(code="missing_parent", message="Parent term does not exist.", data={"parent": parent})

        if term_id:
            # Walk up from the new parent; reaching term_id means a cycle
            seen: set[int] = set()
            node: TermRecord | None = parent_term
            while node is not None and node.term_id not in seen:
                if node.term_id == term_id:
                    return StoreError(
                        code="invalid_parent",
                        message="A term cannot be its own ancestor.",
                        data={"term_id": term_id, "parent": parent},
                    )
                seen.add(node.term_id)
                node = self._find_term(node.parent) if node.parent else None
        return parent

    def _resolve_term_group(self, alias_of: str | None, taxonomy: str, current: int = 0) -> int:
        if not alias_of:
            return current
        alias = self._find_by_slug(sanitize_slug(alias_of), taxonomy)
        if alias is None:
            logger.debug("alias_of=%r not found in taxonomy %s; ignoring", alias_of, taxonomy)
            return current
        if alias.term_group:
            return alias.term_group
        group = self._next_term_group()
        self._set_term_group(alias.term_id, group)
        return group

    def _unique_slug(self, slug: str, taxonomy: str, parent: int) -> str:
        if not self._find_by_slug(slug, taxonomy):
            return slug

        if parent and self.taxonomies.is_hierarchical(taxonomy):
            parent_term = self._find_term(parent)
            if parent_term is not None and parent_term.slug:
                candidate = f"{slug}-{parent_term.slug}"
                if not self._find_by_slug(candidate, taxonomy):
                    return candidate
                slug = candidate

        num = 2
        while self._find_by_slug(f"{slug}-{num}", taxonomy):
            num += 1
        return f"{slug}-{num}"

    def _insert(self, name: str, taxonomy: str, args: dict[str, Any]) -> StoreResult:
        args.update(name=name, taxonomy=taxonomy)

        err = self._check_taxonomy(taxonomy)
        if err is not None:
            return err

        parsed = self._parse_args(args)
        if isinstance(parsed, StoreError):
            return parsed

        term_name = parsed.name or ""
        if not term_name:
            return StoreError(code="empty_term_name", message="A name is required for this term.")

        parent = self._resolve_parent(parsed.parent, taxonomy)
        if isinstance(parent, StoreError):
            return parent

        slug_provided = bool(parsed.slug)
        slug = sanitize_slug(parsed.slug if slug_provided else term_name)
        if not slug:
            return StoreError(
                code="invalid_term_slug",
                message="Could not derive a slug for this term.",
                data={"name": term_name, "slug": parsed.slug},
            )

        duplicate = self._find_by_name(term_name, taxonomy, parent)
        if duplicate is not None and (not slug_provided or duplicate.slug == slug):
            return StoreError(
                code="term_exists",
                message="A term with the name provided already exists with this parent.",
                data={"term_id": duplicate.term_id},
            )

        if self._find_by_slug(slug, taxonomy) is not None:
            if slug_provided:
                return StoreError(
                    code="duplicate_term_slug",
                    message=f'The slug "{slug}" is already in use by another term.',
                    data={"slug": slug},
                )
            slug = self._unique_slug(slug, taxonomy, parent)

        term_group = self._resolve_term_group(parsed.alias_of, taxonomy)

        result = self._write_new_term(
            name=term_name,
            slug=slug,
            taxonomy=taxonomy,
            description=parsed.description or "",
            parent=parent,
            term_group=term_group,
        )
        logger.debug("Inserted term %d (slug=%s, taxonomy=%s)", result.term_id, slug, taxonomy)
        return result

    def _update(self, term_id: int, taxonomy: str, args: dict[str, Any]) -> StoreResult:
        err = self._check_taxonomy(taxonomy)
        if err is not None:
            return err

        existing = self.get_term(term_id, taxonomy)
        if existing is None:
            return StoreError(code="invalid_term", message="Empty Term.", data={"term_id": term_id})

        if "name" in args and not str(args["name"] or "").strip():
            return StoreError(code="empty_term_name", message="A name is required for this term.")

        args["taxonomy"] = taxonomy
        parsed = self._parse_args(args)
        if isinstance(parsed, StoreError):
            return parsed

        term_name = parsed.name or existing.name

        if parsed.parent is None:
            parent: int | StoreError = existing.parent
        else:
            parent = self._resolve_parent(parsed.parent, taxonomy, term_id=term_id)
            if isinstance(parent, StoreError):
                return parent

        slug = existing.slug
        if parsed.slug is not None:
            slug = sanitize_slug(parsed.slug) or sanitize_slug(term_name)
        if not slug:
            return StoreError(
                code="invalid_term_slug",
                message="Could not derive a slug for this term.",
                data={"name": term_name, "slug": parsed.slug},
            )

        clash = self._find_by_slug(slug, taxonomy)
        if clash is not None and clash.term_id != term_id:
            return StoreError(
                code="duplicate_term_slug",
                message=f'The slug "{slug}" is already in use by another term.',
                data={"slug": slug, "term_id": clash.term_id},
            )

        term_group = self._resolve_term_group(parsed.alias_of, taxonomy, existing.term_group)
        description = existing.description if parsed.description is None else parsed.description

        result = self._write_existing_term(
            term_id,
            name=term_name,
            slug=slug,
            description=description,
            parent=parent,
            term_group=term_group,
        )
        logger.debug("Updated term %d (slug=%s, taxonomy=%s)", term_id, slug, taxonomy)
        return result
