"""In-memory term store for tests and dry runs."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from domain.schemas import StoreError, TermRecord, TermWriteResult
from domain.taxonomy.normalizer import TaxonomyRegistry, term_name_key
from infrastructure.config.models import StoreBackend, StoreConfig
from infrastructure.stores.base import CopyResult, TermStore
from infrastructure.stores.registry import register_store

logger = logging.getLogger(__name__)


@dataclass
class RelationshipRow:
    object_id: int
    term_id: int
    term_order: int = 0


@dataclass
class MetaRow:
    meta_id: int
    term_id: int
    meta_key: str
    meta_value: str | None


class InMemoryTermStore(TermStore):
    """Dict-backed store with the same term rules as the SQL store, no database required."""

    backend = StoreBackend.MEMORY

    def __init__(
        self,
        *,
        taxonomies: TaxonomyRegistry,
        fail_on: Mapping[str, StoreError] | None = None,
    ) -> None:
        """
        Args:
            taxonomies: Registered taxonomies
            fail_on: Public method name -> StoreError to return instead of doing the work
        """
        super().__init__(taxonomies=taxonomies)
        self.terms: dict[int, TermRecord] = {}
        self.relationships: list[RelationshipRow] = []
        self.metadata: list[MetaRow] = []
        self.fail_on = dict(fail_on or {})
        self._last_term_id = 0
        self._last_meta_id = 0
        logger.debug("Initialized in-memory term store (taxonomies=%s)", taxonomies.names())

    @classmethod
    def from_cfg(cls, cfg: StoreConfig) -> "InMemoryTermStore":
        return cls(taxonomies=cfg.taxonomies)

    # ---- seeding helpers ----

    def add_relationship(self, object_id: int, term_id: int, term_order: int = 0) -> None:
        self.relationships.append(RelationshipRow(object_id=object_id, term_id=term_id, term_order=term_order))
        self._refresh_count(term_id)

    def add_meta(self, term_id: int, meta_key: str, meta_value: str | None) -> int:
        self._last_meta_id += 1
        self.metadata.append(
            MetaRow(meta_id=self._last_meta_id, term_id=term_id, meta_key=meta_key, meta_value=meta_value)
        )
        return self._last_meta_id

    def meta_for(self, term_id: int) -> list[tuple[str, str | None]]:
        return [(m.meta_key, m.meta_value) for m in self.metadata if m.term_id == term_id]

    def relationships_for(self, term_id: int) -> list[tuple[int, int]]:
        return [(r.object_id, r.term_order) for r in self.relationships if r.term_id == term_id]

    # ---- TermStore ----

    def insert_term(self, name, taxonomy, args):
        if "insert_term" in self.fail_on:
            return self.fail_on["insert_term"]
        return super().insert_term(name, taxonomy, args)

    def update_term(self, term_id, taxonomy, args):
        if "update_term" in self.fail_on:
            return self.fail_on["update_term"]
        return super().update_term(term_id, taxonomy, args)

    def copy_object_relationships(self, from_term_id: int, to_term_id: int) -> CopyResult:
        if "copy_object_relationships" in self.fail_on:
            return self.fail_on["copy_object_relationships"]
        if to_term_id not in self.terms:
            return StoreError(code="invalid_term", message="Empty Term.", data={"term_id": to_term_id})

        rows = [r for r in self.relationships if r.term_id == from_term_id]
        for r in rows:
            self.relationships.append(RelationshipRow(object_id=r.object_id, term_id=to_term_id, term_order=r.term_order))
        self._refresh_count(to_term_id)
        return len(rows)

    def copy_term_metadata(self, from_term_id: int, to_term_id: int) -> CopyResult:
        if "copy_term_metadata" in self.fail_on:
            return self.fail_on["copy_term_metadata"]
        if to_term_id not in self.terms:
            return StoreError(code="invalid_term", message="Empty Term.", data={"term_id": to_term_id})

        rows = [m for m in self.metadata if m.term_id == from_term_id]
        for m in rows:
            self.add_meta(to_term_id, m.meta_key, m.meta_value)
        return len(rows)

    def _find_term(self, term_id: int) -> TermRecord | None:
        return self.terms.get(term_id)

    def _find_by_slug(self, slug: str, taxonomy: str) -> TermRecord | None:
        for t in self.terms.values():
            if t.slug == slug and t.taxonomy == taxonomy:
                return t
        return None

    def _find_by_name(self, name: str, taxonomy: str, parent: int) -> TermRecord | None:
        key = term_name_key(name)
        for t in self.terms.values():
            if t.taxonomy == taxonomy and t.parent == parent and term_name_key(t.name) == key:
                return t
        return None

    def _next_term_group(self) -> int:
        return max((t.term_group for t in self.terms.values()), default=0) + 1

    def _set_term_group(self, term_id: int, term_group: int) -> None:
        self.terms[term_id] = self.terms[term_id].model_copy(update={"term_group": term_group})

    def _write_new_term(self, *, name, slug, taxonomy, description, parent, term_group) -> TermWriteResult:
        self._last_term_id += 1
        term_id = self._last_term_id
        self.terms[term_id] = TermRecord(
            term_id=term_id,
            name=name,
            slug=slug,
            taxonomy=taxonomy,
            description=description,
            parent=parent,
            term_group=term_group,
            term_taxonomy_id=term_id,
        )
        return TermWriteResult(term_id=term_id, term_taxonomy_id=term_id)

    def _write_existing_term(self, term_id, *, name, slug, description, parent, term_group) -> TermWriteResult:
        current = self.terms[term_id]
        self.terms[term_id] = current.model_copy(
            update={
                "name": name,
                "slug": slug,
                "description": description,
                "parent": parent,
                "term_group": term_group,
            }
        )
        return TermWriteResult(term_id=term_id, term_taxonomy_id=current.term_taxonomy_id)

    def _refresh_count(self, term_id: int) -> None:
        if term_id in self.terms:
            count = sum(1 for r in self.relationships if r.term_id == term_id)
            self.terms[term_id] = self.terms[term_id].model_copy(update={"count": count})


register_store(StoreBackend.MEMORY, InMemoryTermStore)
