"""Fluent builder that inserts, updates or clones a taxonomy term through a term store."""

import logging
from typing import Any

from domain.errors import ClonePropagationError, DraftAlreadySavedError, TermPersistenceError
from domain.schemas import STORE_MANAGED_FIELDS, TERM_ARG_KEYS, BuilderMode, StoreError, TermRecord
from infrastructure.observability.logging import clear_log_context, set_log_context
from infrastructure.stores.base import TermStore

logger = logging.getLogger(__name__)


class TermBuilder:
    """
    Accumulates term fields, then persists them once with save().

    Create a draft with one of the factories, chain setters, call save():

        term_id = TermBuilder.insert("Red", "color", store=store).slug("red").save()
        TermBuilder.update(term_id, "color", store=store).description("A warm hue").save()
        clone_id = TermBuilder.copy(store.get_term(term_id), store=store).slug("red-2").save()

    Setters do no validation; the store validates on save().
    """

    def __init__(
        self,
        store: TermStore,
        args: dict[str, Any],
        *,
        target_id: int = 0,
        cloned_from_id: int = 0,
    ) -> None:
        self._store = store
        self._args = args
        self._target_id = target_id
        self._cloned_from_id = cloned_from_id
        self._saved = False

    # ---- factories (no I/O) ----

    @classmethod
    def insert(cls, name: str, taxonomy: str, *, store: TermStore) -> "TermBuilder":
        """
        Start a new term.

        Args:
            name: The term name. Must not exceed 200 characters.
            taxonomy: The taxonomy to which to add the term.
            store: Term store to persist through
        """
        return cls(store, {"name": name, "taxonomy": taxonomy})

    @classmethod
    def update(cls, term_id: int, taxonomy: str, *, store: TermStore) -> "TermBuilder":
        """
        Start an update of an existing term. Only fields set on the draft are changed.

        Raises:
            ValueError: If term_id is not a positive integer
        """
        if isinstance(term_id, bool) or not isinstance(term_id, int) or term_id <= 0:
            raise ValueError(f"term_id must be a positive integer, got {term_id!r}")
        return cls(store, {"taxonomy": taxonomy}, target_id=term_id)

    @classmethod
    def copy(cls, source: TermRecord, *, store: TermStore) -> "TermBuilder":
        """
        Start a new term pre-filled from ``source``.

        save() inserts a new term and then copies the source's object relationships
        and metadata onto it. The source's id and store bookkeeping are not copied.
        """
        fields = source.model_dump(exclude_unset=True, exclude=set(STORE_MANAGED_FIELDS))
        args = {k: v for k, v in fields.items() if k in TERM_ARG_KEYS}
        # taxonomy is required even when the record was built without it being "set"
        args.setdefault("taxonomy", source.taxonomy)
        return cls(store, args, cloned_from_id=source.term_id)

    # ---- setters ----

    def description(self, description: str) -> "TermBuilder":
        """The term description. Default empty string."""
        self._args["description"] = description
        return self

    def parent(self, parent: int) -> "TermBuilder":
        """The id of the parent term, 0 for none."""
        self._args["parent"] = parent
        return self

    def slug(self, slug: str) -> "TermBuilder":
        """The term slug to use. Default: derived from the name."""
        self._args["slug"] = slug
        return self

    def alias_of(self, alias_of: str) -> "TermBuilder":
        """Slug of the term to make this term an alias of."""
        self._args["alias_of"] = alias_of
        return self

    def name(self, name: str) -> "TermBuilder":
        """The term name. Must not exceed 200 characters."""
        self._args["name"] = name
        return self

    # ---- inspection ----

    @property
    def mode(self) -> BuilderMode:
        if self._cloned_from_id:
            return BuilderMode.CLONE
        if self._target_id:
            return BuilderMode.UPDATE
        return BuilderMode.CREATE

    @property
    def args(self) -> dict[str, Any]:
        return dict(self._args)

    @property
    def saved(self) -> bool:
        return self._saved

    # ---- finalize ----

    def save(self) -> int:
        """
        Insert or update the term. A draft can be saved once.

        Returns:
            The positive id of the inserted or updated term

        Raises:
            TermPersistenceError: The store rejected the insert/update
            ClonePropagationError: Clone inserted, but relationships/metadata were not fully copied
            DraftAlreadySavedError: save() was already called on this draft
        """
        if self._saved:
            raise DraftAlreadySavedError("This TermBuilder draft has already been saved")
        self._saved = True
        try:
            return self._persist()
        finally:
            clear_log_context()

    def _persist(self) -> int:
        mode = self.mode
        taxonomy = str(self._args.get("taxonomy", ""))
        clear_log_context()
        set_log_context(operation=mode.value, taxonomy=taxonomy, term_id=self._target_id or None)

        if mode is BuilderMode.UPDATE:
            operation = "update"
            logger.info("Updating term %d", self._target_id)
            logger.debug("Term args: %s", self._args)
            result = self._store.update_term(self._target_id, taxonomy, dict(self._args))
        else:
            operation = "insert"
            logger.info("Inserting term %r", self._args.get("name"))
            logger.debug("Term args: %s", self._args)
            result = self._store.insert_term(str(self._args.get("name", "")), taxonomy, dict(self._args))

        if isinstance(result, StoreError):
            logger.warning("Term %s rejected by store: [%s] %s", operation, result.code, result.message)
            raise TermPersistenceError(operation, result)

        term_id = result.term_id
        set_log_context(term_id=term_id)

        if self._cloned_from_id:
            self._propagate_clone(term_id)

        logger.info("Saved term %d (%s)", term_id, mode.value)
        return term_id

    def _propagate_clone(self, term_id: int) -> None:
        source_id = self._cloned_from_id
        failures: list[tuple[str, StoreError]] = []

        rel = self._store.copy_object_relationships(source_id, term_id)
        if isinstance(rel, StoreError):
            failures.append(("copy_object_relationships", rel))
        else:
            logger.info("Copied %d object relationships from term %d", rel, source_id)

        meta = self._store.copy_term_metadata(source_id, term_id)
        if isinstance(meta, StoreError):
            failures.append(("copy_term_metadata", meta))
        else:
            logger.info("Copied %d metadata rows from term %d", meta, source_id)

        if failures:
            logger.error(
                "Clone of term %d into term %d is incomplete: %s (new term kept)",
                source_id,
                term_id,
                [step for step, _ in failures],
            )
            raise ClonePropagationError(term_id, source_id, failures)
