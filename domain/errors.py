"""Exceptions raised by the term builder."""

from collections.abc import Sequence

from domain.schemas import StoreError


class TermBuilderError(Exception):
    """Base class for builder failures."""


class DraftAlreadySavedError(TermBuilderError):
    """save() was called on a draft that has already been submitted."""


class TermPersistenceError(TermBuilderError):
    """The term store rejected an insert or update."""

    def __init__(self, operation: str, error: StoreError) -> None:
        self.operation = operation
        self.error = error
        super().__init__(f"TermBuilder {operation} failed: {error.message}")


class ClonePropagationError(TermBuilderError):
    """
    A cloned term was inserted, but copying its relationships and/or metadata failed.

    The new term is left in place; ``term_id`` tells the caller what to clean up.
    """

    def __init__(self, term_id: int, source_term_id: int, failures: Sequence[tuple[str, StoreError]]) -> None:
        self.term_id = term_id
        self.source_term_id = source_term_id
        self.failures = list(failures)
        steps = "; ".join(f"{step}: {err.message}" for step, err in self.failures)
        super().__init__(f"TermBuilder clone of term {source_term_id} into term {term_id} is incomplete ({steps})")

    @property
    def failed_steps(self) -> list[str]:
        return [step for step, _ in self.failures]
