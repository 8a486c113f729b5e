import logging

import pytest

from application.term_builder import TermBuilder
from domain.errors import TermPersistenceError
from domain.schemas import StoreError, TermRecord, TermWriteResult
from infrastructure.observability.logging import ContextInjectFilter, clear_log_context, set_log_context


def _ctx() -> tuple[str, str, str]:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    ContextInjectFilter().filter(record)
    return record.op, record.tax, record.term


class _ContextCapturingStore:
    """Term store stand-in that captures the log context seen by each call."""

    def __init__(self, insert_result=None) -> None:
        self.insert_result = insert_result or TermWriteResult(term_id=99)
        self.seen: dict[str, tuple[str, str, str]] = {}

    def insert_term(self, name, taxonomy, args):
        self.seen["insert_term"] = _ctx()
        return self.insert_result

    def update_term(self, term_id, taxonomy, args):
        self.seen["update_term"] = _ctx()
        return TermWriteResult(term_id=term_id)

    def copy_object_relationships(self, from_term_id, to_term_id):
        self.seen["copy_object_relationships"] = _ctx()
        return 0

    def copy_term_metadata(self, from_term_id, to_term_id):
        return 0


def test_filter_injects_context_fields():
    set_log_context(operation="update", taxonomy="color", term_id=5)
    try:
        assert _ctx() == ("update", "color", "5")
    finally:
        clear_log_context()
    assert _ctx() == ("-", "-", "-")


def test_save_sets_context_during_writes_and_clears_it_after():
    store = _ContextCapturingStore()

    TermBuilder.copy(TermRecord(term_id=7, name="Red", taxonomy="color"), store=store).save()

    assert store.seen["insert_term"] == ("clone", "color", "-")
    assert store.seen["copy_object_relationships"] == ("clone", "color", "99")
    assert _ctx() == ("-", "-", "-")


def test_update_context_carries_target_id():
    store = _ContextCapturingStore()

    TermBuilder.update(12, "color", store=store).save()

    assert store.seen["update_term"] == ("update", "color", "12")
    assert _ctx() == ("-", "-", "-")


def test_failed_save_clears_context():
    store = _ContextCapturingStore(insert_result=StoreError(code="term_exists", message="exists"))

    with pytest.raises(TermPersistenceError):
        TermBuilder.insert("Red", "color", store=store).save()

    assert store.seen["insert_term"] == ("create", "color", "-")
    assert _ctx() == ("-", "-", "-")
