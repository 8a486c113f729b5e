import pytest
from sqlalchemy import inspect

from application.term_builder import TermBuilder
from domain.schemas import StoreError, TermWriteResult
from domain.taxonomy.normalizer import TaxonomyRegistry, TaxonomySpec
from infrastructure.stores.sql import SqlTermStore, make_engine


def _mk_store(prefix: str = "wp_") -> SqlTermStore:
    registry = TaxonomyRegistry(
        taxonomies=[
            TaxonomySpec(name="color", hierarchical=True),
            TaxonomySpec(name="post_tag"),
        ]
    )
    return SqlTermStore(engine=make_engine("sqlite://"), taxonomies=registry, table_prefix=prefix)


def _insert(store: SqlTermStore, name: str, taxonomy: str = "color", **args) -> int:
    result = store.insert_term(name, taxonomy, {"name": name, "taxonomy": taxonomy, **args})
    assert isinstance(result, TermWriteResult), result
    return result.term_id


def test_schema_uses_table_prefix():
    store = _mk_store(prefix="shop_")
    tables = set(inspect(store.engine).get_table_names())
    assert {"shop_terms", "shop_term_taxonomy", "shop_term_relationships", "shop_termmeta"} <= tables


def test_insert_and_read_back():
    store = _mk_store()
    term_id = _insert(store, "Light Blue", description="Sky")

    term = store.get_term(term_id)
    assert term is not None
    assert term.name == "Light Blue"
    assert term.slug == "light-blue"
    assert term.taxonomy == "color"
    assert term.description == "Sky"
    assert term.parent == 0
    assert term.term_taxonomy_id > 0
    assert store.get_term(term_id, "post_tag") is None


def test_unknown_taxonomy():
    store = _mk_store()
    result = store.insert_term("Red", "flavour", {"name": "Red", "taxonomy": "flavour"})
    assert isinstance(result, StoreError)
    assert result.code == "invalid_taxonomy"


def test_empty_and_too_long_names():
    store = _mk_store()
    empty = store.insert_term("  ", "color", {})
    assert isinstance(empty, StoreError) and empty.code == "empty_term_name"

    too_long = store.insert_term("x" * 201, "color", {})
    assert isinstance(too_long, StoreError) and too_long.code == "term_name_too_long"


def test_same_name_same_parent_is_term_exists():
    store = _mk_store()
    first = _insert(store, "Red")
    result = store.insert_term("red", "color", {})
    assert isinstance(result, StoreError)
    assert result.code == "term_exists"
    assert result.data["term_id"] == first


def test_term_exists_folds_non_ascii_case():
    store = _mk_store()
    first = _insert(store, "Émeraude")
    result = store.insert_term("émeraude", "color", {})
    assert isinstance(result, StoreError)
    assert result.code == "term_exists"
    assert result.data["term_id"] == first


def test_explicit_duplicate_slug_is_rejected():
    store = _mk_store()
    _insert(store, "Red")
    result = store.insert_term("Crimson", "color", {"slug": "red"})
    assert isinstance(result, StoreError)
    assert result.code == "duplicate_term_slug"
    assert "red" in result.message


def test_derived_slug_is_made_unique():
    store = _mk_store()
    _insert(store, "Red")
    second = _insert(store, "Red!")
    third = _insert(store, "Red?")
    assert store.get_term(second).slug == "red-2"
    assert store.get_term(third).slug == "red-3"


def test_derived_slug_uses_parent_slug_first():
    store = _mk_store()
    warm = _insert(store, "Warm")
    _insert(store, "Red")
    child = _insert(store, "Red", parent=warm)
    assert store.get_term(child).slug == "red-warm"
    assert store.get_term(child).parent == warm


def test_missing_parent_in_hierarchical_taxonomy():
    store = _mk_store()
    result = store.insert_term("Red", "color", {"parent": 999})
    assert isinstance(result, StoreError)
    assert result.code == "missing_parent"


def test_parent_ignored_for_flat_taxonomy():
    store = _mk_store()
    term_id = _insert(store, "news", taxonomy="post_tag", parent=999)
    assert store.get_term(term_id).parent == 0


def test_alias_of_joins_term_group():
    store = _mk_store()
    red = _insert(store, "Red")
    crimson = _insert(store, "Crimson", alias_of="red")
    scarlet = _insert(store, "Scarlet", alias_of="crimson")

    group = store.get_term(red).term_group
    assert group > 0
    assert store.get_term(crimson).term_group == group
    assert store.get_term(scarlet).term_group == group


def test_update_keeps_unspecified_fields():
    store = _mk_store()
    term_id = _insert(store, "Red", description="warm", slug="red")

    result = store.update_term(term_id, "color", {"taxonomy": "color", "name": "Crimson"})
    assert isinstance(result, TermWriteResult)
    term = store.get_term(term_id)
    assert term.name == "Crimson"
    assert term.slug == "red"
    assert term.description == "warm"


def test_update_unknown_term_and_wrong_taxonomy():
    store = _mk_store()
    term_id = _insert(store, "Red")

    missing = store.update_term(999, "color", {})
    assert isinstance(missing, StoreError) and missing.code == "invalid_term"

    wrong_tax = store.update_term(term_id, "post_tag", {})
    assert isinstance(wrong_tax, StoreError) and wrong_tax.code == "invalid_term"


def test_update_rejects_parent_cycle():
    store = _mk_store()
    a = _insert(store, "A")
    b = _insert(store, "B", parent=a)

    loop = store.update_term(a, "color", {"parent": b})
    assert isinstance(loop, StoreError) and loop.code == "invalid_parent"

    self_parent = store.update_term(a, "color", {"parent": a})
    assert isinstance(self_parent, StoreError) and self_parent.code == "invalid_parent"


def test_update_slug_clash_with_other_term():
    store = _mk_store()
    _insert(store, "Red")
    blue = _insert(store, "Blue")
    result = store.update_term(blue, "color", {"slug": "red"})
    assert isinstance(result, StoreError) and result.code == "duplicate_term_slug"


def test_builder_clone_copies_relationships_and_metadata():
    store = _mk_store()
    source_id = TermBuilder.insert("Red", "color", store=store).description("warm").save()
    store.add_relationship(object_id=10, term_id=source_id, term_order=3)
    store.add_relationship(object_id=11, term_id=source_id)
    store.add_meta(source_id, "hex", "#ff0000")
    store.add_meta(source_id, "order", "1")

    source = store.get_term(source_id)
    assert source.count == 2

    clone_id = TermBuilder.copy(source, store=store).name("Red (copy)").slug("red-copy").save()

    clone = store.get_term(clone_id)
    assert clone.description == "warm"
    assert clone.count == 2
    assert store.relationships_for(clone_id) == [(10, 3), (11, 0)]
    assert store.meta_for(clone_id) == [("hex", "#ff0000"), ("order", "1")]
    assert store.meta_for(source_id) == [("hex", "#ff0000"), ("order", "1")]


def test_metadata_copy_is_additive():
    store = _mk_store()
    a = _insert(store, "A")
    b = _insert(store, "B")
    store.add_meta(a, "k", "v")
    store.add_meta(b, "k", "v")

    assert store.copy_term_metadata(a, b) == 1
    assert store.meta_for(b) == [("k", "v"), ("k", "v")]


def test_copy_into_missing_term_is_an_error():
    store = _mk_store()
    a = _insert(store, "A")

    rel = store.copy_object_relationships(a, 999)
    meta = store.copy_term_metadata(a, 999)
    assert isinstance(rel, StoreError) and rel.code == "invalid_term"
    assert isinstance(meta, StoreError) and meta.code == "invalid_term"


def test_duplicate_relationship_copy_surfaces_db_error():
    store = _mk_store()
    a = _insert(store, "A")
    b = _insert(store, "B")
    store.add_relationship(object_id=1, term_id=a)

    assert store.copy_object_relationships(a, b) == 1
    # (object_id, term_taxonomy_id) is the primary key
    again = store.copy_object_relationships(a, b)
    assert isinstance(again, StoreError)
    assert again.code == "db_error"
    assert store.relationships_for(b) == [(1, 0)]


@pytest.mark.parametrize("name", ["Red", "Crème Brûlée"])
def test_builder_insert_round_trip(name):
    store = _mk_store()
    term_id = TermBuilder.insert(name, "color", store=store).save()
    assert store.get_term(term_id).name == name
