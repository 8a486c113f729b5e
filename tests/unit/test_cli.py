import logging
from pathlib import Path

import main
from application.term_builder import TermBuilder
from domain.schemas import StoreError
from domain.taxonomy.normalizer import TaxonomyRegistry, TaxonomySpec
from infrastructure.stores.memory import InMemoryTermStore


def _mk_config(tmp_path: Path) -> Path:
    db = (tmp_path / "terms.db").as_posix()
    path = tmp_path / "store.yaml"
    path.write_text(
        f"backend: sql\ndatabase_url: sqlite:///{db}\ntaxonomies:\n  color: {{hierarchical: true}}\n",
        encoding="utf-8",
    )
    return path


def _run(tmp_path: Path, capsys, *argv: str) -> tuple[int, str]:
    common = ["--config", str(_mk_config(tmp_path)), "--env", str(tmp_path / "missing.env")]
    root = logging.getLogger()
    saved = list(root.handlers)
    try:
        code = main.main([*common, *argv])
    finally:
        # configure_logging replaces root handlers; put pytest's back
        root.handlers[:] = saved
    return code, capsys.readouterr().out.strip()


def test_insert_update_copy(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.delenv("TERMS_DATABASE_URL", raising=False)

    code, out = _run(tmp_path, capsys, "insert", "Red", "--taxonomy", "color", "--slug", "red")
    assert code == 0
    red_id = int(out)

    code, out = _run(tmp_path, capsys, "update", str(red_id), "--taxonomy", "color", "--description", "warm")
    assert code == 0
    assert int(out) == red_id

    code, out = _run(tmp_path, capsys, "copy", str(red_id), "--slug", "red-copy")
    assert code == 0
    assert int(out) != red_id


def test_rejected_insert_exits_nonzero(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.delenv("TERMS_DATABASE_URL", raising=False)

    assert _run(tmp_path, capsys, "insert", "Red", "--taxonomy", "color")[0] == 0
    code, out = _run(tmp_path, capsys, "insert", "Red", "--taxonomy", "color")
    assert code == 1
    assert out == ""


def test_import_csv(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.delenv("TERMS_DATABASE_URL", raising=False)
    csv_path = tmp_path / "colors.csv"
    csv_path.write_text("name,slug\nRed,red\nBlue,\n", encoding="utf-8")

    code, out = _run(tmp_path, capsys, "import", str(csv_path), "--taxonomy", "color")

    assert code == 0
    assert len(out.splitlines()) == 2


def test_incomplete_copy_exits_nonzero_and_prints_new_id(tmp_path: Path, capsys, monkeypatch) -> None:
    monkeypatch.delenv("TERMS_DATABASE_URL", raising=False)
    store = InMemoryTermStore(
        taxonomies=TaxonomyRegistry(taxonomies=[TaxonomySpec(name="color", hierarchical=True)]),
        fail_on={"copy_term_metadata": StoreError(code="db_error", message="disk full")},
    )
    source_id = TermBuilder.insert("Red", "color", store=store).save()
    store.add_meta(source_id, "hex", "#ff0000")
    monkeypatch.setattr(main, "make_store", lambda cfg: store)

    code, out = _run(tmp_path, capsys, "copy", str(source_id), "--slug", "red-copy", "--name", "Red 2")

    assert code == 1
    new_id = int(out)
    assert new_id != source_id
    assert store.get_term(new_id).slug == "red-copy"
    assert store.meta_for(new_id) == []
