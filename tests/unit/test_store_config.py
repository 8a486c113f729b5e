from pathlib import Path

import pytest

from infrastructure.config.loader import load_store_config, parse_store_config
from infrastructure.config.models import StoreBackend, StoreConfig
from infrastructure.constants import DATABASE_URL_ENV
from infrastructure.stores import InMemoryTermStore, SqlTermStore, make_store


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "store.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_store_config_from_yaml(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        """
backend: sql
database_url: sqlite://
table_prefix: shop_
taxonomies:
  category: {hierarchical: true}
  post_tag:
""",
    )
    cfg = load_store_config(path, environ={})

    assert cfg.backend is StoreBackend.SQL
    assert cfg.database_url == "sqlite://"
    assert cfg.table_prefix == "shop_"
    assert cfg.taxonomies.names() == ["category", "post_tag"]
    assert cfg.taxonomies.is_hierarchical("category")
    assert not cfg.taxonomies.is_hierarchical("post_tag")


def test_env_overrides_database_url() -> None:
    cfg = parse_store_config({"database_url": "sqlite:///a.db"}, environ={DATABASE_URL_ENV: "sqlite:///b.db"})
    assert cfg.database_url == "sqlite:///b.db"


def test_invalid_backend() -> None:
    with pytest.raises(ValueError, match="Invalid backend"):
        parse_store_config({"backend": "redis"}, environ={})


def test_invalid_table_prefix() -> None:
    with pytest.raises(ValueError, match="Invalid store configuration"):
        parse_store_config({"table_prefix": "wp-; drop"}, environ={})


def test_sql_backend_requires_database_url() -> None:
    with pytest.raises(ValueError):
        StoreConfig(backend=StoreBackend.SQL, database_url="  ")


def test_missing_and_non_mapping_files(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_store_config(tmp_path / "nope.yaml", environ={})

    path = _write(tmp_path, "- just\n- a list\n")
    with pytest.raises(ValueError, match="Expected YAML dict"):
        load_store_config(path, environ={})


def test_make_store_for_each_backend() -> None:
    memory = make_store(StoreConfig(backend=StoreBackend.MEMORY))
    assert isinstance(memory, InMemoryTermStore)

    sql = make_store(StoreConfig(backend=StoreBackend.SQL, database_url="sqlite://"))
    assert isinstance(sql, SqlTermStore)
