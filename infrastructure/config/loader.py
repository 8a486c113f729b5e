"""Configuration loading from YAML files."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from domain.taxonomy.loader import parse_taxonomy_registry
from infrastructure.config.models import StoreBackend, StoreConfig
from infrastructure.constants import DATABASE_URL_ENV, DEFAULT_DATABASE_URL, DEFAULT_TABLE_PREFIX


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML file and return as dict."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Expected YAML dict in {path}, got {type(data)}")

    return data


def parse_store_config(data: dict[str, Any], *, environ: dict[str, str] | None = None) -> StoreConfig:
    """
    Build a StoreConfig from an already-loaded YAML dict.

    Args:
        data: Parsed store.yaml contents
        environ: Environment mapping used for overrides (default: os.environ)

    Returns:
        Validated StoreConfig

    Raises:
        ValueError: If a key has an invalid value
    """
    env = os.environ if environ is None else environ

    raw_backend = str(data.get("backend", StoreBackend.SQL.value)).strip().lower()
    try:
        backend = StoreBackend(raw_backend)
    except ValueError as e:
        raise ValueError(
            f"Invalid backend {raw_backend!r}. Available: {[b.value for b in StoreBackend]}"
        ) from e

    database_url = data.get("database_url", DEFAULT_DATABASE_URL)
    env_url = env.get(DATABASE_URL_ENV)
    if env_url:
        database_url = env_url

    taxonomies = parse_taxonomy_registry(data.get("taxonomies") or {})

    try:
        return StoreConfig(
            backend=backend,
            database_url=database_url,
            table_prefix=str(data.get("table_prefix", DEFAULT_TABLE_PREFIX)),
            echo_sql=bool(data.get("echo_sql", False)),
            create_schema=bool(data.get("create_schema", True)),
            taxonomies=taxonomies,
        )
    except ValidationError as e:
        raise ValueError(f"Invalid store configuration: {e}") from e


def load_store_config(path: Path, *, environ: dict[str, str] | None = None) -> StoreConfig:
    """
    Load store.yaml and construct a fully-resolved StoreConfig.

    The ``TERMS_DATABASE_URL`` environment variable, when set, replaces ``database_url``.
    """
    return parse_store_config(_load_yaml(path), environ=environ)
