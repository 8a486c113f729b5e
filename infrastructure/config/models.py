"""Configuration models (Pydantic classes)."""

from enum import Enum

from pydantic import BaseModel, Field, model_validator

from domain.taxonomy.normalizer import TaxonomyRegistry
from infrastructure.constants import DEFAULT_DATABASE_URL, DEFAULT_TABLE_PREFIX


class StoreBackend(str, Enum):
    """Supported term store backends."""

    SQL = "sql"
    MEMORY = "memory"


class StoreConfig(BaseModel):
    """
    Term store configuration.
    - Loaded from store.yaml
    - database_url may be overridden from the environment by the loader
    - Consumed by the store factory and the CLI
    """

    backend: StoreBackend = Field(default=StoreBackend.SQL, description="Term store backend to use.")
    database_url: str | None = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy database URL (SQL backend only).",
    )
    table_prefix: str = Field(
        default=DEFAULT_TABLE_PREFIX,
        pattern=r"^[A-Za-z0-9_]*$",
        description="Prefix for the terms/term_taxonomy/term_relationships/termmeta tables.",
    )
    echo_sql: bool = Field(default=False, description="Echo SQL statements through the sqlalchemy logger.")
    create_schema: bool = Field(
        default=True,
        description="Create missing tables when the store is opened.",
    )

    taxonomies: TaxonomyRegistry = Field(default_factory=TaxonomyRegistry)

    @model_validator(mode="after")
    def _validate(self) -> "StoreConfig":
        if self.backend is StoreBackend.SQL:
            if self.database_url is None or not str(self.database_url).strip():
                raise ValueError("database_url is required when backend=sql")
            self.database_url = str(self.database_url).strip()
        return self
