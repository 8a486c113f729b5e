"""Pydantic models for terms and term-store results."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

# Keys the builder forwards to the term store
TERM_ARG_KEYS: tuple[str, ...] = ("name", "taxonomy", "alias_of", "description", "parent", "slug")

TERM_NAME_MAX_LENGTH = 200


class BuilderMode(str, Enum):
    """How a draft will be persisted."""

    CREATE = "create"
    UPDATE = "update"
    CLONE = "clone"


class TermRecord(BaseModel):
    """An existing term as read back from the term store."""

    term_id: int = Field(..., gt=0, description="Numeric id of the term.")
    name: str
    taxonomy: str
    slug: str = ""
    description: str = ""
    parent: int = Field(default=0, ge=0, description="Parent term id, 0 for none.")

    # Store bookkeeping (never copied into a new draft)
    term_group: int = 0
    term_taxonomy_id: int = 0
    count: int = 0


# Record fields that are owned by the store rather than the caller
STORE_MANAGED_FIELDS: frozenset[str] = frozenset({"term_id", "term_group", "term_taxonomy_id", "count"})


class TermArgs(BaseModel):
    """
    Write arguments accepted by a term store.

    Only shape is checked here; existence and uniqueness rules live in the store.
    """

    name: str | None = Field(default=None, max_length=TERM_NAME_MAX_LENGTH)
    taxonomy: str
    alias_of: str | None = None
    description: str | None = None
    parent: int | None = Field(default=None, ge=0)
    slug: str | None = None

    @field_validator("name", "slug", "alias_of", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class TermWriteResult(BaseModel):
    """Successful insert/update."""

    term_id: int = Field(..., gt=0)
    term_taxonomy_id: int = 0


class StoreError(BaseModel):
    """Failure reported by a term store (returned, never raised)."""

    code: str = Field(..., description="Short error code, e.g. 'duplicate_term_slug'.")
    message: str
    data: dict[str, Any] = Field(default_factory=dict)

    def __str__(self) -> str:
        return self.message
