"""
Domain layer: Business logic with minimal external dependencies.

Contains:
- schemas: Pydantic models for terms and term-store results
- errors: Builder exception hierarchy
- taxonomy: Slug normalization and taxonomy registry
"""

from domain.errors import (
    ClonePropagationError,
    DraftAlreadySavedError,
    TermBuilderError,
    TermPersistenceError,
)
from domain.schemas import BuilderMode, StoreError, TermArgs, TermRecord, TermWriteResult

__all__ = [
    "BuilderMode",
    "TermRecord",
    "TermArgs",
    "TermWriteResult",
    "StoreError",
    "TermBuilderError",
    "TermPersistenceError",
    "ClonePropagationError",
    "DraftAlreadySavedError",
]
