"""Bulk term import from a table (CSV/Excel) through the term builder."""

import logging
import re
from dataclasses import dataclass, field

import pandas as pd

from application.term_builder import TermBuilder
from domain.errors import TermBuilderError
from infrastructure.stores.base import TermStore

logger = logging.getLogger(__name__)

# Spreadsheet cells holding whole numbers often come back as "3.0"
_PARENT_ID_RE = re.compile(r"^[0-9]+(?:\.0+)?$")


@dataclass
class ImportColumns:
    """Column name mapping for the import table. Only ``name`` is required."""

    name: str = "name"
    slug: str | None = "slug"
    description: str | None = "description"
    parent: str | None = "parent"
    alias_of: str | None = "alias_of"


@dataclass
class ImportReport:
    created: dict[int, int] = field(default_factory=dict)  # row index -> term id
    failed: dict[int, str] = field(default_factory=dict)  # row index -> error message
    skipped: list[int] = field(default_factory=list)  # rows without a name

    @property
    def total(self) -> int:
        return len(self.created) + len(self.failed) + len(self.skipped)


def _cell(row: pd.Series, col: str | None) -> str | None:
    if col is None or col not in row.index:
        return None
    value = row[col]
    if pd.isna(value):
        return None
    s = str(value).strip()
    return s or None


def import_terms(
    df: pd.DataFrame,
    *,
    taxonomy: str,
    store: TermStore,
    columns: ImportColumns | None = None,
) -> ImportReport:
    """
    Insert one term per row. A failing row is recorded and the import continues.

    Args:
        df: Table with at least the name column
        taxonomy: Taxonomy for every imported term
        store: Term store to write through
        columns: Column mapping (default: name/slug/description/parent/alias_of)

    Returns:
        ImportReport with created ids and per-row failures

    Raises:
        KeyError: If the name column is missing from the table
    """
    cols = columns or ImportColumns()
    if cols.name not in df.columns:
        raise KeyError(f"Name column '{cols.name}' not found in import table columns: {list(df.columns)}")

    report = ImportReport()
    logger.info("Importing %d rows into taxonomy %s", len(df), taxonomy)

    for idx, row in df.iterrows():
        name = _cell(row, cols.name)
        if name is None:
            logger.warning("Row %s: empty name, skipped", idx)
            report.skipped.append(int(idx))
            continue

        builder = TermBuilder.insert(name, taxonomy, store=store)
        slug = _cell(row, cols.slug)
        if slug is not None:
            builder.slug(slug)
        description = _cell(row, cols.description)
        if description is not None:
            builder.description(description)
        alias_of = _cell(row, cols.alias_of)
        if alias_of is not None:
            builder.alias_of(alias_of)
        parent = _cell(row, cols.parent)
        if parent is not None:
            if not _PARENT_ID_RE.match(parent):
                report.failed[int(idx)] = f"Invalid parent id: {parent!r}"
                logger.warning("Row %s: invalid parent id %r", idx, parent)
                continue
            builder.parent(int(parent.split(".", 1)[0]))

        try:
            report.created[int(idx)] = builder.save()
        except TermBuilderError as e:
            report.failed[int(idx)] = str(e)
            logger.warning("Row %s: %s", idx, e)

    logger.info(
        "Import finished: %d created, %d failed, %d skipped",
        len(report.created),
        len(report.failed),
        len(report.skipped),
    )
    return report
