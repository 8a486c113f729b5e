"""SQL term store (SQLAlchemy Core) over a terms / term_taxonomy / term_relationships / termmeta schema."""

import contextlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass

from sqlalchemy import (
    Column,
    Connection,
    Engine,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    insert,
    literal,
    select,
    update,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from domain.schemas import TERM_NAME_MAX_LENGTH, StoreError, TermRecord, TermWriteResult
from domain.taxonomy.normalizer import TaxonomyRegistry, term_name_key
from infrastructure.config.models import StoreBackend, StoreConfig
from infrastructure.stores.base import CopyResult, TermStore
from infrastructure.stores.registry import register_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TermTables:
    """The four term tables for one table prefix."""

    metadata: MetaData
    terms: Table
    term_taxonomy: Table
    term_relationships: Table
    termmeta: Table


def build_term_tables(prefix: str = "wp_") -> TermTables:
    """Declare the term tables under ``prefix`` (no I/O)."""
    metadata = MetaData()

    terms = Table(
        f"{prefix}terms",
        metadata,
        Column("term_id", Integer, primary_key=True, autoincrement=True),
        Column("name", String(TERM_NAME_MAX_LENGTH), nullable=False, default=""),
        Column("slug", String(200), nullable=False, default=""),
        Column("term_group", Integer, nullable=False, default=0),
        Index(f"ix_{prefix}terms_slug", "slug"),
        Index(f"ix_{prefix}terms_name", "name"),
    )

    term_taxonomy = Table(
        f"{prefix}term_taxonomy",
        metadata,
        Column("term_taxonomy_id", Integer, primary_key=True, autoincrement=True),
        Column("term_id", Integer, ForeignKey(terms.c.term_id), nullable=False),
        Column("taxonomy", String(32), nullable=False),
        Column("description", Text, nullable=False, default=""),
        Column("parent", Integer, nullable=False, default=0),
        Column("count", Integer, nullable=False, default=0),
        UniqueConstraint("term_id", "taxonomy", name=f"uq_{prefix}term_taxonomy_term_id_taxonomy"),
        Index(f"ix_{prefix}term_taxonomy_taxonomy", "taxonomy"),
    )

    term_relationships = Table(
        f"{prefix}term_relationships",
        metadata,
        Column("object_id", Integer, primary_key=True),
        Column("term_taxonomy_id", Integer, primary_key=True),
        Column("term_order", Integer, nullable=False, default=0),
        Index(f"ix_{prefix}term_relationships_term_taxonomy_id", "term_taxonomy_id"),
    )

    termmeta = Table(
        f"{prefix}termmeta",
        metadata,
        Column("meta_id", Integer, primary_key=True, autoincrement=True),
        Column("term_id", Integer, nullable=False, default=0),
        Column("meta_key", String(255), nullable=True),
        Column("meta_value", Text, nullable=True),
        Index(f"ix_{prefix}termmeta_term_id", "term_id"),
        Index(f"ix_{prefix}termmeta_meta_key", "meta_key"),
    )

    return TermTables(
        metadata=metadata,
        terms=terms,
        term_taxonomy=term_taxonomy,
        term_relationships=term_relationships,
        termmeta=termmeta,
    )


def make_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection so the schema survives."""
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


class SqlTermStore(TermStore):
    """
    Term store backed by a relational database.

    Term rows live in ``terms`` (name/slug/group) and ``term_taxonomy`` (taxonomy,
    description, parent, count). Object relationships reference term_taxonomy_id,
    metadata references term_id. Each insert/update runs in one transaction; each
    copy step runs in its own.
    """

    backend = StoreBackend.SQL
    _backend_errors = (SQLAlchemyError,)

    def __init__(
        self,
        *,
        engine: Engine,
        taxonomies: TaxonomyRegistry,
        table_prefix: str = "wp_",
        create_schema: bool = True,
    ) -> None:
        super().__init__(taxonomies=taxonomies)
        self.engine = engine
        self.tables = build_term_tables(table_prefix)
        self._conn: Connection | None = None
        if create_schema:
            self.create_schema()

    @classmethod
    def from_cfg(cls, cfg: StoreConfig) -> "SqlTermStore":
        if cfg.database_url is None:
            raise ValueError("SqlTermStore requires database_url")
        engine = make_engine(cfg.database_url, echo=cfg.echo_sql)
        return cls(
            engine=engine,
            taxonomies=cfg.taxonomies,
            table_prefix=cfg.table_prefix,
            create_schema=cfg.create_schema,
        )

    def create_schema(self) -> None:
        """Create any missing term tables."""
        self.tables.metadata.create_all(self.engine)
        logger.debug("Term tables ready (%s)", ", ".join(sorted(self.tables.metadata.tables)))

    # ---- seeding helpers ----

    def add_relationship(self, object_id: int, term_id: int, term_order: int = 0) -> None:
        """Attach an object to a term (bumps the term count)."""
        rel = self.tables.term_relationships
        with self.engine.begin() as conn:
            tt_id = self._term_taxonomy_id(conn, term_id)
            if tt_id is None:
                raise ValueError(f"Unknown term_id={term_id}")
            conn.execute(insert(rel).values(object_id=object_id, term_taxonomy_id=tt_id, term_order=term_order))
            self._refresh_count(conn, tt_id)

    def add_meta(self, term_id: int, meta_key: str, meta_value: str | None) -> int:
        meta = self.tables.termmeta
        with self.engine.begin() as conn:
            res = conn.execute(insert(meta).values(term_id=term_id, meta_key=meta_key, meta_value=meta_value))
            return int(res.inserted_primary_key[0])

    def meta_for(self, term_id: int) -> list[tuple[str, str | None]]:
        meta = self.tables.termmeta
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(meta.c.meta_key, meta.c.meta_value).where(meta.c.term_id == term_id).order_by(meta.c.meta_id)
            )
            return [(r.meta_key, r.meta_value) for r in rows]

    def relationships_for(self, term_id: int) -> list[tuple[int, int]]:
        rel = self.tables.term_relationships
        with self.engine.connect() as conn:
            tt_id = self._term_taxonomy_id(conn, term_id)
            if tt_id is None:
                return []
            rows = conn.execute(
                select(rel.c.object_id, rel.c.term_order)
                .where(rel.c.term_taxonomy_id == tt_id)
                .order_by(rel.c.object_id)
            )
            return [(r.object_id, r.term_order) for r in rows]

    # ---- copy steps ----

    def copy_object_relationships(self, from_term_id: int, to_term_id: int) -> CopyResult:
        rel = self.tables.term_relationships
        try:
            with self.engine.begin() as conn:
                from_tt = self._term_taxonomy_id(conn, from_term_id)
                to_tt = self._term_taxonomy_id(conn, to_term_id)
                if from_tt is None or to_tt is None:
                    missing = from_term_id if from_tt is None else to_term_id
                    return StoreError(code="invalid_term", message="Empty Term.", data={"term_id": missing})

                n = conn.execute(
                    select(func.count()).select_from(rel).where(rel.c.term_taxonomy_id == from_tt)
                ).scalar_one()
                conn.execute(
                    insert(rel).from_select(
                        ["object_id", "term_taxonomy_id", "term_order"],
                        select(rel.c.object_id, literal(to_tt, Integer), rel.c.term_order).where(
                            rel.c.term_taxonomy_id == from_tt
                        ),
                    )
                )
                self._refresh_count(conn, to_tt)
        except SQLAlchemyError as e:
            logger.exception("copy_object_relationships %d -> %d failed", from_term_id, to_term_id)
            return StoreError(code="db_error", message=f"Could not copy object relationships: {e}")

        logger.debug("Copied %d object relationships %d -> %d", n, from_term_id, to_term_id)
        return int(n)

    def copy_term_metadata(self, from_term_id: int, to_term_id: int) -> CopyResult:
        meta = self.tables.termmeta
        try:
            with self.engine.begin() as conn:
                if self._term_taxonomy_id(conn, to_term_id) is None:
                    return StoreError(code="invalid_term", message="Empty Term.", data={"term_id": to_term_id})

                n = conn.execute(
                    select(func.count()).select_from(meta).where(meta.c.term_id == from_term_id)
                ).scalar_one()
                conn.execute(
                    insert(meta).from_select(
                        ["term_id", "meta_key", "meta_value"],
                        select(literal(to_term_id, Integer), meta.c.meta_key, meta.c.meta_value)
                        .where(meta.c.term_id == from_term_id)
                        .order_by(meta.c.meta_id),
                    )
                )
        except SQLAlchemyError as e:
            logger.exception("copy_term_metadata %d -> %d failed", from_term_id, to_term_id)
            return StoreError(code="db_error", message=f"Could not copy term metadata: {e}")

        logger.debug("Copied %d metadata rows %d -> %d", n, from_term_id, to_term_id)
        return int(n)

    # ---- primitives ----

    @contextlib.contextmanager
    def _unit_of_work(self) -> Iterator[None]:
        with self.engine.begin() as conn:
            self._conn = conn
            try:
                yield
            finally:
                self._conn = None

    @contextlib.contextmanager
    def _connect(self) -> Iterator[Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            with self.engine.connect() as conn:
                yield conn

    def _term_select(self):
        t, tt = self.tables.terms, self.tables.term_taxonomy
        return select(
            t.c.term_id,
            t.c.name,
            t.c.slug,
            t.c.term_group,
            tt.c.term_taxonomy_id,
            tt.c.taxonomy,
            tt.c.description,
            tt.c.parent,
            tt.c.count,
        ).select_from(t.join(tt, tt.c.term_id == t.c.term_id))

    def _fetch_one(self, stmt) -> TermRecord | None:
        with self._connect() as conn:
            row = conn.execute(stmt.limit(1)).first()
        return TermRecord(**row._mapping) if row is not None else None

    def _find_term(self, term_id: int) -> TermRecord | None:
        return self._fetch_one(self._term_select().where(self.tables.terms.c.term_id == term_id))

    def _find_by_slug(self, slug: str, taxonomy: str) -> TermRecord | None:
        t, tt = self.tables.terms, self.tables.term_taxonomy
        return self._fetch_one(self._term_select().where(t.c.slug == slug, tt.c.taxonomy == taxonomy))

    def _find_by_name(self, name: str, taxonomy: str, parent: int) -> TermRecord | None:
        t, tt = self.tables.terms, self.tables.term_taxonomy
        # SQLite lower() only folds ASCII, so names are compared in Python
        stmt = self._term_select().where(tt.c.taxonomy == taxonomy, tt.c.parent == parent).order_by(t.c.term_id)
        key = term_name_key(name)
        with self._connect() as conn:
            for row in conn.execute(stmt):
                if term_name_key(row.name) == key:
                    return TermRecord(**row._mapping)
        return None

    def _next_term_group(self) -> int:
        t = self.tables.terms
        with self._connect() as conn:
            current = conn.execute(select(func.max(t.c.term_group))).scalar()
        return int(current or 0) + 1

    def _set_term_group(self, term_id: int, term_group: int) -> None:
        t = self.tables.terms
        with self._connect() as conn:
            conn.execute(update(t).where(t.c.term_id == term_id).values(term_group=term_group))

    def _write_new_term(self, *, name, slug, taxonomy, description, parent, term_group) -> TermWriteResult:
        t, tt = self.tables.terms, self.tables.term_taxonomy
        with self._connect() as conn:
            res = conn.execute(insert(t).values(name=name, slug=slug, term_group=term_group))
            term_id = int(res.inserted_primary_key[0])
            res = conn.execute(
                insert(tt).values(
                    term_id=term_id,
                    taxonomy=taxonomy,
                    description=description,
                    parent=parent,
                    count=0,
                )
            )
            tt_id = int(res.inserted_primary_key[0])
        return TermWriteResult(term_id=term_id, term_taxonomy_id=tt_id)

    def _write_existing_term(self, term_id, *, name, slug, description, parent, term_group) -> TermWriteResult:
        t, tt = self.tables.terms, self.tables.term_taxonomy
        with self._connect() as conn:
            conn.execute(update(t).where(t.c.term_id == term_id).values(name=name, slug=slug, term_group=term_group))
            conn.execute(update(tt).where(tt.c.term_id == term_id).values(description=description, parent=parent))
            tt_id = self._term_taxonomy_id(conn, term_id)
        return TermWriteResult(term_id=term_id, term_taxonomy_id=tt_id or 0)

    def _term_taxonomy_id(self, conn: Connection, term_id: int) -> int | None:
        tt = self.tables.term_taxonomy
        value = conn.execute(select(tt.c.term_taxonomy_id).where(tt.c.term_id == term_id).limit(1)).scalar()
        return int(value) if value is not None else None

    def _refresh_count(self, conn: Connection, term_taxonomy_id: int) -> None:
        rel, tt = self.tables.term_relationships, self.tables.term_taxonomy
        n = conn.execute(
            select(func.count()).select_from(rel).where(rel.c.term_taxonomy_id == term_taxonomy_id)
        ).scalar_one()
        conn.execute(update(tt).where(tt.c.term_taxonomy_id == term_taxonomy_id).values(count=n))


register_store(StoreBackend.SQL, SqlTermStore)
