"""
SQL storage for anchor presets.

Presets live in ``anchor_presets``, keyed by preset id and
scoped by user id; ``active_presets`` holds each user's selection.
SQLite URLs share a single connection (StaticPool) so
``sqlite://`` in-memory databases work across sessions in tests; every
other backend gets a bounded QueuePool.
"""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import Column, Date, DateTime, Index, MetaData, String, Table, UniqueConstraint, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from solarcal.core.config import settings

metadata = MetaData()

# One row per (user, preset)
anchor_presets = Table(
    "anchor_presets",
    metadata,
    Column("id", String(100), primary_key=True),
    Column("user_id", String(100), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("start_date", Date, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("user_id", "name", name="uq_anchor_presets_user_name"),
    # Presets are always loaded per user in creation order
    Index("idx_anchor_presets_user_created", "user_id", "created_at"),
)

# The preset each user last selected; "default" selects the built-in anchor
active_presets = Table(
    "active_presets",
    metadata,
    Column("user_id", String(100), primary_key=True),
    Column("preset_id", String(100), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

POOL_SIZE = 5
MAX_OVERFLOW = 10
POOL_RECYCLE_SECONDS = 3600

_engine: Optional[Engine] = None


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        return create_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_recycle=POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
    )


def get_engine() -> Engine:
    """Process-wide engine for ``DATABASE_URL``, created on first use."""
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL:
            raise RuntimeError("DATABASE_URL is not configured; presets are kept in memory")
        _engine = build_engine(settings.DATABASE_URL)
    return _engine


@contextmanager
def get_db_session(engine: Optional[Engine] = None) -> Iterator[Session]:
    """
    Transactional session: commits on success, rolls back on error.

    Usage:
        with get_db_session(engine) as session:
            session.execute(...)
    """
    session = sessionmaker(bind=engine or get_engine(), autoflush=False)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create missing tables; existing ones are left alone."""
    metadata.create_all(bind=engine or get_engine())


def drop_all_tables(engine: Optional[Engine] = None) -> None:
    """Drop every table. Tests and local development only."""
    metadata.drop_all(bind=engine or get_engine())
