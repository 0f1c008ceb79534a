"""
atlas/core/database.py

SQLAlchemy engine, sessions and Core tables for the analytics store.

The engine is created lazily from TEST_DATABASE_URL, DATABASE_URL (env) or
settings.DATABASE_URL, in that order. SQLite URLs get a single shared
connection so a temp-file database behaves the same across threads in tests;
everything else gets a bounded QueuePool.
"""

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.sql import func

from atlas.core.config import settings
from atlas.core.logging import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

metadata = MetaData()

POOL_SIZE = 5
MAX_OVERFLOW = 10
POOL_TIMEOUT = 30
POOL_RECYCLE = 1800  # seconds

_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> Optional[str]:
    return os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or settings.DATABASE_URL


def _engine_options(url: str) -> Dict[str, Any]:
    if url.startswith("sqlite"):
        return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
    return {
        "poolclass": QueuePool,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
        "pool_recycle": POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def init_engine(database_url: Optional[str] = None) -> Engine:
    """(Re)create the engine and session factory; raises ValueError without a URL."""
    global _engine, _SessionLocal

    url = database_url or get_database_url()
    if not url:
        raise ValueError("DATABASE_URL is not configured (environment or .env).")

    _engine = create_engine(url, echo=False, **_engine_options(url))
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def dispose_engine() -> None:
    """Drop the cached engine so the next caller re-reads the URL."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def get_engine() -> Engine:
    if _engine is None:
        init_engine()
    return _engine


@contextmanager
def get_db_session() -> Iterator[Session]:
    """
    Unit of work: commit on success, roll back and re-raise on error.

        with get_db_session() as session:
            session.execute(insert(user_activities).values(...))
    """
    if _SessionLocal is None:
        init_engine()
    session = _SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables() -> None:
    """Create missing analytics tables; existing ones are left alone."""
    metadata.create_all(bind=get_engine())


def drop_all_tables() -> None:
    """Drop every analytics table. Tests and local development only."""
    metadata.drop_all(bind=get_engine())


def check_connection() -> bool:
    """True when a trivial query succeeds; failures are logged, not raised."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("database.unavailable", extra={"error_code": type(exc).__name__})
        return False
    return True


# User activity events (append-only)
user_activities = Table(
    'user_activities',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('activity_type', String(50), nullable=False, index=True),
    Column('entity_type', String(100), nullable=True),
    Column('entity_id', String(100), nullable=True),
    Column('activity_metadata', JSON, nullable=True),
    Column('duration', Float, nullable=True),
    Column('timestamp', DateTime(timezone=True), nullable=False, index=True),
    Index('idx_user_activities_user_timestamp', 'user_id', 'timestamp'),
)

# Query log (append-only)
query_analytics = Table(
    'query_analytics',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('query', Text, nullable=False),
    Column('query_type', String(50), nullable=False),
    Column('response_time', Float, nullable=True),
    Column('result_count', Integer, nullable=True),
    Column('documents_referenced', JSON, nullable=False),
    Column('timestamp', DateTime(timezone=True), nullable=False, index=True),
    Index('idx_query_analytics_user_timestamp', 'user_id', 'timestamp'),
)

# Uploaded documents (metadata only)
documents = Table(
    'documents',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('original_name', Text, nullable=False),
    Column('access_count', Integer, nullable=False, server_default='0'),
    Column('uploaded_at', DateTime(timezone=True), nullable=False, index=True),
)

# Per-sprint team metrics (velocity, completion rate, ...)
team_metrics = Table(
    'team_metrics',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('team_id', String(100), nullable=False, index=True),
    Column('metric_type', String(50), nullable=False),
    Column('value', Float, nullable=False),
    Column('sprint', String(100), nullable=True),
    Column('recorded_at', DateTime(timezone=True), nullable=False),
    Index('idx_team_metrics_team_type_recorded', 'team_id', 'metric_type', 'recorded_at'),
)

# Per-sprint risk scores
team_risk_scores = Table(
    'team_risk_scores',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('team_id', String(100), nullable=False, index=True),
    Column('overall_risk_score', Float, nullable=False),
    Column('sprint', String(100), nullable=True),
    Column('calculated_at', DateTime(timezone=True), nullable=False),
    Index('idx_team_risk_scores_team_calculated', 'team_id', 'calculated_at'),
)

# Persisted analytics snapshots (immutable, one row per generation)
analytics_snapshots = Table(
    'analytics_snapshots',
    metadata,
    Column('id', String(64), primary_key=True),
    Column('user_id', String(100), nullable=True, index=True),
    Column('team_id', String(100), nullable=True, index=True),
    Column('snapshot_type', String(50), nullable=False),
    Column('period', String(100), nullable=False),
    Column('start_date', DateTime(timezone=True), nullable=False),
    Column('end_date', DateTime(timezone=True), nullable=False),
    Column('metrics', JSON, nullable=False),
    Column('trends', JSON, nullable=False),
    Column('predictions', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_analytics_snapshots_type_created', 'snapshot_type', 'created_at'),
)
