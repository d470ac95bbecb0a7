"""
PostgreSQL access for historical cutoffs.

historical_cutoffs holds one row per
(college, exam, year, category, round, quota) with opening/closing ranks.
The offline ingestion pipeline writes it; this service only reads, always
through parameterized raw SQL.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> Engine:
    """
    Shared engine, created on first use.
    pool_size=5 ready connections, up to 10 more under load;
    pre-ping drops connections the server closed while idle.
    """
    settings = get_settings()
    return create_engine(
        settings.postgres_url,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        echo=settings.debug,
    )


@contextmanager
def get_db_session(engine: Optional[Engine] = None):
    """
    Session bound to `engine` (the shared engine by default); committed
    on success, rolled back and re-raised on error.

        with get_db_session() as db:
            db.execute(text("SELECT COUNT(*) FROM historical_cutoffs"))
    """
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine or get_engine())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection(engine: Optional[Engine] = None) -> bool:
    """SELECT 1 round trip; False (and a warning) when the server is unreachable."""
    try:
        with get_db_session(engine) as db:
            return db.execute(text("SELECT 1")).scalar() == 1
    except Exception as e:
        logger.warning("PostgreSQL connection failed: %s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None, engine: Optional[Engine] = None,
                    timeout_ms: Optional[int] = None) -> List[dict]:
    """
    Run one parameterized statement and return its rows as dicts.

    timeout_ms becomes a transaction-local statement_timeout on
    PostgreSQL; other dialects (SQLite in tests) ignore it.
    """
    with get_db_session(engine) as db:
        if timeout_ms is not None and db.get_bind().dialect.name == "postgresql":
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
        rows = db.execute(text(sql), params or {}).mappings().all()
        return [dict(row) for row in rows]
