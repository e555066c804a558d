from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_SCRIPT_DB_URL = "sqlite:///villagecms.db"


def resolve_database_url(explicit: str | None = None) -> str:
    return (explicit or os.environ.get("DATABASE_URL") or DEFAULT_SCRIPT_DB_URL).strip()


def script_engine(db_url: str):
    engine = create_engine(db_url, pool_pre_ping=True, pool_recycle=1800)
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _fk_on(dbapi_connection, connection_record):
            dbapi_connection.cursor().execute("PRAGMA foreign_keys=ON")

    return engine


@contextmanager
def script_session(db_url: str | None = None):
    """Commit-or-rollback session for one-off scripts, outside any Flask app."""
    engine = script_engine(resolve_database_url(db_url))
    s: Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
