from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

DEFAULT_DB_URL = "sqlite:///data/researchquest.db"


def get_db_url() -> str:
    return os.getenv("RESEARCHQUEST_DB_URL") or DEFAULT_DB_URL


def _ensure_sqlite_dir(db_url: str) -> None:
    prefix = "sqlite:///"
    if not db_url.startswith(prefix):
        return
    path = db_url[len(prefix):]
    if not path or path == ":memory:":
        return
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def _enable_sqlite_pragmas(dbapi_connection, _record) -> None:
    # pysqlite must not emit its own BEGIN; _begin_immediate does
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def _begin_immediate(conn) -> None:
    # take the write lock up front so read-check-write units of work serialize
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(db_url: Optional[str] = None) -> Engine:
    url = db_url or get_db_url()
    if url.startswith("sqlite"):
        _ensure_sqlite_dir(url)
        engine = create_engine(
            url, future=True, connect_args={"check_same_thread": False}
        )
        event.listen(engine, "connect", _enable_sqlite_pragmas)
        event.listen(engine, "begin", _begin_immediate)
        return engine
    return create_engine(url, future=True, pool_pre_ping=True, isolation_level="SERIALIZABLE")


class SessionProvider:
    """Owns one engine and hands out short-lived ORM sessions."""

    def __init__(self, db_url: Optional[str] = None):
        self.db_url = db_url or get_db_url()
        self.engine = create_db_engine(self.db_url)
        self._factory = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)

    @contextmanager
    def session(self) -> Iterator[Session]:
        session = self._factory()
        try:
            yield session
        finally:
            session.close()
