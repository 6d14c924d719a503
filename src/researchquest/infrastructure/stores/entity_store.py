from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, List, Mapping, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from researchquest.application.ports.entity_store_port import Predicate, Record
from researchquest.domain.errors import StoreWriteError
from researchquest.infrastructure.stores.models import Base, EntityModel
from researchquest.infrastructure.stores.sqlalchemy_db import SessionProvider, get_db_url
from researchquest.utils.logging_config import LogFiles, Logger

_RESERVED_FIELDS = {"id", "created_at", "updated_at"}
_COLUMN_ORDER_FIELDS = {"created_at", "updated_at"}

_seq_lock = threading.Lock()
_last_seq = 0


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_seq() -> int:
    global _last_seq
    with _seq_lock:
        _last_seq = max(time.time_ns(), _last_seq + 1)
        return _last_seq


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def _sort_key(value: Any) -> tuple:
    # None sorts first; mixed types fall back to their string form
    if value is None:
        return (0, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (1, value)
    return (2, str(value))


class _UnitOfWork:
    """Entity operations bound to one ORM session; the caller commits."""

    def __init__(self, session: Session):
        self._session = session

    def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        record_id: Optional[str] = None,
    ) -> str:
        now = _utcnow()
        resolved_id = (record_id or "").strip() or uuid4().hex
        data = {k: v for k, v in dict(record).items() if k not in _RESERVED_FIELDS}
        row = EntityModel(
            collection=collection,
            id=resolved_id,
            owner_id=(str(data["owner_id"]) if data.get("owner_id") else None),
            seq=_next_seq(),
            created_at=now,
            updated_at=now,
        )
        row.set_data(data)
        self._session.add(row)
        self._session.flush()
        return resolved_id

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        row = self._session.get(EntityModel, (collection, record_id))
        return self._row_to_record(row) if row else None

    def update(
        self, collection: str, record_id: str, fields: Mapping[str, Any]
    ) -> Optional[Record]:
        row = self._session.get(EntityModel, (collection, record_id))
        if row is None:
            return None
        data = row.get_data()
        data.update({k: v for k, v in dict(fields).items() if k not in _RESERVED_FIELDS})
        row.set_data(data)
        if data.get("owner_id"):
            row.owner_id = str(data["owner_id"])
        row.updated_at = _utcnow()
        self._session.add(row)
        self._session.flush()
        return self._row_to_record(row)

    def delete(self, collection: str, record_id: str) -> bool:
        row = self._session.get(EntityModel, (collection, record_id))
        if row is None:
            return False
        self._session.delete(row)
        self._session.flush()
        return True

    def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Record]:
        filters = dict(where or {})
        stmt = select(EntityModel).where(EntityModel.collection == collection)
        owner_id = filters.pop("owner_id", None)
        if owner_id is not None:
            stmt = stmt.where(EntityModel.owner_id == str(owner_id))
        if order_by in _COLUMN_ORDER_FIELDS:
            column = getattr(EntityModel, order_by)
            if descending:
                stmt = stmt.order_by(column.desc(), EntityModel.seq.desc())
            else:
                stmt = stmt.order_by(column.asc(), EntityModel.seq.asc())
        else:
            stmt = stmt.order_by(EntityModel.seq.asc())

        rows = self._session.execute(stmt).scalars().all()
        records = [self._row_to_record(r) for r in rows]
        if filters:
            records = [
                r for r in records if all(r.get(k) == v for k, v in filters.items())
            ]
        if predicate is not None:
            records = [r for r in records if predicate(r)]
        if order_by and order_by not in _COLUMN_ORDER_FIELDS:
            records.sort(key=lambda r: _sort_key(r.get(order_by)), reverse=descending)
        if limit is not None:
            records = records[: max(0, int(limit))]
        return records

    @staticmethod
    def _row_to_record(row: EntityModel) -> Record:
        record = row.get_data()
        record["id"] = row.id
        record["created_at"] = _iso(row.created_at)
        record["updated_at"] = _iso(row.updated_at)
        return record


class SqlAlchemyEntityStore:
    """
    Document store over a single ``entities`` table.

    Every public operation runs in its own transaction; ``transaction()``
    groups several operations into one commit.
    """

    def __init__(self, db_url: Optional[str] = None, *, auto_create_schema: bool = True):
        self.db_url = db_url or get_db_url()
        self._provider = SessionProvider(self.db_url)
        if auto_create_schema:
            Base.metadata.create_all(self._provider.engine)

    @contextmanager
    def transaction(self) -> Iterator[_UnitOfWork]:
        with self._provider.session() as session:
            try:
                yield _UnitOfWork(session)
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                Logger.error(f"entity store transaction failed: {exc}", file=LogFiles.ERROR)
                raise StoreWriteError() from exc
            except BaseException:
                session.rollback()
                raise

    def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        record_id: Optional[str] = None,
    ) -> str:
        with self.transaction() as tx:
            return tx.create(collection, record, record_id=record_id)

    def get(self, collection: str, record_id: str) -> Optional[Record]:
        with self.transaction() as tx:
            return tx.get(collection, record_id)

    def update(
        self, collection: str, record_id: str, fields: Mapping[str, Any]
    ) -> Optional[Record]:
        with self.transaction() as tx:
            return tx.update(collection, record_id, fields)

    def delete(self, collection: str, record_id: str) -> bool:
        with self.transaction() as tx:
            return tx.delete(collection, record_id)

    def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Record]:
        with self.transaction() as tx:
            return tx.query(
                collection,
                where=where,
                predicate=predicate,
                order_by=order_by,
                descending=descending,
                limit=limit,
            )

    def count(self, collection: str, *, where: Optional[Mapping[str, Any]] = None) -> int:
        return len(self.query(collection, where=where))

    def close(self) -> None:
        self._provider.engine.dispose()

