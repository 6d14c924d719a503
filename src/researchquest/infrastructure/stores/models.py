from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import BigInteger, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class EntityModel(Base):
    """
    Schema-less document row.

    One table holds every collection (projects, tasks, point_transactions,
    achievements, rewards, communities, community_joins, resources,
    topic_selections, requests); the record body lives in ``data_json``.
    """

    __tablename__ = "entities"
    __table_args__ = (
        Index("ix_entities_collection_owner", "collection", "owner_id"),
        Index("ix_entities_collection_created", "collection", "created_at"),
    )

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)

    # insertion order tiebreaker for rows sharing a timestamp
    seq: Mapped[int] = mapped_column(BigInteger, default=0)
    data_json: Mapped[str] = mapped_column(Text, default="{}")

    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    def set_data(self, data: Dict[str, Any]) -> None:
        self.data_json = json.dumps(data or {}, ensure_ascii=False)

    def get_data(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.data_json or "{}")
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
