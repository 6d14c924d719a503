"""Points ledger, achievements and rewards."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TransactionType(str, Enum):
    EARNED = "earned"
    SPENT = "spent"


class AchievementType(str, Enum):
    BADGE = "badge"
    MILESTONE = "milestone"
    REWARD = "reward"


def achievement_key(title: str) -> str:
    """Normalised title used to deduplicate achievements per user."""
    return re.sub(r"[^a-z0-9]+", "-", (title or "").strip().lower()).strip("-")


@dataclass
class PointTransaction:
    amount: int
    type: TransactionType
    description: str
    owner_id: str = ""
    id: str = ""
    timestamp: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "PointTransaction":
        return cls(
            id=str(record.get("id") or ""),
            owner_id=str(record.get("owner_id") or ""),
            amount=int(record.get("amount") or 0),
            type=TransactionType(record.get("type") or TransactionType.EARNED.value),
            description=str(record.get("description") or ""),
            timestamp=record.get("timestamp") or record.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "amount": self.amount,
            "type": self.type.value,
            "description": self.description,
            "timestamp": self.timestamp,
        }


@dataclass
class UserPoints:
    """Ledger view; ``total`` is always the sum of ``history`` amounts."""

    owner_id: str
    history: List[PointTransaction] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(t.amount for t in self.history)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_id": self.owner_id,
            "total": self.total,
            "history": [t.to_dict() for t in self.history],
        }


@dataclass
class UserAchievement:
    title: str
    description: str = ""
    type: AchievementType = AchievementType.BADGE
    icon: str = ""
    category: str = ""
    # informational; never feeds the points total
    points: int = 0
    owner_id: str = ""
    id: str = ""
    key: str = ""
    earned_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UserAchievement":
        return cls(
            id=str(record.get("id") or ""),
            owner_id=str(record.get("owner_id") or ""),
            key=str(record.get("key") or ""),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            type=AchievementType(record.get("type") or AchievementType.BADGE.value),
            icon=str(record.get("icon") or ""),
            category=str(record.get("category") or ""),
            points=int(record.get("points") or 0),
            earned_at=record.get("earned_at") or record.get("created_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "key": self.key,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "icon": self.icon,
            "category": self.category,
            "points": self.points,
            "earned_at": self.earned_at,
        }


@dataclass
class Reward:
    title: str
    points_cost: int
    description: str = ""
    category: str = ""
    available: bool = True
    id: str = ""

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Reward":
        return cls(
            id=str(record.get("id") or ""),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            category=str(record.get("category") or ""),
            points_cost=int(record.get("points_cost") or 0),
            available=bool(record.get("available", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "points_cost": self.points_cost,
            "available": self.available,
        }


@dataclass
class RedeemResult:
    ok: bool
    reason: str = ""
    transaction: Optional[PointTransaction] = None
    balance: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "reason": self.reason,
            "transaction": self.transaction.to_dict() if self.transaction else None,
            "balance": self.balance,
        }


@dataclass
class LeaderboardEntry:
    user_id: str
    username: str
    total_points: int
    achievements: int
    rank: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "username": self.username,
            "total_points": self.total_points,
            "achievements": self.achievements,
            "rank": self.rank,
        }
