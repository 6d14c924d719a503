"""
Points & achievement ledger.

The point history is append-only; a user's total is derived from it on
every read, so total and history cannot drift apart. Achievements are
append-only and deduplicated per (user, key).
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

from researchquest.application.ports.entity_store_port import EntityStorePort, EntityWriter
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.gamification import (
    AchievementType,
    LeaderboardEntry,
    PointTransaction,
    RedeemResult,
    Reward,
    TransactionType,
    UserAchievement,
    UserPoints,
    achievement_key,
)
from researchquest.domain.phase import PHASE_SPECS, PhaseAchievement, ResearchPhase
from researchquest.utils.logging_config import LogFiles, Logger

POINT_TRANSACTIONS = "point_transactions"
ACHIEVEMENTS = "achievements"
REWARDS = "rewards"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PointsLedger:
    def __init__(self, store: EntityStorePort):
        self._store = store

    # ------------------------------------------------------------------ points

    def award_points(
        self,
        session: SessionContext,
        amount: int,
        description: str,
        *,
        writer: Optional[EntityWriter] = None,
    ) -> PointTransaction:
        user = session.require_user()
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("amount must be a positive integer")

        txn = PointTransaction(
            owner_id=user.id,
            amount=amount,
            type=TransactionType.EARNED,
            description=(description or "").strip(),
            timestamp=_utcnow_iso(),
        )
        txn.id = (writer or self._store).create(
            POINT_TRANSACTIONS,
            {**txn.to_dict(), "owner_name": user.display_name},
        )
        if writer is None:
            self.log_award(user.id, txn.amount, txn.description)
        return txn

    @staticmethod
    def log_award(user_id: str, amount: int, description: str) -> None:
        """Log an award; callers passing ``writer`` log once their transaction commits."""
        Logger.info(f"awarded {amount} points to {user_id}: {description}", file=LogFiles.LEDGER)

    def get_points(self, session: SessionContext) -> UserPoints:
        user = session.require_user()
        return UserPoints(owner_id=user.id, history=self._history(self._store, user.id))

    def get_total(self, session: SessionContext) -> int:
        return self.get_points(session).total

    @staticmethod
    def _history(reader: EntityWriter, user_id: str) -> List[PointTransaction]:
        rows = reader.query(POINT_TRANSACTIONS, where={"owner_id": user_id}, order_by="created_at")
        return [PointTransaction.from_record(r) for r in rows]

    def redeem_reward(self, session: SessionContext, reward_id: str) -> RedeemResult:
        """
        Spend points on a reward.

        The balance check and the spend entry share one transaction; an
        insufficient balance writes nothing.
        """
        user = session.require_user()
        with self._store.transaction() as tx:
            record = tx.get(REWARDS, reward_id)
            balance = sum(t.amount for t in self._history(tx, user.id))
            if record is None:
                return RedeemResult(ok=False, reason="reward_not_found", balance=balance)
            reward = Reward.from_record(record)
            if not reward.available:
                return RedeemResult(ok=False, reason="reward_unavailable", balance=balance)
            if balance < reward.points_cost:
                return RedeemResult(ok=False, reason="insufficient_points", balance=balance)

            txn = PointTransaction(
                owner_id=user.id,
                amount=-reward.points_cost,
                type=TransactionType.SPENT,
                description=f"Redeemed reward: {reward.title}",
                timestamp=_utcnow_iso(),
            )
            txn.id = tx.create(
                POINT_TRANSACTIONS,
                {**txn.to_dict(), "owner_name": user.display_name, "reward_id": reward.id},
            )

        Logger.info(
            f"user {user.id} redeemed {reward.title} for {reward.points_cost} points",
            file=LogFiles.LEDGER,
        )
        return RedeemResult(ok=True, transaction=txn, balance=balance - reward.points_cost)

    # ------------------------------------------------------------ achievements

    def award_achievement(
        self,
        session: SessionContext,
        achievement: Union[UserAchievement, PhaseAchievement],
        *,
        dedupe: bool = True,
        writer: Optional[EntityWriter] = None,
    ) -> Tuple[UserAchievement, bool]:
        """Append an achievement unless the user already holds one with the same key.

        Returns the stored achievement and whether it was created now.
        """
        user = session.require_user()
        target = writer or self._store

        if isinstance(achievement, PhaseAchievement):
            achievement = UserAchievement(
                title=achievement.title,
                description=achievement.description,
                type=AchievementType(achievement.type),
                icon=achievement.icon,
                category=achievement.category,
                points=achievement.points,
            )
        key = achievement.key or achievement_key(achievement.title)
        if not key:
            raise ValueError("achievement title is required")

        existing = (
            target.query(ACHIEVEMENTS, where={"owner_id": user.id, "key": key}, limit=1)
            if dedupe
            else []
        )
        if existing:
            return UserAchievement.from_record(existing[0]), False

        achievement.owner_id = user.id
        achievement.key = key
        achievement.earned_at = _utcnow_iso()
        payload = achievement.to_dict()
        payload.pop("id", None)
        achievement.id = target.create(ACHIEVEMENTS, payload)
        if writer is None:
            self.log_achievement(user.id, achievement.title)
        return achievement, True

    @staticmethod
    def log_achievement(user_id: str, title: str) -> None:
        Logger.info(f"achievement '{title}' unlocked by {user_id}", file=LogFiles.LEDGER)

    def list_achievements(self, session: SessionContext) -> List[UserAchievement]:
        user = session.require_user()
        rows = self._store.query(ACHIEVEMENTS, where={"owner_id": user.id}, order_by="created_at")
        return [UserAchievement.from_record(r) for r in rows]

    @staticmethod
    def list_phase_achievements(phase: ResearchPhase) -> List[PhaseAchievement]:
        spec = PHASE_SPECS[phase]
        return [spec.completion_achievement] if spec.completion_achievement else []

    # ----------------------------------------------------------------- rewards

    def create_reward(
        self,
        *,
        title: str,
        points_cost: int,
        description: str = "",
        category: str = "",
        available: bool = True,
    ) -> Reward:
        if not (title or "").strip():
            raise ValueError("reward title is required")
        if points_cost <= 0:
            raise ValueError("points_cost must be positive")
        reward = Reward(
            title=title.strip(),
            points_cost=int(points_cost),
            description=(description or "").strip(),
            category=(category or "").strip(),
            available=bool(available),
        )
        payload = reward.to_dict()
        payload.pop("id")
        reward.id = self._store.create(REWARDS, payload)
        return reward

    def list_rewards(self, *, available_only: bool = True) -> List[Reward]:
        rows = self._store.query(REWARDS, order_by="points_cost")
        rewards = [Reward.from_record(r) for r in rows]
        if available_only:
            rewards = [r for r in rewards if r.available]
        return rewards

    # ------------------------------------------------------------- leaderboard

    def leaderboard(self, *, limit: int = 10) -> List[LeaderboardEntry]:
        totals: Dict[str, int] = defaultdict(int)
        names: Dict[str, str] = {}
        for row in self._store.query(POINT_TRANSACTIONS, order_by="created_at"):
            owner = str(row.get("owner_id") or "")
            if not owner:
                continue
            totals[owner] += int(row.get("amount") or 0)
            if row.get("owner_name"):
                names[owner] = str(row["owner_name"])

        achievement_counts: Dict[str, int] = defaultdict(int)
        for row in self._store.query(ACHIEVEMENTS):
            owner = str(row.get("owner_id") or "")
            if owner:
                achievement_counts[owner] += 1

        users = set(totals) | set(achievement_counts)
        ordered = sorted(
            users, key=lambda u: (-totals.get(u, 0), -achievement_counts.get(u, 0), u)
        )
        return [
            LeaderboardEntry(
                user_id=user_id,
                username=names.get(user_id) or "Anonymous",
                total_points=totals.get(user_id, 0),
                achievements=achievement_counts.get(user_id, 0),
                rank=index + 1,
            )
            for index, user_id in enumerate(ordered[: max(1, int(limit))])
        ]
