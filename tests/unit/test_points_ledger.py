from __future__ import annotations

import threading
import time

import pytest

from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.errors import NotAuthenticatedError
from researchquest.domain.gamification import TransactionType, UserAchievement
from researchquest.domain.phase import PHASE_SPECS, ResearchPhase
from researchquest.utils.logging_config import Logger


def test_award_points_appends_history_and_derives_total(store, alice):
    ledger = PointsLedger(store)

    ledger.award_points(alice, 50, "Selected research topic: Machine Learning")
    ledger.award_points(alice, 100, "Completed Discovery phase")

    points = ledger.get_points(alice)
    assert points.total == 150
    assert [t.amount for t in points.history] == [50, 100]
    assert all(t.type == TransactionType.EARNED for t in points.history)
    assert ledger.get_total(alice) == 150


@pytest.mark.parametrize("amount", [0, -5, True, 2.5])
def test_award_points_rejects_non_positive_amounts(store, alice, amount):
    ledger = PointsLedger(store)
    with pytest.raises(ValueError):
        ledger.award_points(alice, amount, "bad")
    assert ledger.get_total(alice) == 0


def test_anonymous_session_cannot_earn(store):
    ledger = PointsLedger(store)
    with pytest.raises(NotAuthenticatedError):
        ledger.award_points(SessionContext.anonymous(), 10, "nope")


def test_redeem_reward_checks_balance(store, alice):
    ledger = PointsLedger(store)
    reward = ledger.create_reward(title="Mentor session", points_cost=120)
    ledger.award_points(alice, 100, "Completed Discovery phase")

    refused = ledger.redeem_reward(alice, reward.id)
    assert refused.ok is False
    assert refused.reason == "insufficient_points"
    assert ledger.get_total(alice) == 100

    ledger.award_points(alice, 50, "bonus")
    redeemed = ledger.redeem_reward(alice, reward.id)
    assert redeemed.ok is True
    assert redeemed.balance == 30
    assert redeemed.transaction.type == TransactionType.SPENT
    assert ledger.get_total(alice) == 30


def test_concurrent_redeems_cannot_overspend(store, alice, monkeypatch):
    ledger = PointsLedger(store)
    reward = ledger.create_reward(title="Lab tour", points_cost=100)
    ledger.award_points(alice, 100, "Completed Discovery phase")

    read_history = PointsLedger._history

    def slow_history(reader, user_id):
        rows = read_history(reader, user_id)
        time.sleep(0.2)
        return rows

    monkeypatch.setattr(PointsLedger, "_history", staticmethod(slow_history))

    start = threading.Barrier(2)
    results = []

    def redeem():
        start.wait()
        results.append(ledger.redeem_reward(alice, reward.id))

    workers = [threading.Thread(target=redeem) for _ in range(2)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(timeout=10)

    assert sorted(r.ok for r in results) == [False, True]
    assert [r.reason for r in results if not r.ok] == ["insufficient_points"]
    assert ledger.get_total(alice) == 0


def test_redeem_unknown_or_unavailable_reward(store, alice):
    ledger = PointsLedger(store)
    ledger.award_points(alice, 500, "seed")
    hidden = ledger.create_reward(title="Retired badge", points_cost=10, available=False)

    assert ledger.redeem_reward(alice, "missing").reason == "reward_not_found"
    assert ledger.redeem_reward(alice, hidden.id).reason == "reward_unavailable"
    assert ledger.get_total(alice) == 500


def test_achievements_are_deduplicated_by_title(store, alice):
    ledger = PointsLedger(store)
    spec = PHASE_SPECS[ResearchPhase.DISCOVERY].completion_achievement

    first, created = ledger.award_achievement(alice, spec)
    again, created_again = ledger.award_achievement(alice, spec)

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert len(ledger.list_achievements(alice)) == 1


def test_achievements_without_dedupe_append(store, alice):
    ledger = PointsLedger(store)
    ledger.award_achievement(alice, UserAchievement(title="Helper"), dedupe=False)
    ledger.award_achievement(alice, UserAchievement(title="Helper"), dedupe=False)
    assert len(ledger.list_achievements(alice)) == 2


def test_list_rewards_orders_by_cost(store):
    ledger = PointsLedger(store)
    ledger.create_reward(title="Big", points_cost=500)
    ledger.create_reward(title="Small", points_cost=50)
    ledger.create_reward(title="Off", points_cost=10, available=False)

    assert [r.title for r in ledger.list_rewards()] == ["Small", "Big"]
    assert [r.title for r in ledger.list_rewards(available_only=False)] == ["Off", "Small", "Big"]


def test_leaderboard_ranks_by_derived_totals(store, alice, bob):
    ledger = PointsLedger(store)
    ledger.award_points(alice, 100, "a")
    ledger.award_points(bob, 150, "b")
    ledger.award_achievement(alice, UserAchievement(title="Early Bird"))
    nameless = SessionContext.for_user("u-carol")
    ledger.award_points(nameless, 100, "c")

    entries = ledger.leaderboard(limit=10)

    assert [e.user_id for e in entries] == ["u-bob", "u-alice", "u-carol"]
    assert [e.rank for e in entries] == [1, 2, 3]
    assert entries[1].achievements == 1
    assert entries[2].username == "Anonymous"
    assert len(ledger.leaderboard(limit=1)) == 1


def test_rolled_back_awards_are_not_logged(store, alice, monkeypatch):
    logged = []
    monkeypatch.setattr(
        Logger, "info", staticmethod(lambda message, file=None: logged.append(message))
    )
    ledger = PointsLedger(store)

    with pytest.raises(RuntimeError):
        with store.transaction() as tx:
            ledger.award_points(alice, 50, "Workshop", writer=tx)
            ledger.award_achievement(alice, UserAchievement(title="Early Bird"), writer=tx)
            raise RuntimeError("commit aborted")

    assert logged == []
    assert ledger.get_total(alice) == 0

    ledger.award_points(alice, 50, "Workshop")
    assert logged == ["awarded 50 points to u-alice: Workshop"]
