from __future__ import annotations

import pytest

from researchquest.application.services.request_guard import REQUESTS, InFlightGate, RequestGuard
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.errors import NotAuthenticatedError, OperationInProgressError


def test_gate_rejects_reentry_and_releases():
    gate = InFlightGate()
    with gate.hold("phase:p1"):
        assert gate.is_active("phase:p1")
        with pytest.raises(OperationInProgressError):
            with gate.hold("phase:p1"):
                pass
        with gate.hold("phase:p2"):
            pass
    assert not gate.is_active("phase:p1")


def test_gate_releases_after_error():
    gate = InFlightGate()
    with pytest.raises(RuntimeError):
        with gate.hold("k"):
            raise RuntimeError("boom")
    assert not gate.is_active("k")


def test_guard_replays_recorded_result(store, alice, bob):
    guard = RequestGuard(store)
    calls = []

    def action():
        calls.append(1)
        return {"n": len(calls)}

    first = guard.run(alice, scope="award", request_id="r1", action=action)
    again = guard.run(alice, scope="award", request_id="r1", action=action)
    other_scope = guard.run(alice, scope="redeem", request_id="r1", action=action)
    other_user = guard.run(bob, scope="award", request_id="r1", action=action)

    assert first == again == {"n": 1}
    assert other_scope == {"n": 2}
    assert other_user == {"n": 3}
    assert store.count(REQUESTS) == 3


def test_guard_without_request_id_always_runs(store, alice):
    guard = RequestGuard(store)
    calls = []
    for _ in range(2):
        guard.run(alice, scope="award", request_id=None, action=lambda: calls.append(1) or {})
    assert len(calls) == 2
    assert store.count(REQUESTS) == 0


def test_failed_action_is_not_recorded(store, alice):
    guard = RequestGuard(store)

    def explode():
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        guard.run(alice, scope="award", request_id="r1", action=explode)
    assert guard.run(alice, scope="award", request_id="r1", action=lambda: {"ok": True}) == {"ok": True}


def test_guard_requires_identity_for_keyed_requests(store):
    guard = RequestGuard(store)
    with pytest.raises(NotAuthenticatedError):
        guard.run(SessionContext.anonymous(), scope="x", request_id="r1", action=dict)
