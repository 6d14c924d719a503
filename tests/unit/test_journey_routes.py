from __future__ import annotations

from pathlib import Path

from fastapi.testclient import TestClient

from researchquest.api import main as api_main
from researchquest.api.routes import gamification as gamification_route
from researchquest.api.routes import journey as journey_route
from researchquest.api.routes import projects as projects_route
from researchquest.api.routes import tasks as tasks_route
from researchquest.api.routes import topics as topics_route
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.phase_controller import PhaseProgressionController
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.request_guard import RequestGuard
from researchquest.application.services.task_service import TaskTracker
from researchquest.infrastructure.stores.entity_store import SqlAlchemyEntityStore

ALICE = {"X-User-Id": "u-alice", "X-User-Name": "Alice"}


def _wire(tmp_path: Path, monkeypatch) -> SqlAlchemyEntityStore:
    store = SqlAlchemyEntityStore(db_url=f"sqlite:///{tmp_path / 'journey-routes.db'}")
    controller = PhaseProgressionController(store)

    monkeypatch.setattr(projects_route, "_project_registry", ProjectRegistry(store))
    monkeypatch.setattr(tasks_route, "_task_tracker", TaskTracker(store, guard=RequestGuard(store)))
    monkeypatch.setattr(journey_route, "_controller", controller)
    monkeypatch.setattr(journey_route, "_request_guard", RequestGuard(store, gate=controller.gate))
    monkeypatch.setattr(topics_route, "_store", store)
    monkeypatch.setattr(topics_route, "_controller", controller)
    monkeypatch.setattr(topics_route, "_recommender", None)
    monkeypatch.setattr(gamification_route, "_ledger", PointsLedger(store))
    return store


def test_research_journey_end_to_end(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        created = client.post("/api/projects", json={"title": "Reef acoustics"}, headers=ALICE)
        project_id = created.json()["id"]

        questionnaire = client.post(
            f"/api/projects/{project_id}/topic/questionnaire", json={"topic_id": "4"}, headers=ALICE
        )
        confirmed = client.post(
            f"/api/projects/{project_id}/topic",
            json={
                "topic_id": "4",
                "reason": "Warming oceans",
                "interests": ["Environment"],
                "goals": ["Contribute to open data"],
            },
            headers=ALICE,
        )
        board = client.get(f"/api/projects/{project_id}/journey", headers=ALICE)
        stale = client.post(
            f"/api/projects/{project_id}/journey/complete-phase",
            json={"current_phase": "discovery"},
            headers=ALICE,
        )
        design = client.post(
            f"/api/projects/{project_id}/journey/complete-phase",
            json={"current_phase": "design"},
            headers={**ALICE, "X-Request-Id": "click-1"},
        )
        replay = client.post(
            f"/api/projects/{project_id}/journey/complete-phase",
            json={"current_phase": "design"},
            headers={**ALICE, "X-Request-Id": "click-1"},
        )
        points = client.get("/api/points", headers=ALICE)
        achievements = client.get("/api/achievements", headers=ALICE)
        leaderboard = client.get("/api/leaderboard")
        history = client.get("/api/topics/history", headers=ALICE)

    assert created.status_code == 200
    assert created.json()["phase"] == "discovery"

    assert questionnaire.status_code == 200
    assert questionnaire.json()["interest_options"] == ["Environment", "Global Warming", "Sustainability"]

    assert confirmed.status_code == 200
    body = confirmed.json()
    assert body["points_awarded"] == 150
    assert body["peak_progress"] == 100
    assert body["transition"]["to_phase"] == "design"
    assert body["project"]["topic"]["title"] == "Climate Change"

    assert board.status_code == 200
    assert board.json()["active_phase"] == "design"
    assert [p["status"] for p in board.json()["phases"]] == ["completed", "current", "locked", "locked"]

    assert stale.status_code == 400

    assert design.status_code == 200
    assert design.json()["to_phase"] == "development"
    assert replay.status_code == 200
    assert replay.json() == design.json()

    assert points.json()["total"] == 300
    assert len(points.json()["history"]) == 3
    assert {a["title"] for a in achievements.json()["achievements"]} == {
        "Discovery Master",
        "Research Architect",
    }
    assert leaderboard.json()["entries"][0]["username"] == "Alice"
    assert len(history.json()["history"]) == 1


def test_progress_routes_and_completion(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        project_id = client.post("/api/projects", json={"title": "Bees"}, headers=ALICE).json()["id"]
        no_topic = client.put(
            f"/api/projects/{project_id}/journey/progress", json={"value": 100}, headers=ALICE
        )
        partial = client.put(
            f"/api/projects/{project_id}/journey/progress", json={"value": 40}, headers=ALICE
        )
        client.post(
            f"/api/projects/{project_id}/journey/complete-phase",
            json={"current_phase": "discovery"},
            headers=ALICE,
        )
        step = client.post(
            f"/api/projects/{project_id}/journey/progress/advance", json={"step": 30}, headers=ALICE
        )
        early = client.post(f"/api/projects/{project_id}/journey/complete-research", headers=ALICE)
        for phase in ("design", "development"):
            client.post(
                f"/api/projects/{project_id}/journey/complete-phase",
                json={"current_phase": phase},
                headers=ALICE,
            )
        done = client.post(f"/api/projects/{project_id}/journey/complete-research", headers=ALICE)

    assert no_topic.status_code == 400
    assert partial.status_code == 200
    assert partial.json()["transition"] is None
    assert partial.json()["project"]["progress"] == 40

    assert step.json()["project"]["progress"] == 30
    assert step.json()["transition"] is None

    assert early.status_code == 400
    assert done.status_code == 200
    assert done.json()["status"] == "completed"
    assert done.json()["phase"] == "evaluation"


def test_identity_and_lookup_errors(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        anonymous = client.post("/api/projects", json={"title": "Nope"})
        missing = client.get("/api/projects/does-not-exist", headers=ALICE)
        project_id = client.post("/api/projects", json={"title": "Mine"}, headers=ALICE).json()["id"]
        foreign = client.get(f"/api/projects/{project_id}", headers={"X-User-Id": "u-bob"})
        bad_topic = client.post(
            f"/api/projects/{project_id}/topic",
            json={"topic_id": "1", "reason": "x", "interests": ["Astrology"], "goals": ["Publish a paper"]},
            headers=ALICE,
        )
        unknown_topic = client.post(
            f"/api/projects/{project_id}/topic/questionnaire", json={"topic_id": "99"}, headers=ALICE
        )
        bad_phase = client.get("/api/achievements/phases/publishing")

    assert anonymous.status_code == 401
    assert missing.status_code == 404
    assert foreign.status_code == 404
    assert bad_topic.status_code == 400
    assert unknown_topic.status_code == 404
    assert bad_phase.status_code == 400


def test_task_routes(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        project_id = client.post("/api/projects", json={"title": "Tasks"}, headers=ALICE).json()["id"]
        created = client.post(
            f"/api/projects/{project_id}/tasks",
            json={"title": "Draft survey", "priority": "high"},
            headers={**ALICE, "X-Request-Id": "t-1"},
        )
        duplicate = client.post(
            f"/api/projects/{project_id}/tasks",
            json={"title": "Draft survey", "priority": "high"},
            headers={**ALICE, "X-Request-Id": "t-1"},
        )
        task_id = created.json()["id"]
        moved = client.put(f"/api/tasks/{task_id}/status", json={"status": "in_progress"}, headers=ALICE)
        invalid = client.put(f"/api/tasks/{task_id}/status", json={"status": "archived"}, headers=ALICE)
        grouped = client.get(f"/api/projects/{project_id}/tasks/grouped", headers=ALICE)
        listed = client.get(f"/api/projects/{project_id}/tasks", headers=ALICE)
        deleted = client.delete(f"/api/tasks/{task_id}", headers=ALICE)

    assert created.status_code == 200
    assert duplicate.json()["id"] == task_id
    assert moved.json()["status"] == "in_progress"
    assert invalid.status_code == 400
    assert [t["title"] for t in grouped.json()["in_progress"]] == ["Draft survey"]
    assert [t["key"] for t in grouped.json()["todo"]] == ["select-topic"]
    assert len(listed.json()["tasks"]) == 2
    assert deleted.json()["ok"] is True


def test_reward_routes(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        reward = client.post(
            "/api/rewards", json={"title": "Coffee chat", "points_cost": 80}, headers=ALICE
        ).json()
        poor = client.post(f"/api/rewards/{reward['id']}/redeem", headers=ALICE)
        client.post("/api/points", json={"amount": 100, "description": "Workshop"}, headers=ALICE)
        rich = client.post(f"/api/rewards/{reward['id']}/redeem", headers=ALICE)
        rewards = client.get("/api/rewards")
        total = client.get("/api/points", headers=ALICE)

    assert poor.json()["ok"] is False
    assert poor.json()["reason"] == "insufficient_points"
    assert rich.json()["ok"] is True
    assert [r["title"] for r in rewards.json()["rewards"]] == ["Coffee chat"]
    assert total.json()["total"] == 20


def test_progress_stream(tmp_path: Path, monkeypatch):
    _wire(tmp_path, monkeypatch)

    with TestClient(api_main.app) as client:
        resp = client.get("/api/journey/progress/stream", params={"start": 80, "interval_ms": 0})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    body = resp.text
    assert body.count('"type": "progress"') == 3
    assert body.rstrip().endswith("data: [DONE]")
