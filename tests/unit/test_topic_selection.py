from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pytest

from researchquest.application.services import topic_catalog
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.phase_controller import PhaseProgressionController
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.task_service import TaskTracker
from researchquest.application.services.topic_selection import (
    TopicAnswers,
    TopicSelectionFlow,
    topic_history,
)
from researchquest.domain.errors import InvalidPhaseTransitionError, OperationInProgressError
from researchquest.domain.phase import ResearchPhase
from researchquest.domain.task import TaskStatus
from researchquest.domain.topic import GOAL_OPTIONS, Topic


def _flow(store, session, title="Pollinator decline"):
    controller = PhaseProgressionController(store)
    project = ProjectRegistry(store).create_project(session, title=title)
    return TopicSelectionFlow(session, project.id, store=store, controller=controller), project


def test_select_then_confirm_moves_project_to_design(store, alice):
    flow, project = _flow(store, alice)
    topic = topic_catalog.get_topic("1")

    questionnaire = flow.select_topic(topic)
    assert questionnaire.interest_options == ["AI", "Neural Networks", "Deep Learning"]
    assert questionnaire.goal_options == GOAL_OPTIONS
    assert flow.staged is topic
    # staging writes nothing
    assert ProjectRegistry(store).get_project(alice, project.id).topic is None

    confirmation = flow.confirm_topic(
        TopicAnswers(
            reason="I want to build better models",
            interests=["AI", "Deep Learning"],
            goals=["Publish a paper"],
        )
    )

    assert confirmation.peak_progress == 100
    assert confirmation.transition is not None
    assert confirmation.transition.to_phase == ResearchPhase.DESIGN
    assert confirmation.points_awarded == 150
    assert flow.staged is None

    updated = ProjectRegistry(store).get_project(alice, project.id)
    assert updated.phase == ResearchPhase.DESIGN
    assert updated.progress == 0
    assert updated.topic.title == "Machine Learning"
    assert updated.topic.selection.reason == "I want to build better models"
    assert updated.topic.selection.interests == ["AI", "Deep Learning"]

    ledger = PointsLedger(store)
    assert ledger.get_total(alice) == 150
    assert [t.description for t in ledger.get_points(alice).history] == [
        "Selected research topic: Machine Learning",
        "Completed Discovery phase",
    ]
    assert [a.title for a in ledger.list_achievements(alice)] == ["Discovery Master"]

    tasks = TaskTracker(store).list_tasks(alice, project.id)
    select_task = next(t for t in tasks if t.key == "select-topic")
    assert select_task.status == TaskStatus.COMPLETED

    history = topic_history(store, alice)
    assert len(history) == 1
    assert history[0]["project_id"] == project.id
    assert history[0]["topic"]["title"] == "Machine Learning"


def test_open_discovery_tasks_hold_progress_at_half(store, alice):
    flow, project = _flow(store, alice)
    TaskTracker(store).add_task(alice, project.id, title="Skim reviews", phase="discovery")

    flow.select_topic(topic_catalog.get_topic("4"))
    confirmation = flow.confirm_topic(
        TopicAnswers(reason="Local flooding", interests=["Environment"], goals=["Build a prototype"])
    )

    assert confirmation.peak_progress == 50
    assert confirmation.transition is None
    assert confirmation.points_awarded == 50
    updated = ProjectRegistry(store).get_project(alice, project.id)
    assert updated.phase == ResearchPhase.DISCOVERY
    assert updated.progress == 50


@pytest.mark.parametrize(
    "answers",
    [
        TopicAnswers(reason="", interests=["AI"], goals=["Publish a paper"]),
        TopicAnswers(reason="why not", interests=[], goals=["Publish a paper"]),
        TopicAnswers(reason="why not", interests=["AI"], goals=[]),
        TopicAnswers(reason="why not", interests=["Astrology"], goals=["Publish a paper"]),
        TopicAnswers(reason="why not", interests=["AI"], goals=["Get famous"]),
    ],
)
def test_confirm_rejects_incomplete_answers(store, alice, answers):
    flow, project = _flow(store, alice)
    flow.select_topic(topic_catalog.get_topic("1"))

    with pytest.raises(ValueError):
        flow.confirm_topic(answers)

    assert PointsLedger(store).get_total(alice) == 0
    assert ProjectRegistry(store).get_project(alice, project.id).topic is None
    assert flow.staged is not None


def test_confirm_without_selection_and_cancel(store, alice):
    flow, _ = _flow(store, alice)
    with pytest.raises(ValueError):
        flow.confirm_topic(TopicAnswers(reason="x", interests=["AI"], goals=["Publish a paper"]))

    flow.select_topic(topic_catalog.get_topic("1"))
    flow.cancel()
    assert flow.staged is None


def test_topic_only_chosen_in_discovery(store, alice):
    flow, project = _flow(store, alice)
    PhaseProgressionController(store).complete_phase(alice, project.id, "discovery")

    with pytest.raises(InvalidPhaseTransitionError):
        flow.select_topic(topic_catalog.get_topic("1"))


def test_confirm_is_rejected_while_a_transition_runs(store, alice):
    flow, project = _flow(store, alice)
    controller = PhaseProgressionController(store)
    flow = TopicSelectionFlow(alice, project.id, store=store, controller=controller)
    flow.select_topic(topic_catalog.get_topic("1"))

    with controller.gate.hold(controller.transition_key(project.id)):
        with pytest.raises(OperationInProgressError):
            flow.confirm_topic(
                TopicAnswers(reason="x", interests=["AI"], goals=["Publish a paper"])
            )
    assert PointsLedger(store).get_total(alice) == 0


def test_catalog_search_and_categories():
    assert [t.id for t in topic_catalog.search_catalog("", "technology")] == ["1", "2"]
    assert [t.title for t in topic_catalog.search_catalog("warming")] == ["Climate Change"]
    assert topic_catalog.search_catalog("quantum", "psychology") == []
    assert topic_catalog.list_categories()[0]["id"] == topic_catalog.ALL_CATEGORIES
    assert topic_catalog.get_topic("99") is None


@dataclass
class _FakeRecommender:
    topics: List[Topic] = field(default_factory=list)
    error: Exception = None
    calls: int = 0

    async def recommend(self, interests, *, limit=4):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.topics


@pytest.mark.asyncio
async def test_recommendations_use_recommender_when_it_answers():
    fake = _FakeRecommender(topics=[Topic(id="rec-1", title="Coral bleaching")])
    topics = await topic_catalog.recommend_topics(["oceans"], recommender=fake)
    assert [t.title for t in topics] == ["Coral bleaching"]
    assert fake.calls == 1


@pytest.mark.asyncio
async def test_recommendations_fall_back_to_catalog():
    failing = _FakeRecommender(error=RuntimeError("model offline"))
    topics = await topic_catalog.recommend_topics(["memory"], limit=2, recommender=failing)
    assert [t.title for t in topics] == ["Cognitive Psychology", "Machine Learning"]

    empty = _FakeRecommender()
    topics = await topic_catalog.recommend_topics(["quantum"], limit=1, recommender=empty)
    assert [t.title for t in topics] == ["Quantum Computing"]
