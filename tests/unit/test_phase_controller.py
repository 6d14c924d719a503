from __future__ import annotations

import pytest

from researchquest.application.services import topic_catalog
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.phase_controller import (
    PhaseProgressionController,
    clamp_progress,
    progress_ramp,
)
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.task_service import TaskTracker
from researchquest.application.services.topic_selection import TopicAnswers, TopicSelectionFlow
from researchquest.domain.errors import InvalidPhaseTransitionError, OperationInProgressError
from researchquest.domain.phase import PhaseStatus, ResearchPhase, next_phase, parse_phase
from researchquest.domain.task import TaskStatus


def _setup(store, session):
    controller = PhaseProgressionController(store)
    project = ProjectRegistry(store).create_project(session, title="Soil microbiome")
    return controller, project


def test_phase_successors_are_linear():
    assert next_phase(ResearchPhase.DISCOVERY) == ResearchPhase.DESIGN
    assert next_phase(ResearchPhase.DESIGN) == ResearchPhase.DEVELOPMENT
    assert next_phase(ResearchPhase.DEVELOPMENT) == ResearchPhase.EVALUATION
    assert next_phase(ResearchPhase.EVALUATION) is None
    assert parse_phase(" Design ") == ResearchPhase.DESIGN
    assert parse_phase(ResearchPhase.DESIGN) == ResearchPhase.DESIGN
    with pytest.raises(ValueError):
        parse_phase("publishing")


def test_board_marks_earlier_phases_completed(store, alice):
    controller, project = _setup(store, alice)
    controller.complete_phase(alice, project.id, "discovery")

    board = controller.board(alice, project.id)

    assert board.active_phase == ResearchPhase.DESIGN
    statuses = {entry.phase: entry.status for entry in board.phases}
    assert statuses[ResearchPhase.DISCOVERY] == PhaseStatus.COMPLETED
    assert statuses[ResearchPhase.DESIGN] == PhaseStatus.CURRENT
    assert statuses[ResearchPhase.EVALUATION] == PhaseStatus.LOCKED
    assert [e.interactive for e in board.phases] == [True, True, False, False]


def test_complete_phase_moves_to_successor_and_awards(store, alice):
    controller, project = _setup(store, alice)
    controller.set_progress(alice, project.id, 60)

    transition = controller.complete_phase(alice, project.id, ResearchPhase.DISCOVERY)

    assert transition.from_phase == ResearchPhase.DISCOVERY
    assert transition.to_phase == ResearchPhase.DESIGN
    assert transition.points_awarded == 100
    assert transition.achievement.title == "Discovery Master"
    assert transition.achievement_created is True
    assert transition.tasks_completed == 1
    assert transition.tasks_seeded == 4

    updated = ProjectRegistry(store).get_project(alice, project.id)
    assert updated.phase == ResearchPhase.DESIGN
    assert updated.progress == 0

    history = PointsLedger(store).get_points(alice).history
    assert [t.description for t in history] == ["Completed Discovery phase"]

    tasks = TaskTracker(store).group_tasks(alice, project.id)
    assert [t.key for t in tasks["completed"]] == ["select-topic"]
    assert len(tasks["todo"]) == 4


def test_stale_phase_is_rejected_without_writes(store, alice):
    controller, project = _setup(store, alice)
    controller.complete_phase(alice, project.id, "discovery")

    with pytest.raises(InvalidPhaseTransitionError):
        controller.complete_phase(alice, project.id, "discovery")

    assert PointsLedger(store).get_total(alice) == 100
    assert ProjectRegistry(store).get_project(alice, project.id).phase == ResearchPhase.DESIGN


def test_evaluation_has_no_successor(store, alice):
    controller, project = _setup(store, alice)
    for phase in ("discovery", "design", "development"):
        controller.complete_phase(alice, project.id, phase)

    with pytest.raises(InvalidPhaseTransitionError):
        controller.complete_phase(alice, project.id, "evaluation")

    finished = controller.complete_research(alice, project.id)
    assert finished.is_completed
    assert finished.phase == ResearchPhase.EVALUATION
    assert finished.progress == 100
    assert finished.completed_at

    # 100 + 150 + 200 + 250
    assert PointsLedger(store).get_total(alice) == 700
    assert len(PointsLedger(store).list_achievements(alice)) == 4

    board = controller.board(alice, project.id)
    assert board.finished is True
    assert all(e.status == PhaseStatus.COMPLETED for e in board.phases)

    with pytest.raises(InvalidPhaseTransitionError):
        controller.complete_research(alice, project.id)
    with pytest.raises(InvalidPhaseTransitionError):
        controller.set_progress(alice, project.id, 10)


def test_complete_research_requires_evaluation(store, alice):
    controller, project = _setup(store, alice)
    with pytest.raises(InvalidPhaseTransitionError):
        controller.complete_research(alice, project.id)


def test_repeat_achievement_is_not_duplicated(store, alice):
    controller = PhaseProgressionController(store)
    registry = ProjectRegistry(store)
    first = registry.create_project(alice, title="One")
    second = registry.create_project(alice, title="Two")

    controller.complete_phase(alice, first.id, "discovery")
    transition = controller.complete_phase(alice, second.id, "discovery")

    assert transition.achievement_created is False
    assert transition.points_awarded == 100
    assert PointsLedger(store).get_total(alice) == 200
    assert len(PointsLedger(store).list_achievements(alice)) == 1


def test_full_progress_without_topic_is_rejected(store, alice):
    controller, project = _setup(store, alice)

    with pytest.raises(InvalidPhaseTransitionError):
        controller.set_progress(alice, project.id, 100)
    with pytest.raises(InvalidPhaseTransitionError):
        controller.set_progress(alice, project.id, 150)

    unchanged = ProjectRegistry(store).get_project(alice, project.id)
    assert unchanged.phase == ResearchPhase.DISCOVERY
    assert unchanged.progress == 0
    assert unchanged.topic is None
    assert PointsLedger(store).get_total(alice) == 0
    assert PointsLedger(store).list_achievements(alice) == []
    todo = TaskTracker(store).group_tasks(alice, project.id)["todo"]
    assert [t.key for t in todo] == ["select-topic"]


def test_full_progress_auto_advances_discovery_only(store, alice):
    controller, project = _setup(store, alice)
    tracker = TaskTracker(store)
    extra = tracker.add_task(alice, project.id, title="Skim reviews", phase="discovery")
    flow = TopicSelectionFlow(alice, project.id, store=store, controller=controller)
    flow.select_topic(topic_catalog.get_topic("4"))
    flow.confirm_topic(
        TopicAnswers(reason="Local flooding", interests=["Environment"], goals=["Build a prototype"])
    )

    with pytest.raises(InvalidPhaseTransitionError):
        controller.set_progress(alice, project.id, 100)
    assert ProjectRegistry(store).get_project(alice, project.id).progress == 50

    tracker.update_task_status(alice, extra.id, "completed")
    updated, transition = controller.set_progress(alice, project.id, 150)
    assert transition is not None
    assert transition.to_phase == ResearchPhase.DESIGN
    assert updated.phase == ResearchPhase.DESIGN
    assert updated.progress == 0

    updated, transition = controller.set_progress(alice, project.id, 100)
    assert transition is None
    assert updated.phase == ResearchPhase.DESIGN
    assert updated.progress == 100


def test_advance_progress_steps_and_clamps(store, alice):
    controller, project = _setup(store, alice)
    controller.complete_phase(alice, project.id, "discovery")

    updated, _ = controller.advance_progress(alice, project.id)
    assert updated.progress == 10
    updated, _ = controller.advance_progress(alice, project.id, step=-50)
    assert updated.progress == 0


def test_development_display_floor(store, alice):
    controller, project = _setup(store, alice)
    controller.complete_phase(alice, project.id, "discovery")
    controller.complete_phase(alice, project.id, "design")

    board = controller.board(alice, project.id)
    assert board.progress == 0
    assert board.display_progress == 45


def test_transition_in_flight_is_rejected(store, alice):
    controller, project = _setup(store, alice)

    with controller.gate.hold(controller.transition_key(project.id)):
        with pytest.raises(OperationInProgressError):
            controller.complete_phase(alice, project.id, "discovery")

    controller.complete_phase(alice, project.id, "discovery")


def test_seeded_tasks_complete_with_the_phase(store, alice):
    controller, project = _setup(store, alice)
    controller.complete_phase(alice, project.id, "discovery")
    transition = controller.complete_phase(alice, project.id, "design")

    assert transition.tasks_completed == 4
    design = [
        t for t in TaskTracker(store).list_tasks(alice, project.id) if t.phase == "design"
    ]
    assert all(t.status == TaskStatus.COMPLETED for t in design)


def test_progress_helpers():
    assert clamp_progress(-5) == 0
    assert clamp_progress("70") == 70
    assert clamp_progress(250) == 100
    with pytest.raises(ValueError):
        clamp_progress("lots")
    assert list(progress_ramp(75)) == [75, 85, 95, 100]
    assert list(progress_ramp(100)) == [100]
    with pytest.raises(ValueError):
        list(progress_ramp(0, step=0))
