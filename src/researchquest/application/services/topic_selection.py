"""
Topic selection flow for the Discovery phase.

``select_topic`` only stages state in memory; nothing is written until
``confirm_topic``, which commits the topic, the task, the bonus, the
progress bump and (at full progress) the move to Design in one
transaction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from researchquest.application.ports.entity_store_port import EntityStorePort
from researchquest.application.services.phase_controller import (
    FULL_PROGRESS,
    PhaseProgressionController,
    PhaseTransition,
)
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.task_service import PROJECTS, TaskTracker
from researchquest.domain.errors import InvalidPhaseTransitionError
from researchquest.domain.phase import PHASE_SPECS, SELECT_TOPIC_TASK_KEY, ResearchPhase
from researchquest.domain.project import ResearchProject
from researchquest.domain.topic import GOAL_OPTIONS, Topic, TopicSelection
from researchquest.utils.logging_config import LogFiles, Logger

TOPIC_SELECTIONS = "topic_selections"
TOPIC_BONUS_POINTS = 50
TOPIC_PROGRESS_STEP = 50


@dataclass
class Questionnaire:
    topic: Topic
    interest_options: List[str]
    goal_options: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic.to_dict(),
            "interest_options": list(self.interest_options),
            "goal_options": list(self.goal_options),
        }


@dataclass
class TopicAnswers:
    reason: str
    interests: List[str] = field(default_factory=list)
    goals: List[str] = field(default_factory=list)


@dataclass
class TopicConfirmation:
    project: ResearchProject
    # highest progress written before any phase change
    peak_progress: int
    transition: Optional[PhaseTransition]
    points_awarded: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project.to_dict(),
            "peak_progress": self.peak_progress,
            "transition": self.transition.to_dict() if self.transition else None,
            "points_awarded": self.points_awarded,
        }


def _subset(values: Iterable[str], allowed: List[str], label: str) -> List[str]:
    picked: List[str] = []
    for value in values or []:
        item = str(value or "").strip()
        if not item:
            continue
        if item not in allowed:
            raise ValueError(f"{label} must be chosen from the offered options: {item}")
        if item not in picked:
            picked.append(item)
    if not picked:
        raise ValueError(f"select at least one of the {label}")
    return picked


class TopicSelectionFlow:
    """Two-step select/confirm interaction bound to one user and project."""

    def __init__(
        self,
        session: SessionContext,
        project_id: str,
        *,
        store: EntityStorePort,
        controller: Optional[PhaseProgressionController] = None,
    ):
        self._session = session
        self._project_id = project_id
        self._store = store
        self._controller = controller or PhaseProgressionController(store)
        self._staged: Optional[Topic] = None

    @property
    def staged(self) -> Optional[Topic]:
        return self._staged

    def _load_discovery_project(self, reader) -> ResearchProject:
        user = self._session.require_user()
        project = ProjectRegistry.load(reader, user.id, self._project_id)
        if project.is_completed or project.phase != ResearchPhase.DISCOVERY:
            raise InvalidPhaseTransitionError(
                "A topic can only be chosen during the discovery phase",
                project_id=self._project_id,
                current_phase=project.phase.value,
            )
        return project

    def select_topic(self, topic: Topic) -> Questionnaire:
        self._load_discovery_project(self._store)
        self._staged = topic
        return Questionnaire(
            topic=topic,
            interest_options=list(topic.keywords),
            goal_options=list(GOAL_OPTIONS),
        )

    def cancel(self) -> None:
        self._staged = None

    def confirm_topic(self, answers: TopicAnswers) -> TopicConfirmation:
        if self._staged is None:
            raise ValueError("no topic has been selected")
        topic = self._staged
        reason = (answers.reason or "").strip()
        if not reason:
            raise ValueError("reason is required")
        interests = _subset(answers.interests, list(topic.keywords), "interests")
        goals = _subset(answers.goals, list(GOAL_OPTIONS), "goals")

        user = self._session.require_user()
        controller = self._controller
        tasks: TaskTracker = controller.tasks
        selected_at = datetime.now(timezone.utc).isoformat()
        snapshot = topic.with_selection(
            TopicSelection(reason=reason, interests=interests, goals=goals, selected_at=selected_at)
        )

        with controller.gate.hold(controller.transition_key(self._project_id)):
            with self._store.transaction() as tx:
                project = self._load_discovery_project(tx)
                tx.update(PROJECTS, project.id, {"topic": snapshot.to_dict()})
                tasks.complete_phase_tasks(
                    tx,
                    owner_id=user.id,
                    project_id=project.id,
                    phase=ResearchPhase.DISCOVERY,
                    key=SELECT_TOPIC_TASK_KEY,
                )
                controller.ledger.award_points(
                    self._session,
                    TOPIC_BONUS_POINTS,
                    f"Selected research topic: {topic.title}",
                    writer=tx,
                )
                tx.create(
                    TOPIC_SELECTIONS,
                    {
                        "owner_id": user.id,
                        "project_id": project.id,
                        "topic": snapshot.to_dict(),
                        "selected_at": selected_at,
                    },
                )

                progress = min(FULL_PROGRESS, project.progress + TOPIC_PROGRESS_STEP)
                open_tasks = tasks.open_phase_tasks(
                    tx, owner_id=user.id, project_id=project.id, phase=ResearchPhase.DISCOVERY
                )
                if open_tasks == 0:
                    progress = FULL_PROGRESS
                tx.update(PROJECTS, project.id, {"progress": progress})

                transition: Optional[PhaseTransition] = None
                if progress == FULL_PROGRESS and PHASE_SPECS[ResearchPhase.DISCOVERY].auto_advance:
                    transition = controller.complete_phase_in(
                        tx, self._session, project.id, ResearchPhase.DISCOVERY
                    )
                final = ProjectRegistry.load(tx, user.id, project.id)

        self._staged = None
        Logger.info(
            f"topic '{topic.title}' confirmed for project {self._project_id} by {user.id}",
            file=LogFiles.JOURNEY,
        )
        controller.ledger.log_award(user.id, TOPIC_BONUS_POINTS, f"Selected research topic: {topic.title}")
        if transition is not None:
            controller.log_transition(self._session, transition)
        return TopicConfirmation(
            project=final,
            peak_progress=progress,
            transition=transition,
            points_awarded=TOPIC_BONUS_POINTS + (transition.points_awarded if transition else 0),
        )


def topic_history(store: EntityStorePort, session: SessionContext) -> List[Dict[str, Any]]:
    """Topic selections the user confirmed, most recent first."""
    user = session.require_user()
    return store.query(
        TOPIC_SELECTIONS, where={"owner_id": user.id}, order_by="created_at", descending=True
    )
