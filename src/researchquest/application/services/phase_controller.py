"""
Phase progression controller.

Owns the four-phase journey of a project. Every phase change is one
transaction: phase and progress, the phase's tasks, the completion points,
the achievement and the next phase's seeded tasks commit together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from researchquest.application.ports.entity_store_port import EntityStorePort, EntityWriter
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.request_guard import InFlightGate
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.task_service import PROJECTS, TaskTracker
from researchquest.domain.errors import InvalidPhaseTransitionError
from researchquest.domain.gamification import UserAchievement
from researchquest.domain.phase import (
    PHASE_ORDER,
    PHASE_SPECS,
    PhaseStatus,
    ResearchPhase,
    next_phase,
    parse_phase,
    phase_status,
)
from researchquest.domain.project import PROJECT_STATUS_COMPLETED, ResearchProject
from researchquest.utils.logging_config import LogFiles, Logger

FULL_PROGRESS = 100


def clamp_progress(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"progress must be an integer, got {value!r}") from None
    return max(0, min(FULL_PROGRESS, number))


def progress_ramp(start: int, stop: int = FULL_PROGRESS, step: int = 10) -> Iterator[int]:
    """Cosmetic client ramp: ``start`` then +step ticks until ``stop``."""
    if step <= 0:
        raise ValueError("step must be positive")
    value = clamp_progress(start)
    stop = clamp_progress(stop)
    yield value
    while value < stop:
        value = min(stop, value + step)
        yield value


@dataclass
class PhaseBoardEntry:
    phase: ResearchPhase
    title: str
    description: str
    status: PhaseStatus

    @property
    def interactive(self) -> bool:
        return self.status != PhaseStatus.LOCKED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "interactive": self.interactive,
        }


@dataclass
class PhaseBoard:
    project_id: str
    active_phase: ResearchPhase
    progress: int
    display_progress: int
    finished: bool
    phases: List[PhaseBoardEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "active_phase": self.active_phase.value,
            "progress": self.progress,
            "display_progress": self.display_progress,
            "finished": self.finished,
            "phases": [p.to_dict() for p in self.phases],
        }


@dataclass
class PhaseTransition:
    project_id: str
    from_phase: ResearchPhase
    to_phase: ResearchPhase
    progress: int = 0
    points_awarded: int = 0
    achievement: Optional[UserAchievement] = None
    achievement_created: bool = False
    tasks_completed: int = 0
    tasks_seeded: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "from_phase": self.from_phase.value,
            "to_phase": self.to_phase.value,
            "progress": self.progress,
            "points_awarded": self.points_awarded,
            "achievement": self.achievement.to_dict() if self.achievement else None,
            "achievement_created": self.achievement_created,
            "tasks_completed": self.tasks_completed,
            "tasks_seeded": self.tasks_seeded,
        }


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _completion_description(phase: ResearchPhase) -> str:
    return f"Completed {PHASE_SPECS[phase].title} phase"


class PhaseProgressionController:
    def __init__(
        self,
        store: EntityStorePort,
        *,
        ledger: Optional[PointsLedger] = None,
        tasks: Optional[TaskTracker] = None,
        gate: Optional[InFlightGate] = None,
    ):
        self._store = store
        self.ledger = ledger or PointsLedger(store)
        self.tasks = tasks or TaskTracker(store)
        self.gate = gate or InFlightGate()

    @staticmethod
    def transition_key(project_id: str) -> str:
        return f"phase:{project_id}"

    # ------------------------------------------------------------------ views

    @staticmethod
    def select_project(project: ResearchProject) -> PhaseBoard:
        """View state for ``project``; reads nothing and writes nothing."""
        finished = project.is_completed
        current = project.phase
        spec = PHASE_SPECS[current]
        display = project.progress
        if not finished and spec.display_progress_floor:
            display = max(display, spec.display_progress_floor)
        return PhaseBoard(
            project_id=project.id,
            active_phase=current,
            progress=project.progress,
            display_progress=FULL_PROGRESS if finished else display,
            finished=finished,
            phases=[
                PhaseBoardEntry(
                    phase=phase,
                    title=PHASE_SPECS[phase].title,
                    description=PHASE_SPECS[phase].description,
                    status=phase_status(phase, current, finished=finished),
                )
                for phase in PHASE_ORDER
            ],
        )

    def board(self, session: SessionContext, project_id: str) -> PhaseBoard:
        user = session.require_user()
        return self.select_project(ProjectRegistry.load(self._store, user.id, project_id))

    # ------------------------------------------------------------ transitions

    def complete_phase(
        self,
        session: SessionContext,
        project_id: str,
        current_phase: Union[str, ResearchPhase],
    ) -> PhaseTransition:
        session.require_user()
        phase = parse_phase(current_phase) if isinstance(current_phase, str) else current_phase
        with self.gate.hold(self.transition_key(project_id)):
            with self._store.transaction() as tx:
                transition = self.complete_phase_in(tx, session, project_id, phase)
        self.log_transition(session, transition)
        return transition

    def complete_phase_in(
        self,
        tx: EntityWriter,
        session: SessionContext,
        project_id: str,
        current_phase: ResearchPhase,
    ) -> PhaseTransition:
        """Run a phase completion inside the caller's transaction."""
        user = session.require_user()
        project = ProjectRegistry.load(tx, user.id, project_id)
        if project.is_completed:
            raise InvalidPhaseTransitionError(
                "Research is already completed", project_id=project_id
            )
        if project.phase != current_phase:
            raise InvalidPhaseTransitionError(
                f"Phase {current_phase.value} is not the current phase",
                project_id=project_id,
                current_phase=project.phase.value,
                requested_phase=current_phase.value,
            )
        successor = next_phase(current_phase)
        if successor is None:
            raise InvalidPhaseTransitionError(
                f"{current_phase.value} has no next phase; complete the research instead",
                project_id=project_id,
                current_phase=current_phase.value,
            )

        completed, points, achievement, created = self._close_phase(tx, session, project, current_phase)
        tx.update(PROJECTS, project_id, {"phase": successor.value, "progress": 0})
        seeded = self.tasks.seed_phase_tasks(
            tx, owner_id=user.id, project_id=project_id, phase=successor
        )
        return PhaseTransition(
            project_id=project_id,
            from_phase=current_phase,
            to_phase=successor,
            progress=0,
            points_awarded=points,
            achievement=achievement,
            achievement_created=created,
            tasks_completed=completed,
            tasks_seeded=len(seeded),
        )

    def _close_phase(
        self,
        tx: EntityWriter,
        session: SessionContext,
        project: ResearchProject,
        phase: ResearchPhase,
    ) -> Tuple[int, int, Optional[UserAchievement], bool]:
        spec = PHASE_SPECS[phase]
        completed = self.tasks.complete_phase_tasks(
            tx, owner_id=project.owner_id, project_id=project.id, phase=phase
        )
        points = 0
        if spec.completion_points > 0:
            self.ledger.award_points(
                session, spec.completion_points, _completion_description(phase), writer=tx
            )
            points = spec.completion_points
        achievement: Optional[UserAchievement] = None
        created = False
        if spec.completion_achievement is not None:
            achievement, created = self.ledger.award_achievement(
                session, spec.completion_achievement, writer=tx
            )
        return completed, points, achievement, created

    def complete_research(self, session: SessionContext, project_id: str) -> ResearchProject:
        """Finish a project sitting in evaluation; phase stays ``evaluation``."""
        user = session.require_user()
        with self.gate.hold(self.transition_key(project_id)):
            with self._store.transaction() as tx:
                project = ProjectRegistry.load(tx, user.id, project_id)
                if project.is_completed:
                    raise InvalidPhaseTransitionError(
                        "Research is already completed", project_id=project_id
                    )
                if project.phase != ResearchPhase.EVALUATION:
                    raise InvalidPhaseTransitionError(
                        "Research can only be completed from the evaluation phase",
                        project_id=project_id,
                        current_phase=project.phase.value,
                    )
                _, points, achievement, created = self._close_phase(
                    tx, session, project, ResearchPhase.EVALUATION
                )
                tx.update(
                    PROJECTS,
                    project_id,
                    {
                        "status": PROJECT_STATUS_COMPLETED,
                        "progress": FULL_PROGRESS,
                        "completed_at": _utcnow_iso(),
                    },
                )
                finished = ProjectRegistry.load(tx, user.id, project_id)
        Logger.info(f"research completed: project {project_id} by {user.id}", file=LogFiles.JOURNEY)
        self._log_rewards(
            user.id, ResearchPhase.EVALUATION, points, achievement if created else None
        )
        return finished

    # --------------------------------------------------------------- progress

    def set_progress(
        self, session: SessionContext, project_id: str, value: Any
    ) -> Tuple[ResearchProject, Optional[PhaseTransition]]:
        """
        Store phase progress (clamped to 0..100).

        When the current phase auto-advances and progress lands on exactly
        100, the phase is completed in the same transaction. An
        auto-advancing phase only reaches 100 once its topic is confirmed
        and its tasks are done; earlier attempts raise
        ``InvalidPhaseTransitionError``.
        """
        user = session.require_user()
        progress = clamp_progress(value)
        transition: Optional[PhaseTransition] = None
        with self.gate.hold(self.transition_key(project_id)):
            with self._store.transaction() as tx:
                project = ProjectRegistry.load(tx, user.id, project_id)
                if project.is_completed:
                    raise InvalidPhaseTransitionError(
                        "Research is already completed", project_id=project_id
                    )
                auto_advance = progress == FULL_PROGRESS and PHASE_SPECS[project.phase].auto_advance
                if auto_advance:
                    self._require_ready(tx, project)
                tx.update(PROJECTS, project_id, {"progress": progress})
                if auto_advance:
                    transition = self.complete_phase_in(tx, session, project_id, project.phase)
                updated = ProjectRegistry.load(tx, user.id, project_id)
        if transition is not None:
            self.log_transition(session, transition)
        return updated, transition

    def _require_ready(self, tx: EntityWriter, project: ResearchProject) -> None:
        if project.topic is None:
            raise InvalidPhaseTransitionError(
                "Confirm a research topic before finishing the phase",
                project_id=project.id,
                current_phase=project.phase.value,
            )
        open_tasks = self.tasks.open_phase_tasks(
            tx, owner_id=project.owner_id, project_id=project.id, phase=project.phase
        )
        if open_tasks:
            raise InvalidPhaseTransitionError(
                f"{open_tasks} {project.phase.value} task(s) still open",
                project_id=project.id,
                current_phase=project.phase.value,
            )

    def advance_progress(
        self, session: SessionContext, project_id: str, step: int = 10
    ) -> Tuple[ResearchProject, Optional[PhaseTransition]]:
        user = session.require_user()
        project = ProjectRegistry.load(self._store, user.id, project_id)
        return self.set_progress(session, project_id, project.progress + int(step))

    def log_transition(self, session: SessionContext, transition: PhaseTransition) -> None:
        """Log a committed transition with the rewards it granted."""
        Logger.info(
            f"project {transition.project_id}: {transition.from_phase.value} -> "
            f"{transition.to_phase.value} (+{transition.points_awarded} points)",
            file=LogFiles.JOURNEY,
        )
        self._log_rewards(
            session.require_user().id,
            transition.from_phase,
            transition.points_awarded,
            transition.achievement if transition.achievement_created else None,
        )

    def _log_rewards(
        self,
        user_id: str,
        phase: ResearchPhase,
        points: int,
        achievement: Optional[UserAchievement],
    ) -> None:
        if points:
            self.ledger.log_award(user_id, points, _completion_description(phase))
        if achievement is not None:
            self.ledger.log_achievement(user_id, achievement.title)
