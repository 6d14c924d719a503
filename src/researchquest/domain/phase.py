"""Research journey phases.

The four phases form a closed, linearly ordered enum. Each phase is described
by a ``PhaseSpec`` holding the tasks seeded on entry, the reward for finishing
it and whether full progress advances it automatically.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


class ResearchPhase(str, Enum):
    DISCOVERY = "discovery"
    DESIGN = "design"
    DEVELOPMENT = "development"
    EVALUATION = "evaluation"


class PhaseStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    LOCKED = "locked"


PHASE_ORDER: Tuple[ResearchPhase, ...] = (
    ResearchPhase.DISCOVERY,
    ResearchPhase.DESIGN,
    ResearchPhase.DEVELOPMENT,
    ResearchPhase.EVALUATION,
)

# evaluation has no successor; research is finished via complete_research
_SUCCESSORS: Dict[ResearchPhase, ResearchPhase] = {
    ResearchPhase.DISCOVERY: ResearchPhase.DESIGN,
    ResearchPhase.DESIGN: ResearchPhase.DEVELOPMENT,
    ResearchPhase.DEVELOPMENT: ResearchPhase.EVALUATION,
}

SELECT_TOPIC_TASK_KEY = "select-topic"


@dataclass(frozen=True)
class SeedTask:
    key: str
    title: str
    priority: str = "medium"
    description: str = ""


@dataclass(frozen=True)
class PhaseAchievement:
    title: str
    description: str
    icon: str
    category: str
    points: int = 0
    type: str = "milestone"


@dataclass(frozen=True)
class PhaseSpec:
    phase: ResearchPhase
    title: str
    description: str
    completion_points: int
    completion_achievement: Optional[PhaseAchievement] = None
    seed_tasks: Tuple[SeedTask, ...] = field(default_factory=tuple)
    auto_advance: bool = False
    # Development shows a cosmetic bar that starts part-way
    display_progress_floor: int = 0


PHASE_SPECS: Dict[ResearchPhase, PhaseSpec] = {
    ResearchPhase.DISCOVERY: PhaseSpec(
        phase=ResearchPhase.DISCOVERY,
        title="Discovery",
        description="Find and explore research topics that match your interests.",
        completion_points=100,
        completion_achievement=PhaseAchievement(
            title="Discovery Master",
            description="Chose a research topic and completed the discovery phase",
            icon="search",
            category="discovery",
            points=100,
            type="badge",
        ),
        seed_tasks=(
            SeedTask(
                key=SELECT_TOPIC_TASK_KEY,
                title="Select a research topic",
                priority="high",
                description="Pick a topic and answer the guided questions.",
            ),
        ),
        auto_advance=True,
    ),
    ResearchPhase.DESIGN: PhaseSpec(
        phase=ResearchPhase.DESIGN,
        title="Design",
        description="Plan your research methodology and approach.",
        completion_points=150,
        completion_achievement=PhaseAchievement(
            title="Research Architect",
            description="Planned the research methodology",
            icon="pencil",
            category="design",
            points=150,
        ),
        seed_tasks=(
            SeedTask(key="research-question", title="Define Research Question", priority="high"),
            SeedTask(key="literature-review", title="Literature Review", priority="medium"),
            SeedTask(key="methodology", title="Methodology Selection", priority="high"),
            SeedTask(key="data-plan", title="Data Collection Plan", priority="medium"),
        ),
    ),
    ResearchPhase.DEVELOPMENT: PhaseSpec(
        phase=ResearchPhase.DEVELOPMENT,
        title="Development",
        description="Conduct your research and collect data.",
        completion_points=200,
        completion_achievement=PhaseAchievement(
            title="Data Wrangler",
            description="Collected and analysed the research data",
            icon="code",
            category="development",
            points=200,
        ),
        seed_tasks=(
            SeedTask(key="data-collection", title="Data Collection", priority="high"),
            SeedTask(key="data-analysis", title="Data Analysis", priority="high"),
            SeedTask(key="initial-findings", title="Initial Findings", priority="medium"),
            SeedTask(key="peer-review", title="Peer Review", priority="low"),
        ),
        display_progress_floor=45,
    ),
    ResearchPhase.EVALUATION: PhaseSpec(
        phase=ResearchPhase.EVALUATION,
        title="Evaluation",
        description="Analyze results and publish findings.",
        completion_points=250,
        completion_achievement=PhaseAchievement(
            title="Research Completed",
            description="Successfully completed all research phases",
            icon="check-circle",
            category="evaluation",
            points=250,
            type="reward",
        ),
        seed_tasks=(
            SeedTask(key="results-review", title="Review Results", priority="high"),
            SeedTask(key="write-up", title="Prepare Publication", priority="medium"),
        ),
    ),
}

if set(PHASE_SPECS) != set(ResearchPhase):  # pragma: no cover
    raise RuntimeError("PHASE_SPECS must describe every ResearchPhase")


def parse_phase(value: str) -> ResearchPhase:
    if isinstance(value, ResearchPhase):
        return value
    try:
        return ResearchPhase(str(value or "").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown research phase: {value}") from None


def next_phase(phase: ResearchPhase) -> Optional[ResearchPhase]:
    """Canonical successor of ``phase``; ``None`` for the last phase."""
    return _SUCCESSORS.get(phase)


def phase_index(phase: ResearchPhase) -> int:
    return PHASE_ORDER.index(phase)


def phase_status(phase: ResearchPhase, current: ResearchPhase, *, finished: bool = False) -> PhaseStatus:
    """Earlier phases are completed, later ones locked."""
    if finished:
        return PhaseStatus.COMPLETED
    delta = phase_index(phase) - phase_index(current)
    if delta < 0:
        return PhaseStatus.COMPLETED
    if delta == 0:
        return PhaseStatus.CURRENT
    return PhaseStatus.LOCKED


def seed_tasks_for(phase: ResearchPhase) -> List[SeedTask]:
    return list(PHASE_SPECS[phase].seed_tasks)
