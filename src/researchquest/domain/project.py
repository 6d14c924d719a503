"""ResearchProject aggregate root."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from researchquest.domain.phase import ResearchPhase
from researchquest.domain.topic import Topic

PROJECT_STATUS_ACTIVE = "active"
PROJECT_STATUS_COMPLETED = "completed"


@dataclass
class ResearchProject:
    """
    A user's research project moving through the four phases.

    ``progress`` is scoped to the current phase. A finished project keeps
    ``phase=evaluation`` and carries ``status=completed``.
    """

    id: str = ""
    owner_id: str = ""
    title: str = ""
    description: str = ""
    phase: ResearchPhase = ResearchPhase.DISCOVERY
    progress: int = 0
    status: str = PROJECT_STATUS_ACTIVE
    topic: Optional[Topic] = None
    collaborators: List[str] = field(default_factory=list)
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == PROJECT_STATUS_COMPLETED

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ResearchProject":
        topic_data = record.get("topic")
        return cls(
            id=str(record.get("id") or ""),
            owner_id=str(record.get("owner_id") or ""),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            phase=ResearchPhase(record.get("phase") or ResearchPhase.DISCOVERY.value),
            progress=int(record.get("progress") or 0),
            status=str(record.get("status") or PROJECT_STATUS_ACTIVE),
            topic=Topic.from_dict(topic_data) if isinstance(topic_data, dict) else None,
            collaborators=[str(c) for c in record.get("collaborators") or []],
            completed_at=record.get("completed_at"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "phase": self.phase.value,
            "progress": self.progress,
            "status": self.status,
            "topic": self.topic.to_dict() if self.topic else None,
            "collaborators": list(self.collaborators),
            "completed_at": self.completed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
