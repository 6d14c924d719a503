"""Project-scoped research tasks."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ResearchTask:
    id: str = ""
    project_id: str = ""
    owner_id: str = ""
    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    assignee: Optional[str] = None
    # phase + key identify tasks seeded by the journey (e.g. "select-topic")
    phase: Optional[str] = None
    key: Optional[str] = None
    completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ResearchTask":
        return cls(
            id=str(record.get("id") or ""),
            project_id=str(record.get("project_id") or ""),
            owner_id=str(record.get("owner_id") or ""),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            status=TaskStatus(record.get("status") or TaskStatus.TODO.value),
            priority=TaskPriority(record.get("priority") or TaskPriority.MEDIUM.value),
            due_date=record.get("due_date"),
            assignee=record.get("assignee"),
            phase=record.get("phase"),
            key=record.get("key"),
            completed_at=record.get("completed_at"),
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "due_date": self.due_date,
            "assignee": self.assignee,
            "phase": self.phase,
            "key": self.key,
            "completed_at": self.completed_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
