"""Domain error hierarchy.

Stores report missing rows as ``None``/``False``; services raise these errors
and the API layer maps them onto HTTP status codes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ResearchQuestError(Exception):
    """Base error carrying a stable machine-readable code."""

    message: str
    code: str = "researchquest_error"
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class NotAuthenticatedError(ResearchQuestError):
    def __init__(self, message: str = "Sign in required"):
        super().__init__(message=message, code="not_authenticated")


class NotFoundError(ResearchQuestError):
    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found",
            code="not_found",
            details={"entity": entity, "id": entity_id},
        )


class StoreWriteError(ResearchQuestError):
    """The document store rejected or failed a read/write."""

    def __init__(self, message: str = "Failed to save changes"):
        super().__init__(message=message, code="store_write_failed")


class InvalidPhaseTransitionError(ResearchQuestError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message=message, code="invalid_phase_transition", details=details)


class InvalidTaskStatusError(ResearchQuestError):
    def __init__(self, status: str):
        super().__init__(
            message=f"Unknown task status: {status}",
            code="invalid_task_status",
            details={"status": status},
        )


class OperationInProgressError(ResearchQuestError):
    def __init__(self, key: str):
        super().__init__(
            message="This action is already in progress",
            code="operation_in_progress",
            details={"key": key},
        )
