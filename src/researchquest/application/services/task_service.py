from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from researchquest.application.ports.entity_store_port import EntityStorePort, EntityWriter
from researchquest.application.services.request_guard import RequestGuard
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.errors import InvalidTaskStatusError, NotFoundError
from researchquest.domain.phase import ResearchPhase, seed_tasks_for
from researchquest.domain.task import ResearchTask, TaskPriority, TaskStatus
from researchquest.utils.logging_config import LogFiles, Logger

PROJECTS = "projects"
TASKS = "tasks"

_EDITABLE_FIELDS = ("title", "description", "priority", "due_date", "assignee")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_task_status(value: Any) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(str(value or "").strip().lower())
    except ValueError:
        raise InvalidTaskStatusError(str(value)) from None


def parse_task_priority(value: Any) -> TaskPriority:
    if isinstance(value, TaskPriority):
        return value
    try:
        return TaskPriority(str(value or "medium").strip().lower())
    except ValueError:
        raise ValueError(f"Unknown task priority: {value}") from None


def _clean_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class TaskTracker:
    """Per-project task list with a three-state status."""

    def __init__(self, store: EntityStorePort, guard: Optional[RequestGuard] = None):
        self._store = store
        self._guard = guard

    def _require_project(self, reader: EntityWriter, user_id: str, project_id: str) -> Dict[str, Any]:
        project = reader.get(PROJECTS, project_id)
        if project is None or project.get("owner_id") != user_id:
            raise NotFoundError("Project", project_id)
        return project

    def _require_task(self, reader: EntityWriter, user_id: str, task_id: str) -> Dict[str, Any]:
        record = reader.get(TASKS, task_id)
        if record is None or record.get("owner_id") != user_id:
            raise NotFoundError("Task", task_id)
        return record

    def add_task(
        self,
        session: SessionContext,
        project_id: str,
        *,
        title: str,
        description: str = "",
        priority: str = "medium",
        due_date: Optional[str] = None,
        assignee: Optional[str] = None,
        phase: Optional[str] = None,
        key: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> ResearchTask:
        user = session.require_user()
        title = (title or "").strip()
        if not title:
            raise ValueError("title is required")
        resolved_priority = parse_task_priority(priority)

        def _create() -> Dict[str, Any]:
            with self._store.transaction() as tx:
                self._require_project(tx, user.id, project_id)
                task = ResearchTask(
                    project_id=project_id,
                    owner_id=user.id,
                    title=title,
                    description=(description or "").strip(),
                    status=TaskStatus.TODO,
                    priority=resolved_priority,
                    due_date=_clean_optional(due_date),
                    assignee=_clean_optional(assignee),
                    phase=_clean_optional(phase),
                    key=_clean_optional(key),
                )
                task_id = tx.create(TASKS, self._payload(task))
                return tx.get(TASKS, task_id) or {}

        if request_id and self._guard is not None:
            record = self._guard.run(
                session, scope=f"add_task:{project_id}", request_id=request_id, action=_create
            )
        else:
            record = _create()
        Logger.info(f"task added to project {project_id}: {title}", file=LogFiles.JOURNEY)
        return ResearchTask.from_record(record)

    def update_task_status(self, session: SessionContext, task_id: str, status: Any) -> ResearchTask:
        """Overwrite the status; repeating the current status writes nothing."""
        user = session.require_user()
        target = parse_task_status(status)
        with self._store.transaction() as tx:
            record = self._require_task(tx, user.id, task_id)
            if record.get("status") == target.value:
                return ResearchTask.from_record(record)
            fields: Dict[str, Any] = {
                "status": target.value,
                "completed_at": _utcnow_iso() if target == TaskStatus.COMPLETED else None,
            }
            updated = tx.update(TASKS, task_id, fields)
        return ResearchTask.from_record(updated or record)

    def update_task(self, session: SessionContext, task_id: str, fields: Mapping[str, Any]) -> ResearchTask:
        user = session.require_user()
        changes: Dict[str, Any] = {}
        for name in _EDITABLE_FIELDS:
            if name not in fields:
                continue
            value = fields[name]
            if name == "title":
                value = (value or "").strip()
                if not value:
                    raise ValueError("title is required")
            elif name == "priority":
                value = parse_task_priority(value).value
            elif name == "description":
                value = (value or "").strip()
            else:
                value = _clean_optional(value)
            changes[name] = value

        with self._store.transaction() as tx:
            record = self._require_task(tx, user.id, task_id)
            if not changes:
                return ResearchTask.from_record(record)
            updated = tx.update(TASKS, task_id, changes)
        return ResearchTask.from_record(updated or record)

    def delete_task(self, session: SessionContext, task_id: str) -> bool:
        user = session.require_user()
        with self._store.transaction() as tx:
            self._require_task(tx, user.id, task_id)
            return tx.delete(TASKS, task_id)

    def list_tasks(
        self,
        session: SessionContext,
        project_id: str,
        *,
        status: Optional[str] = None,
    ) -> List[ResearchTask]:
        user = session.require_user()
        where: Dict[str, Any] = {"owner_id": user.id, "project_id": project_id}
        if status:
            where["status"] = parse_task_status(status).value
        rows = self._store.query(TASKS, where=where, order_by="created_at")
        return [ResearchTask.from_record(r) for r in rows]

    def group_tasks(self, session: SessionContext, project_id: str) -> Dict[str, List[ResearchTask]]:
        groups: Dict[str, List[ResearchTask]] = {s.value: [] for s in TaskStatus}
        for task in self.list_tasks(session, project_id):
            groups[task.status.value].append(task)
        return groups

    # ----------------------------------------------------------- journey hooks

    def seed_phase_tasks(
        self,
        writer: EntityWriter,
        *,
        owner_id: str,
        project_id: str,
        phase: ResearchPhase,
    ) -> List[str]:
        """Create the phase's template tasks; keys already present are skipped."""
        existing = {
            r.get("key")
            for r in writer.query(TASKS, where={"owner_id": owner_id, "project_id": project_id})
        }
        created: List[str] = []
        for seed in seed_tasks_for(phase):
            if seed.key in existing:
                continue
            task = ResearchTask(
                project_id=project_id,
                owner_id=owner_id,
                title=seed.title,
                description=seed.description,
                priority=TaskPriority(seed.priority),
                phase=phase.value,
                key=seed.key,
            )
            created.append(writer.create(TASKS, self._payload(task)))
        return created

    def complete_phase_tasks(
        self,
        writer: EntityWriter,
        *,
        owner_id: str,
        project_id: str,
        phase: ResearchPhase,
        key: Optional[str] = None,
    ) -> int:
        where: Dict[str, Any] = {"owner_id": owner_id, "project_id": project_id, "phase": phase.value}
        if key:
            where["key"] = key
        now = _utcnow_iso()
        completed = 0
        for row in writer.query(TASKS, where=where):
            if row.get("status") == TaskStatus.COMPLETED.value:
                continue
            writer.update(TASKS, row["id"], {"status": TaskStatus.COMPLETED.value, "completed_at": now})
            completed += 1
        return completed

    @staticmethod
    def open_phase_tasks(
        reader: EntityWriter, *, owner_id: str, project_id: str, phase: ResearchPhase
    ) -> int:
        rows = reader.query(
            TASKS, where={"owner_id": owner_id, "project_id": project_id, "phase": phase.value}
        )
        return sum(1 for r in rows if r.get("status") != TaskStatus.COMPLETED.value)

    @staticmethod
    def _payload(task: ResearchTask) -> Dict[str, Any]:
        payload = task.to_dict()
        for name in ("id", "created_at", "updated_at"):
            payload.pop(name, None)
        return payload
