from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional

from researchquest.application.ports.entity_store_port import EntityStorePort, EntityWriter
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.task_service import PROJECTS, TaskTracker
from researchquest.domain.errors import NotFoundError
from researchquest.domain.phase import ResearchPhase
from researchquest.domain.project import PROJECT_STATUS_ACTIVE, ResearchProject
from researchquest.utils.logging_config import LogFiles, Logger


def _clean_collaborators(values: Iterable[Any]) -> List[str]:
    seen: List[str] = []
    for value in values or []:
        item = str(value or "").strip()
        if item and item not in seen:
            seen.append(item)
    return seen


class ProjectRegistry:
    """
    CRUD over research projects.

    ``phase``/``progress``/``status`` are never written here; the phase
    controller owns them.
    """

    def __init__(self, store: EntityStorePort, tasks: Optional[TaskTracker] = None):
        self._store = store
        self._tasks = tasks or TaskTracker(store)

    @staticmethod
    def load(reader: EntityWriter, user_id: str, project_id: str) -> ResearchProject:
        record = reader.get(PROJECTS, project_id)
        if record is None or record.get("owner_id") != user_id:
            raise NotFoundError("Project", project_id)
        return ResearchProject.from_record(record)

    def create_project(
        self,
        session: SessionContext,
        *,
        title: str,
        description: str = "",
        collaborators: Iterable[str] = (),
    ) -> ResearchProject:
        user = session.require_user()
        title = (title or "").strip()
        if not title:
            raise ValueError("title is required")

        project = ResearchProject(
            owner_id=user.id,
            title=title,
            description=(description or "").strip(),
            phase=ResearchPhase.DISCOVERY,
            progress=0,
            status=PROJECT_STATUS_ACTIVE,
            collaborators=_clean_collaborators(collaborators),
        )
        payload = project.to_dict()
        for name in ("id", "created_at", "updated_at"):
            payload.pop(name)

        with self._store.transaction() as tx:
            project_id = tx.create(PROJECTS, payload)
            self._tasks.seed_phase_tasks(
                tx, owner_id=user.id, project_id=project_id, phase=ResearchPhase.DISCOVERY
            )
            created = self.load(tx, user.id, project_id)

        Logger.info(f"project created: {project_id} ({title}) by {user.id}", file=LogFiles.JOURNEY)
        return created

    def get_project(self, session: SessionContext, project_id: str) -> ResearchProject:
        user = session.require_user()
        return self.load(self._store, user.id, project_id)

    def list_projects(self, session: SessionContext) -> List[ResearchProject]:
        user = session.require_user()
        rows = self._store.query(
            PROJECTS, where={"owner_id": user.id}, order_by="updated_at", descending=True
        )
        return [ResearchProject.from_record(r) for r in rows]

    def update_project(
        self, session: SessionContext, project_id: str, fields: Mapping[str, Any]
    ) -> ResearchProject:
        user = session.require_user()
        changes: Dict[str, Any] = {}
        if "title" in fields:
            title = (fields.get("title") or "").strip()
            if not title:
                raise ValueError("title is required")
            changes["title"] = title
        if "description" in fields:
            changes["description"] = (fields.get("description") or "").strip()
        if "collaborators" in fields:
            changes["collaborators"] = _clean_collaborators(fields.get("collaborators") or [])

        with self._store.transaction() as tx:
            project = self.load(tx, user.id, project_id)
            if not changes:
                return project
            tx.update(PROJECTS, project_id, changes)
            return self.load(tx, user.id, project_id)

    def delete_project(self, session: SessionContext, project_id: str) -> bool:
        """Remove the project record. Its tasks are left in place."""
        user = session.require_user()
        with self._store.transaction() as tx:
            self.load(tx, user.id, project_id)
            deleted = tx.delete(PROJECTS, project_id)
        Logger.info(f"project deleted: {project_id} by {user.id}", file=LogFiles.JOURNEY)
        return deleted

    def add_collaborator(self, session: SessionContext, project_id: str, collaborator: str) -> ResearchProject:
        user = session.require_user()
        collaborator = (collaborator or "").strip()
        if not collaborator:
            raise ValueError("collaborator is required")
        with self._store.transaction() as tx:
            project = self.load(tx, user.id, project_id)
            if collaborator in project.collaborators:
                return project
            tx.update(PROJECTS, project_id, {"collaborators": project.collaborators + [collaborator]})
            return self.load(tx, user.id, project_id)

    def remove_collaborator(
        self, session: SessionContext, project_id: str, collaborator: str
    ) -> ResearchProject:
        user = session.require_user()
        with self._store.transaction() as tx:
            project = self.load(tx, user.id, project_id)
            if collaborator not in project.collaborators:
                return project
            remaining = [c for c in project.collaborators if c != collaborator]
            tx.update(PROJECTS, project_id, {"collaborators": remaining})
            return self.load(tx, user.id, project_id)
