from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from researchquest.api.container import get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services.project_service import ProjectRegistry
from researchquest.application.services.session_context import SessionContext

router = APIRouter()

_project_registry = ProjectRegistry(get_store())


class CreateProjectRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    collaborators: List[str] = Field(default_factory=list)


class UpdateProjectRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    collaborators: Optional[List[str]] = None


class CollaboratorRequest(BaseModel):
    collaborator: str = Field(..., min_length=1)


class ProjectListResponse(BaseModel):
    projects: List[Dict[str, Any]]


@router.post("/projects")
def create_project(req: CreateProjectRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        project = _project_registry.create_project(
            session,
            title=req.title,
            description=req.description,
            collaborators=req.collaborators,
        )
    return project.to_dict()


@router.get("/projects", response_model=ProjectListResponse)
def list_projects(session: SessionContext = Depends(get_session)):
    with http_errors():
        projects = _project_registry.list_projects(session)
    return ProjectListResponse(projects=[p.to_dict() for p in projects])


@router.get("/projects/{project_id}")
def get_project(project_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _project_registry.get_project(session, project_id).to_dict()


@router.patch("/projects/{project_id}")
def update_project(
    project_id: str, req: UpdateProjectRequest, session: SessionContext = Depends(get_session)
):
    fields = req.model_dump(exclude_unset=True)
    with http_errors():
        return _project_registry.update_project(session, project_id, fields).to_dict()


@router.delete("/projects/{project_id}")
def delete_project(project_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        deleted = _project_registry.delete_project(session, project_id)
    return {"ok": deleted, "project_id": project_id}


@router.post("/projects/{project_id}/collaborators")
def add_collaborator(
    project_id: str, req: CollaboratorRequest, session: SessionContext = Depends(get_session)
):
    with http_errors():
        return _project_registry.add_collaborator(session, project_id, req.collaborator).to_dict()


@router.delete("/projects/{project_id}/collaborators/{collaborator}")
def remove_collaborator(
    project_id: str, collaborator: str, session: SessionContext = Depends(get_session)
):
    with http_errors():
        return _project_registry.remove_collaborator(session, project_id, collaborator).to_dict()
