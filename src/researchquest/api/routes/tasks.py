from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Query
from pydantic import BaseModel, Field

from researchquest.api.container import get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services.request_guard import RequestGuard
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.task_service import TaskTracker

router = APIRouter()

_task_tracker = TaskTracker(get_store(), guard=RequestGuard(get_store()))


class CreateTaskRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    description: str = ""
    priority: str = "medium"
    due_date: Optional[str] = None
    assignee: Optional[str] = None


class UpdateTaskStatusRequest(BaseModel):
    status: str


class UpdateTaskRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[str] = None
    due_date: Optional[str] = None
    assignee: Optional[str] = None


class TaskListResponse(BaseModel):
    project_id: str
    tasks: List[Dict[str, Any]]


@router.post("/projects/{project_id}/tasks")
def add_task(
    project_id: str,
    req: CreateTaskRequest,
    session: SessionContext = Depends(get_session),
    x_request_id: Optional[str] = Header(default=None),
):
    with http_errors():
        task = _task_tracker.add_task(
            session,
            project_id,
            title=req.title,
            description=req.description,
            priority=req.priority,
            due_date=req.due_date,
            assignee=req.assignee,
            request_id=x_request_id,
        )
    return task.to_dict()


@router.get("/projects/{project_id}/tasks", response_model=TaskListResponse)
def list_tasks(
    project_id: str,
    status: Optional[str] = Query(None),
    session: SessionContext = Depends(get_session),
):
    with http_errors():
        tasks = _task_tracker.list_tasks(session, project_id, status=status)
    return TaskListResponse(project_id=project_id, tasks=[t.to_dict() for t in tasks])


@router.get("/projects/{project_id}/tasks/grouped")
def group_tasks(project_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        groups = _task_tracker.group_tasks(session, project_id)
    return {status: [t.to_dict() for t in tasks] for status, tasks in groups.items()}


@router.put("/tasks/{task_id}/status")
def update_task_status(
    task_id: str, req: UpdateTaskStatusRequest, session: SessionContext = Depends(get_session)
):
    with http_errors():
        return _task_tracker.update_task_status(session, task_id, req.status).to_dict()


@router.patch("/tasks/{task_id}")
def update_task(task_id: str, req: UpdateTaskRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _task_tracker.update_task(session, task_id, req.model_dump(exclude_unset=True)).to_dict()


@router.delete("/tasks/{task_id}")
def delete_task(task_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        deleted = _task_tracker.delete_task(session, task_id)
    return {"ok": deleted, "task_id": task_id}
