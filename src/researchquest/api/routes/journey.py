from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from researchquest.api.container import get_phase_controller, get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.api.streaming import tick_events, wrap_generator
from researchquest.application.services.phase_controller import progress_ramp
from researchquest.application.services.request_guard import RequestGuard
from researchquest.application.services.session_context import SessionContext
from researchquest.utils.logging_config import get_trace_id

router = APIRouter()

_controller = get_phase_controller()
_request_guard = RequestGuard(get_store(), gate=_controller.gate)

RAMP_INTERVAL_SECONDS = 0.5


class CompletePhaseRequest(BaseModel):
    current_phase: str


class ProgressRequest(BaseModel):
    value: int


class AdvanceProgressRequest(BaseModel):
    step: int = Field(10, ge=-100, le=100)


@router.get("/projects/{project_id}/journey")
def get_board(project_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _controller.board(session, project_id).to_dict()


@router.post("/projects/{project_id}/journey/complete-phase")
def complete_phase(
    project_id: str,
    req: CompletePhaseRequest,
    session: SessionContext = Depends(get_session),
    x_request_id: Optional[str] = Header(default=None),
):
    with http_errors():
        return _request_guard.run(
            session,
            scope=f"complete_phase:{project_id}",
            request_id=x_request_id,
            action=lambda: _controller.complete_phase(session, project_id, req.current_phase).to_dict(),
        )


@router.put("/projects/{project_id}/journey/progress")
def set_progress(project_id: str, req: ProgressRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        project, transition = _controller.set_progress(session, project_id, req.value)
    return {"project": project.to_dict(), "transition": transition.to_dict() if transition else None}


@router.post("/projects/{project_id}/journey/progress/advance")
def advance_progress(
    project_id: str, req: AdvanceProgressRequest, session: SessionContext = Depends(get_session)
):
    with http_errors():
        project, transition = _controller.advance_progress(session, project_id, req.step)
    return {"project": project.to_dict(), "transition": transition.to_dict() if transition else None}


@router.post("/projects/{project_id}/journey/complete-research")
def complete_research(project_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _controller.complete_research(session, project_id).to_dict()


@router.get("/journey/progress/stream")
async def progress_stream(
    start: int = Query(0, ge=0, le=100),
    stop: int = Query(100, ge=0, le=100),
    step: int = Query(10, ge=1, le=100),
    interval_ms: int = Query(int(RAMP_INTERVAL_SECONDS * 1000), ge=0, le=5000),
):
    """Cosmetic progress ramp for clients; stored progress is not touched."""
    values = progress_ramp(start, stop, step)
    return StreamingResponse(
        wrap_generator(
            tick_events(values, interval_seconds=interval_ms / 1000.0),
            workflow="progress_ramp",
            trace_id=get_trace_id(),
        ),
        media_type="text/event-stream",
    )
