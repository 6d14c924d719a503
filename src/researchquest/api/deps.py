"""Request identity and domain-error translation for the HTTP layer."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Header, HTTPException

from researchquest.application.services.session_context import SessionContext
from researchquest.domain.errors import (
    InvalidPhaseTransitionError,
    InvalidTaskStatusError,
    NotAuthenticatedError,
    NotFoundError,
    OperationInProgressError,
    StoreWriteError,
)
from researchquest.utils.logging_config import LogFiles, Logger, set_trace_id


def get_session(
    x_user_id: Optional[str] = Header(default=None),
    x_user_name: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> SessionContext:
    """Identity forwarded by the auth proxy; no id means anonymous."""
    set_trace_id()
    user_id = (x_user_id or "").strip()
    if not user_id:
        return SessionContext.anonymous()
    return SessionContext.for_user(
        user_id,
        display_name=(x_user_name or "").strip(),
        email=(x_user_email or "").strip(),
    )


@contextmanager
def http_errors() -> Iterator[None]:
    try:
        yield
    except NotAuthenticatedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except (InvalidPhaseTransitionError, InvalidTaskStatusError) as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except OperationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StoreWriteError as exc:
        Logger.error(f"store failure surfaced to client: {exc}", file=LogFiles.API)
        raise HTTPException(status_code=503, detail="Failed to save changes") from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
