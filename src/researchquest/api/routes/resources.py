from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from researchquest.api.container import get_resource_adapters, get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services.resource_directory import ResourceDirectory
from researchquest.application.services.session_context import SessionContext

router = APIRouter()

_directory = ResourceDirectory(get_store(), get_resource_adapters())


class AddResourceRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    type: str = "paper"
    description: str = ""
    url: str = ""
    tags: List[str] = Field(default_factory=list)
    author: Optional[str] = None


class RatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)


@router.get("/resources")
async def search_resources(
    q: str = Query(""),
    type: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None),
    sort_by: str = Query("date"),
    include_external: bool = Query(True),
):
    with http_errors():
        result = await _directory.search(
            q, type=type, tags=tags, sort_by=sort_by, include_external=include_external
        )
    return result.to_dict()


@router.post("/resources")
def add_resource(req: AddResourceRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _directory.add_resource(session, **req.model_dump()).to_dict()


@router.get("/resources/{resource_id}")
def get_resource(resource_id: str):
    with http_errors():
        return _directory.get_resource(resource_id).to_dict()


@router.post("/resources/{resource_id}/download")
def record_download(resource_id: str):
    with http_errors():
        return _directory.record_download(resource_id).to_dict()


@router.post("/resources/{resource_id}/ratings")
def add_rating(resource_id: str, req: RatingRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _directory.add_rating(session, resource_id, req.rating).to_dict()
