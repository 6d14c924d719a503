from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from researchquest.api.container import get_platform_adapters, get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services.community_directory import CommunityDirectory
from researchquest.application.services.session_context import SessionContext

router = APIRouter()

_directory = CommunityDirectory(get_store(), get_platform_adapters())


class CreateCommunityRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str = ""
    topics: List[str] = Field(default_factory=list)
    icon_url: Optional[str] = None


class PlatformJoinRequest(BaseModel):
    platform: str
    target_id: str = Field(..., min_length=1)


@router.get("/communities")
async def search_communities(
    q: str = Query(""),
    platforms: Optional[List[str]] = Query(None),
    topic: Optional[str] = Query(None),
    sort_by: str = Query("members"),
):
    with http_errors():
        result = await _directory.search(q, platforms=platforms, topic=topic, sort_by=sort_by)
    return result.to_dict()


@router.post("/communities")
def create_community(req: CreateCommunityRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        community = _directory.create_community(
            session,
            name=req.name,
            description=req.description,
            topics=req.topics,
            icon_url=req.icon_url,
        )
    return community.to_dict()


@router.get("/communities/joined")
def joined_communities(session: SessionContext = Depends(get_session)):
    with http_errors():
        communities = _directory.joined(session)
        joins = _directory.platform_joins(session)
    return {"communities": [c.to_dict() for c in communities], "platform_joins": joins}


@router.post("/communities/platform-join")
async def join_platform(req: PlatformJoinRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        result = await _directory.join_platform(session, req.platform, req.target_id)
    return result.to_dict()


@router.get("/communities/{community_id}")
def get_community(community_id: str):
    with http_errors():
        return _directory.get_community(community_id).to_dict()


@router.post("/communities/{community_id}/join")
def join_community(community_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _directory.join(session, community_id).to_dict()


@router.post("/communities/{community_id}/leave")
def leave_community(community_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _directory.leave(session, community_id).to_dict()
