from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from researchquest.api.container import get_phase_controller, get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services import topic_catalog
from researchquest.application.services.session_context import SessionContext
from researchquest.application.services.topic_selection import (
    TopicAnswers,
    TopicSelectionFlow,
    topic_history,
)
from researchquest.domain.topic import Topic
from researchquest.infrastructure.adapters.hf_topic_recommender import HuggingFaceTopicRecommender

router = APIRouter()

_store = get_store()
_controller = get_phase_controller()
_recommender: Optional[HuggingFaceTopicRecommender] = HuggingFaceTopicRecommender()


class TopicRef(BaseModel):
    topic_id: Optional[str] = None
    # recommended topics are not in the catalog and arrive inline
    topic: Optional[Dict[str, Any]] = None


class ConfirmTopicRequest(TopicRef):
    reason: str = Field(..., min_length=1)
    interests: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)


class RecommendRequest(BaseModel):
    interests: List[str] = Field(default_factory=list)
    limit: int = Field(4, ge=1, le=10)


def _resolve_topic(ref: TopicRef) -> Topic:
    if ref.topic_id:
        topic = topic_catalog.get_topic(ref.topic_id)
        if topic is None:
            raise HTTPException(status_code=404, detail="Topic not found")
        return topic
    if ref.topic and ref.topic.get("title"):
        return Topic.from_dict(ref.topic)
    raise HTTPException(status_code=400, detail="topic_id or topic is required")


def _flow(session: SessionContext, project_id: str) -> TopicSelectionFlow:
    return TopicSelectionFlow(session, project_id, store=_store, controller=_controller)


@router.get("/topics")
def search_topics(q: str = Query(""), category: str = Query(topic_catalog.ALL_CATEGORIES)):
    topics = topic_catalog.search_catalog(q, category)
    return {"topics": [t.to_dict() for t in topics]}


@router.get("/topics/categories")
def list_categories():
    return {"categories": topic_catalog.list_categories()}


@router.post("/topics/recommendations")
async def recommend(req: RecommendRequest):
    recommender = _recommender if _recommender is not None and _recommender.configured else None
    topics = await topic_catalog.recommend_topics(req.interests, limit=req.limit, recommender=recommender)
    return {"topics": [t.to_dict() for t in topics]}


@router.get("/topics/history")
def get_topic_history(session: SessionContext = Depends(get_session)):
    with http_errors():
        return {"history": topic_history(_store, session)}


@router.post("/projects/{project_id}/topic/questionnaire")
def open_questionnaire(project_id: str, req: TopicRef, session: SessionContext = Depends(get_session)):
    topic = _resolve_topic(req)
    with http_errors():
        return _flow(session, project_id).select_topic(topic).to_dict()


@router.post("/projects/{project_id}/topic")
def confirm_topic(project_id: str, req: ConfirmTopicRequest, session: SessionContext = Depends(get_session)):
    topic = _resolve_topic(req)
    with http_errors():
        flow = _flow(session, project_id)
        flow.select_topic(topic)
        confirmation = flow.confirm_topic(
            TopicAnswers(reason=req.reason, interests=req.interests, goals=req.goals)
        )
    return confirmation.to_dict()
