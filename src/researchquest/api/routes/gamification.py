from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from researchquest.api.container import get_store
from researchquest.api.deps import get_session, http_errors
from researchquest.application.services.ledger_service import PointsLedger
from researchquest.application.services.session_context import SessionContext
from researchquest.domain.phase import parse_phase

router = APIRouter()

_ledger = PointsLedger(get_store())


class AwardPointsRequest(BaseModel):
    amount: int = Field(..., gt=0)
    description: str = Field(..., min_length=1)


class CreateRewardRequest(BaseModel):
    title: str = Field(..., min_length=1)
    points_cost: int = Field(..., gt=0)
    description: str = ""
    category: str = ""
    available: bool = True


class LeaderboardResponse(BaseModel):
    entries: List[Dict[str, Any]]


@router.get("/points")
def get_points(session: SessionContext = Depends(get_session)):
    with http_errors():
        return _ledger.get_points(session).to_dict()


@router.post("/points")
def award_points(req: AwardPointsRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _ledger.award_points(session, req.amount, req.description).to_dict()


@router.get("/achievements")
def list_achievements(session: SessionContext = Depends(get_session)):
    with http_errors():
        achievements = _ledger.list_achievements(session)
    return {"achievements": [a.to_dict() for a in achievements]}


@router.get("/achievements/phases/{phase}")
def list_phase_achievements(phase: str):
    with http_errors():
        items = PointsLedger.list_phase_achievements(parse_phase(phase))
    return {
        "phase": phase,
        "achievements": [
            {
                "title": a.title,
                "description": a.description,
                "icon": a.icon,
                "category": a.category,
                "points": a.points,
                "type": a.type,
            }
            for a in items
        ],
    }


@router.get("/rewards")
def list_rewards(include_unavailable: bool = Query(False)):
    rewards = _ledger.list_rewards(available_only=not include_unavailable)
    return {"rewards": [r.to_dict() for r in rewards]}


@router.post("/rewards")
def create_reward(req: CreateRewardRequest, session: SessionContext = Depends(get_session)):
    with http_errors():
        session.require_user()
        return _ledger.create_reward(**req.model_dump()).to_dict()


@router.post("/rewards/{reward_id}/redeem")
def redeem_reward(reward_id: str, session: SessionContext = Depends(get_session)):
    with http_errors():
        return _ledger.redeem_reward(session, reward_id).to_dict()


@router.get("/leaderboard", response_model=LeaderboardResponse)
def leaderboard(limit: int = Query(10, ge=1, le=100)):
    return LeaderboardResponse(entries=[e.to_dict() for e in _ledger.leaderboard(limit=limit)])
