"""Assessment track endpoints.

GET  /api/v1/candidate/analyses/{analysis_id}/tracks             - Options and recommendations
POST /api/v1/candidate/analyses/{analysis_id}/tracks/select      - Persist a selection
POST /api/v1/candidate/analyses/{analysis_id}/tracks/recommend   - Select and get top 3 jobs
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, rate_limit_by_user, require_candidate
from db.session import get_db_session
from services.track_engine import JobRecommendation, TrackKey, TrackOption
from services.track_service import TrackService

router = APIRouter(dependencies=[Depends(rate_limit_by_user)])


class TrackSelectRequest(BaseModel):
    track_key: TrackKey


class TrackOptionsResponse(BaseModel):
    analysis_id: int
    repo_full_name: str
    domain_tags: list[str]
    tech_stack: dict[str, Any]
    recommended_track_key: TrackKey
    recommendations_by_track: dict[str, list[JobRecommendation]]
    options: list[TrackOption]
    selected_track: Optional[TrackKey] = None


class TrackSelectResponse(BaseModel):
    ok: bool = True
    analysis_id: int
    selected_track: TrackKey
    recommendations: Optional[list[JobRecommendation]] = None


@router.get("/analyses/{analysis_id}/tracks", response_model=TrackOptionsResponse)
async def get_track_options(
    analysis_id: int,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> TrackOptionsResponse:
    return TrackOptionsResponse(**await TrackService(session).get_options(user.id, analysis_id))


@router.post(
    "/analyses/{analysis_id}/tracks/select",
    response_model=TrackSelectResponse,
    response_model_exclude_none=True,
)
async def select_track(
    analysis_id: int,
    request: TrackSelectRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> TrackSelectResponse:
    result = await TrackService(session).select(user.id, analysis_id, request.track_key)
    return TrackSelectResponse(**result)


@router.post("/analyses/{analysis_id}/tracks/recommend", response_model=TrackSelectResponse)
async def select_and_recommend(
    analysis_id: int,
    request: TrackSelectRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> TrackSelectResponse:
    result = await TrackService(session).select_and_recommend(
        user.id, analysis_id, request.track_key
    )
    return TrackSelectResponse(**result)
