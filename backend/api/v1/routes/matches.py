"""Job match / application endpoints.

Candidate:
POST /api/v1/candidate/matches/compute          - Score an analysis against published jobs
GET  /api/v1/candidate/matches                  - Own matches
POST /api/v1/candidate/matches/init             - Start applications for a repository
POST /api/v1/candidate/matches/progress         - Update own application status

HR:
POST   /api/v1/hr/matches/{match_id}/status     - Set review status
POST   /api/v1/hr/matches/{match_id}/flag       - Flag an application
DELETE /api/v1/hr/matches/{match_id}            - Remove an application
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, rate_limit_by_user, require_candidate, require_hr
from api.v1.routes.jobs import MatchRow
from db.models import ApplicationStatus
from db.session import get_db_session
from services.match_service import MatchService

candidate_router = APIRouter(dependencies=[Depends(rate_limit_by_user)])
hr_router = APIRouter(dependencies=[Depends(rate_limit_by_user)])


class ComputeRequest(BaseModel):
    analysis_id: int


class UpsertSummary(BaseModel):
    ok: bool = True
    job_count: int
    upserted: int


class InitForRepoRequest(BaseModel):
    repo_full_name: str = Field(..., min_length=1)


class ProgressRequest(BaseModel):
    job_id: int
    repo_full_name: str = Field(..., min_length=1)
    status: ApplicationStatus


class StatusRequest(BaseModel):
    status: ApplicationStatus


@candidate_router.post("/matches/compute", response_model=UpsertSummary)
async def compute_matches(
    request: ComputeRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> UpsertSummary:
    return UpsertSummary(**await MatchService(session).compute(user.id, request.analysis_id))


@candidate_router.get("/matches", response_model=list[MatchRow])
async def list_my_matches(
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> list[MatchRow]:
    matches = await MatchService(session).list_mine(user.id)
    return [MatchRow.model_validate(match) for match in matches]


@candidate_router.post("/matches/init", response_model=UpsertSummary)
async def init_for_repo(
    request: InitForRepoRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> UpsertSummary:
    return UpsertSummary(**await MatchService(session).init_for_repo(user.id, request.repo_full_name))


@candidate_router.post("/matches/progress", response_model=MatchRow)
async def mark_progress(
    request: ProgressRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> MatchRow:
    match = await MatchService(session).mark_progress(
        user.id, request.job_id, request.repo_full_name, request.status
    )
    return MatchRow.model_validate(match)


@hr_router.post("/matches/{match_id}/status", response_model=MatchRow)
async def set_status(
    match_id: int,
    request: StatusRequest,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> MatchRow:
    match = await MatchService(session).set_status(user.id, match_id, request.status)
    return MatchRow.model_validate(match)


@hr_router.post("/matches/{match_id}/flag", response_model=MatchRow)
async def mark_flagged(
    match_id: int,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> MatchRow:
    match = await MatchService(session).mark_flagged(user.id, match_id)
    return MatchRow.model_validate(match)


@hr_router.delete("/matches/{match_id}")
async def delete_match(
    match_id: int,
    _user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    await MatchService(session).delete(match_id)
    return {"ok": True}
