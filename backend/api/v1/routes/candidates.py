"""Candidate profile and job browsing endpoints.

PUT /api/v1/candidate/profile           - Register GitHub identity
GET /api/v1/candidate/profile           - Current profile
GET /api/v1/candidate/jobs              - Published jobs
GET /api/v1/candidate/jobs/{job_id}     - Own progress on a claimed job
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, rate_limit_by_user, require_candidate
from api.v1.routes.jobs import AssignmentResponse, CandidateAssignmentView, ProfileView
from app.exceptions import NotFoundError
from db.session import get_db_session
from services.job_service import JobService

router = APIRouter(dependencies=[Depends(rate_limit_by_user)])


class SetGithubRequest(BaseModel):
    github_url: str = Field(..., min_length=1, max_length=500, pattern=r"^https?://")
    github_login: Optional[str] = Field(None, max_length=39)


class PublishedJob(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: Optional[str] = None
    required_stacks: dict[str, float]
    match_threshold: int
    created_at: datetime


class CandidateJobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job: Optional[PublishedJob] = None
    assignment: Optional[AssignmentResponse] = None
    candidate_assignment: CandidateAssignmentView
    submission_branch_url: Optional[str] = None
    messages: list[dict[str, Any]] = []


@router.put("/profile", response_model=ProfileView)
async def set_github(
    request: SetGithubRequest,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileView:
    profile = await JobService(session).set_github(user.id, request.github_url, request.github_login)
    return ProfileView.model_validate(profile)


@router.get("/profile", response_model=ProfileView)
async def get_profile(
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> ProfileView:
    profile = await JobService(session).get_profile(user.id)
    if profile is None:
        raise NotFoundError("Candidate profile not found")
    return ProfileView.model_validate(profile)


@router.get("/jobs", response_model=list[PublishedJob])
async def list_published_jobs(
    _user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> list[PublishedJob]:
    jobs = await JobService(session).list_published()
    return [PublishedJob.model_validate(job) for job in jobs]


@router.get("/jobs/{job_id}", response_model=CandidateJobResponse)
async def get_candidate_job(
    job_id: int,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> CandidateJobResponse:
    view = await JobService(session).candidate_job(user.id, job_id)
    view["messages"] = view["candidate_assignment"].messages or []
    return CandidateJobResponse.model_validate(view)
