"""HR job management endpoints.

POST   /api/v1/hr/jobs                                  - Create a job
GET    /api/v1/hr/jobs                                  - List own jobs
GET    /api/v1/hr/jobs/{job_id}                         - Get own job
PATCH  /api/v1/hr/jobs/{job_id}                         - Update fields
POST   /api/v1/hr/jobs/{job_id}/publish                 - Publish / unpublish
DELETE /api/v1/hr/jobs/{job_id}                         - Delete
GET    /api/v1/hr/jobs/{job_id}/candidates              - Applications for a job
GET    /api/v1/hr/jobs/{job_id}/candidates/{user_id}    - One candidate's progress
PUT    /api/v1/hr/jobs/{job_id}/assignment              - Upsert assignment template
DELETE /api/v1/hr/cache/raw-files                       - Drop cached candidate files
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import (
    CurrentUser,
    get_assessment_service,
    get_raw_fetcher,
    rate_limit_by_user,
    require_hr,
)
from db.session import get_db_session
from services.assessment import AssessmentService
from services.job_service import JobService
from services.raw_fetcher import RawFileFetcher
from services.role_recommendation import RoleRecommendation

router = APIRouter(dependencies=[Depends(rate_limit_by_user)])


def _check_weights(value: Optional[dict[str, float]]) -> Optional[dict[str, float]]:
    if value is not None and any(weight < 0 for weight in value.values()):
        raise ValueError("required_stacks weights must be >= 0")
    return value


class JobCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    required_stacks: dict[str, float] = Field(..., min_length=1)
    match_threshold: Optional[int] = Field(None, ge=0, le=100)
    is_published: bool = False

    @field_validator("required_stacks")
    @classmethod
    def _non_negative_weights(cls, v: Optional[dict[str, float]]) -> Optional[dict[str, float]]:
        return _check_weights(v)


class JobUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    required_stacks: Optional[dict[str, float]] = None
    match_threshold: Optional[int] = Field(None, ge=0, le=100)
    is_published: Optional[bool] = None

    @field_validator("required_stacks")
    @classmethod
    def _non_negative_weights(cls, v: Optional[dict[str, float]]) -> Optional[dict[str, float]]:
        return _check_weights(v)


class PublishRequest(BaseModel):
    is_published: bool


class AssignmentUpsertRequest(BaseModel):
    repo_template_url: str = Field(..., min_length=1)
    instructions: Optional[str] = None


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    hr_user_id: str
    title: str
    description: Optional[str] = None
    required_stacks: dict[str, float]
    match_threshold: int
    is_published: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    repo_template_url: str
    instructions: Optional[str] = None


class MatchRow(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_id: int
    candidate_user_id: str
    analysis_id: Optional[int] = None
    repo_full_name: str
    status: str
    score: int
    rationale: Optional[dict[str, Any]] = None
    created_at: datetime


class JobCandidate(BaseModel):
    match: MatchRow
    github_login: Optional[str] = None
    github_url: Optional[str] = None


class ProfileView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    github_login: str
    github_url: str
    last_analyzed_at: Optional[datetime] = None


class AnalysisView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    repo_full_name: str
    tech_stack: dict[str, Any]
    signals: Optional[dict[str, Any]] = None
    domain_tags: Optional[list[str]] = None
    created_at: datetime


class CandidateAssignmentView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    repo_url: Optional[str] = None
    submission_branch: str
    status: str
    decision_status: str
    todo: Optional[dict[str, Any]] = None
    timeline: Optional[list[dict[str, Any]]] = None
    capability_stats: Optional[dict[str, Any]] = None


class CandidateForJobResponse(BaseModel):
    candidate_profile: Optional[ProfileView] = None
    latest_analysis: Optional[AnalysisView] = None
    job_match: Optional[MatchRow] = None
    candidate_assignment: Optional[CandidateAssignmentView] = None
    role_recommendation: Optional[RoleRecommendation] = None


@router.post("/jobs", response_model=JobResponse, status_code=201)
async def create_job(
    request: JobCreateRequest,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).create(
        user.id,
        title=request.title,
        required_stacks=request.required_stacks,
        description=request.description,
        match_threshold=request.match_threshold,
        is_published=request.is_published,
    )
    return JobResponse.model_validate(job)


@router.get("/jobs", response_model=list[JobResponse])
async def list_my_jobs(
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> list[JobResponse]:
    jobs = await JobService(session).list_mine(user.id)
    return [JobResponse.model_validate(job) for job in jobs]


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    return JobResponse.model_validate(await JobService(session).get(user.id, job_id))


@router.patch("/jobs/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: int,
    request: JobUpdateRequest,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).update(user.id, job_id, request.model_dump(exclude_unset=True))
    return JobResponse.model_validate(job)


@router.post("/jobs/{job_id}/publish", response_model=JobResponse)
async def publish_job(
    job_id: int,
    request: PublishRequest,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> JobResponse:
    job = await JobService(session).publish(user.id, job_id, request.is_published)
    return JobResponse.model_validate(job)


@router.delete("/jobs/{job_id}")
async def delete_job(
    job_id: int,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> dict:
    await JobService(session).delete(user.id, job_id)
    return {"ok": True}


@router.get("/jobs/{job_id}/candidates", response_model=list[JobCandidate])
async def list_job_candidates(
    job_id: int,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> list[JobCandidate]:
    rows = await JobService(session).list_candidates(user.id, job_id)
    return [
        JobCandidate(
            match=MatchRow.model_validate(row["match"]),
            github_login=row["github_login"],
            github_url=row["github_url"],
        )
        for row in rows
    ]


@router.get("/jobs/{job_id}/candidates/{candidate_user_id}", response_model=CandidateForJobResponse)
async def get_candidate_for_job(
    job_id: int,
    candidate_user_id: str,
    user: CurrentUser = Depends(require_hr),
    session: AsyncSession = Depends(get_db_session),
) -> CandidateForJobResponse:
    view = await JobService(session).candidate_for_job(user.id, job_id, candidate_user_id)
    return CandidateForJobResponse.model_validate(view, from_attributes=True)


@router.put("/jobs/{job_id}/assignment", response_model=AssignmentResponse)
async def upsert_assignment(
    job_id: int,
    request: AssignmentUpsertRequest,
    user: CurrentUser = Depends(require_hr),
    service: AssessmentService = Depends(get_assessment_service),
) -> AssignmentResponse:
    assignment = await service.upsert_for_job(
        user.id, job_id, request.repo_template_url, request.instructions
    )
    return AssignmentResponse.model_validate(assignment)


@router.delete("/cache/raw-files")
async def clear_raw_file_cache(
    _user: CurrentUser = Depends(require_hr),
    fetcher: RawFileFetcher = Depends(get_raw_fetcher),
) -> dict:
    """Drop cached candidate files so the next review reads fresh code."""
    deleted = await fetcher.clear_cache()
    return {"ok": True, "deleted": deleted}
