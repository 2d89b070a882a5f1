"""AI-PM assessment endpoints.

GET  /api/v1/candidate/jobs/{job_id}/assignment            - Assignment template of a published job
POST /api/v1/candidate/jobs/{job_id}/claim                 - Claim the job's assignment
GET  /api/v1/candidate/assignments/{id}                    - Claimed assignment state
POST /api/v1/candidate/assignments/{id}/messages           - One AI-PM chat turn
POST /api/v1/candidate/assignments/{id}/complete           - Final evaluation report
GET  /api/v1/candidate/assignments/{id}/role-recommendation - Role fit from the report
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from api.deps import (
    CurrentUser,
    get_assessment_service,
    rate_limit_by_user,
    rate_limit_chat,
    require_candidate,
)
from api.v1.routes.jobs import AssignmentResponse
from services.assessment import AssessmentService, load_messages
from services.assessment_types import ChatIntent, ChatMessage, EvaluationReport, TodoState
from services.role_recommendation import RoleRecommendation

router = APIRouter(dependencies=[Depends(rate_limit_by_user)])

MAX_MESSAGE_LENGTH = 2000


class ClaimRequest(BaseModel):
    repo_url: Optional[str] = Field(None, max_length=500)


class ClaimResponse(BaseModel):
    candidate_assignment_id: int


class SendMessageRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    file_paths: Optional[list[str]] = Field(None, max_length=20)
    subtask_id: Optional[str] = None
    intent: ChatIntent = ChatIntent.MESSAGE


class SendMessageResponse(BaseModel):
    ok: bool = True
    ai_message: ChatMessage
    should_terminate: bool


class CompleteRequest(BaseModel):
    final_file_paths: Optional[list[str]] = Field(None, max_length=20)


class CompleteResponse(BaseModel):
    ok: bool = True
    report: EvaluationReport


class CandidateAssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    assignment_id: int
    job_id: int
    repo_url: Optional[str] = None
    submission_branch: str
    status: str
    decision_status: str
    todo: TodoState
    messages: list[ChatMessage]
    timeline: list[dict[str, Any]]
    capability_stats: Optional[EvaluationReport] = None


@router.get("/jobs/{job_id}/assignment", response_model=Optional[AssignmentResponse])
async def get_job_assignment(
    job_id: int,
    _user: CurrentUser = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service),
) -> Optional[AssignmentResponse]:
    assignment = await service.get_by_job(job_id)
    return AssignmentResponse.model_validate(assignment) if assignment else None


@router.post("/jobs/{job_id}/claim", response_model=ClaimResponse)
async def claim_assignment(
    job_id: int,
    request: ClaimRequest,
    user: CurrentUser = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service),
) -> ClaimResponse:
    claimed = await service.claim(user.id, job_id, request.repo_url)
    return ClaimResponse(candidate_assignment_id=claimed.id)


@router.get("/assignments/{candidate_assignment_id}", response_model=CandidateAssignmentResponse)
async def get_assignment(
    candidate_assignment_id: int,
    user: CurrentUser = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service),
) -> CandidateAssignmentResponse:
    row = await service.get_assignment(user.id, candidate_assignment_id)
    return CandidateAssignmentResponse(
        id=row.id,
        assignment_id=row.assignment_id,
        job_id=row.job_id,
        repo_url=row.repo_url,
        submission_branch=row.submission_branch,
        status=row.status,
        decision_status=row.decision_status,
        todo=TodoState.from_stored(row.todo),
        messages=load_messages(row.messages),
        timeline=row.timeline or [],
        capability_stats=(
            EvaluationReport.model_validate(row.capability_stats) if row.capability_stats else None
        ),
    )


@router.post("/assignments/{candidate_assignment_id}/messages", response_model=SendMessageResponse)
async def send_message(
    candidate_assignment_id: int,
    request: SendMessageRequest,
    user: CurrentUser = Depends(require_candidate),
    _rate_limit: None = Depends(rate_limit_chat),
    service: AssessmentService = Depends(get_assessment_service),
) -> SendMessageResponse:
    """Send a candidate message to the AI-PM and apply its reply."""
    ai_message, should_terminate = await service.send_message(
        user.id,
        candidate_assignment_id,
        request.message,
        file_paths=request.file_paths,
        subtask_id=request.subtask_id,
        intent=request.intent,
    )
    return SendMessageResponse(ai_message=ai_message, should_terminate=should_terminate)


@router.post("/assignments/{candidate_assignment_id}/complete", response_model=CompleteResponse)
async def complete_evaluation(
    candidate_assignment_id: int,
    request: CompleteRequest,
    user: CurrentUser = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service),
) -> CompleteResponse:
    report = await service.complete_evaluation(
        user.id, candidate_assignment_id, request.final_file_paths
    )
    return CompleteResponse(report=report)


@router.get(
    "/assignments/{candidate_assignment_id}/role-recommendation",
    response_model=RoleRecommendation,
)
async def role_recommendation(
    candidate_assignment_id: int,
    user: CurrentUser = Depends(require_candidate),
    service: AssessmentService = Depends(get_assessment_service),
) -> RoleRecommendation:
    return await service.role_recommendation(user.id, candidate_assignment_id)
