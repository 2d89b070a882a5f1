"""Repository analysis endpoints.

POST /api/v1/candidate/analyses                 - Analyze a public repository
GET  /api/v1/candidate/analyses/{analysis_id}   - Stored analysis
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import CurrentUser, get_github_service, rate_limit_analyze, require_candidate
from api.v1.routes.jobs import AnalysisView
from app.exceptions import NotFoundError
from app.logging_config import get_logger
from db.repositories.analyses import AnalysisRepository
from db.session import get_db_session
from services.github_parse import parse_github_repo
from services.github_service import GitHubService
from services.repo_analyzer import RepoAnalyzer

logger = get_logger(__name__)
router = APIRouter()


class AnalyzeRequest(BaseModel):
    """Repository as owner/repo, a github.com URL or an SSH remote."""

    repo: str = Field(..., min_length=1, max_length=500)


class AnalyzeResponse(BaseModel):
    analysis_id: int
    repo_full_name: str
    tech_stack: dict[str, Any]
    signals: dict[str, Any]
    domain_tags: list[str]
    debug: dict[str, Any]


@router.post("/analyses", response_model=AnalyzeResponse, status_code=201)
async def analyze_repository(
    request: AnalyzeRequest,
    user: CurrentUser = Depends(require_candidate),
    _rate_limit: None = Depends(rate_limit_analyze),
    session: AsyncSession = Depends(get_db_session),
    github: GitHubService = Depends(get_github_service),
) -> AnalyzeResponse:
    """Analyze a public repository and store the result.

    Detects languages, frameworks, tooling, engineering signals and
    domain tags. The stored analysis feeds match scoring and track
    recommendations.
    """
    repo_full_name = parse_github_repo(request.repo).full_name
    result = await RepoAnalyzer(session, github).analyze(user.id, repo_full_name)
    return AnalyzeResponse(repo_full_name=repo_full_name, **result)


@router.get("/analyses/{analysis_id}", response_model=AnalysisView)
async def get_analysis(
    analysis_id: int,
    user: CurrentUser = Depends(require_candidate),
    session: AsyncSession = Depends(get_db_session),
) -> AnalysisView:
    analysis = await AnalysisRepository(session).get_for_candidate(analysis_id, user.id)
    if analysis is None:
        raise NotFoundError("Analysis not found")
    return AnalysisView.model_validate(analysis)
