"""Jobs and candidate profiles.

HR users own jobs: weighted stack requirements, a match threshold and a
published flag. Candidates register a GitHub identity once and browse
published jobs.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.logging_config import get_logger
from db.models import CandidateProfile, Job, JobMatch, RepoAnalysis
from db.repositories.analyses import AnalysisRepository
from db.repositories.assignments import AssignmentRepository
from db.repositories.jobs import JobRepository
from db.repositories.matches import MatchRepository
from db.repositories.profiles import ProfileRepository
from services.github_parse import parse_github_owner
from services.role_recommendation import RoleRecommendation, recommend_role_from_candidate

logger = get_logger(__name__)

DEFAULT_MATCH_THRESHOLD = 50
UPDATABLE_FIELDS = ("title", "description", "required_stacks", "match_threshold", "is_published")


def role_from_analysis(analysis: RepoAnalysis, match: JobMatch | None = None) -> RoleRecommendation:
    """Role fit from detected frameworks, tooling and domain tags plus the match score."""
    stack = analysis.tech_stack or {}
    tags = [*(stack.get("frameworks") or []), *(stack.get("tooling") or []), *(analysis.domain_tags or [])]
    return recommend_role_from_candidate(
        match_score=match.score if match is not None else None,
        tags=[tag for tag in tags if isinstance(tag, str)],
    )


class JobService:
    def __init__(self, session: AsyncSession) -> None:
        self.jobs = JobRepository(session)
        self.profiles = ProfileRepository(session)
        self.analyses = AnalysisRepository(session)
        self.matches = MatchRepository(session)
        self.assignments = AssignmentRepository(session)

    # --- Candidate profile ---

    async def set_github(
        self, user_id: str, github_url: str, github_login: str | None = None
    ) -> CandidateProfile:
        """Register or replace the candidate's GitHub identity.

        The login is derived from the URL when not given.
        """
        login = (github_login or "").strip() or parse_github_owner(github_url)
        if not login:
            raise BadRequestError("Could not determine GitHub login")
        profile = await self.profiles.upsert_github(user_id, github_url, login)
        logger.info("candidate_profile_saved")
        return profile

    async def get_profile(self, user_id: str) -> CandidateProfile | None:
        return await self.profiles.get(user_id)

    # --- HR jobs ---

    async def _owned(self, hr_user_id: str, job_id: int) -> Job:
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if job.hr_user_id != hr_user_id:
            raise ForbiddenError("Job is not owned by this HR")
        return job

    async def create(
        self,
        hr_user_id: str,
        title: str,
        required_stacks: dict[str, float],
        description: str | None = None,
        match_threshold: int | None = None,
        is_published: bool = False,
    ) -> Job:
        job = await self.jobs.create(
            Job(
                hr_user_id=hr_user_id,
                title=title,
                description=description,
                required_stacks=required_stacks,
                match_threshold=(
                    DEFAULT_MATCH_THRESHOLD if match_threshold is None else match_threshold
                ),
                is_published=is_published,
            )
        )
        logger.info("job_created", job_id=job.id, published=job.is_published)
        return job

    async def list_mine(self, hr_user_id: str) -> list[Job]:
        return await self.jobs.list_by_hr(hr_user_id)

    async def get(self, hr_user_id: str, job_id: int) -> Job:
        return await self._owned(hr_user_id, job_id)

    async def update(self, hr_user_id: str, job_id: int, fields: dict[str, Any]) -> Job:
        job = await self._owned(hr_user_id, job_id)
        changes = {
            name: value
            for name, value in fields.items()
            if name in UPDATABLE_FIELDS and value is not None
        }
        if not changes:
            raise BadRequestError("No fields to update")
        logger.info("job_updated", job_id=job.id, fields=sorted(changes))
        return await self.jobs.update(job, changes)

    async def publish(self, hr_user_id: str, job_id: int, is_published: bool) -> Job:
        job = await self._owned(hr_user_id, job_id)
        logger.info("job_publish_changed", job_id=job.id, published=is_published)
        return await self.jobs.update(job, {"is_published": is_published})

    async def delete(self, hr_user_id: str, job_id: int) -> None:
        job = await self._owned(hr_user_id, job_id)
        await self.jobs.delete(job)
        logger.info("job_deleted", job_id=job_id)

    async def candidate_for_job(
        self, hr_user_id: str, job_id: int, candidate_user_id: str
    ) -> dict[str, Any]:
        """Profile, latest analysis, its match, the claimed assignment and a role fit."""
        await self._owned(hr_user_id, job_id)

        profile = await self.profiles.get(candidate_user_id)
        latest = await self.analyses.latest_for_candidate(candidate_user_id)
        match = (
            await self.matches.get_for_analysis(job_id, candidate_user_id, latest.id)
            if latest is not None
            else None
        )
        claimed = await self.assignments.find_for_job(job_id, candidate_user_id)

        return {
            "candidate_profile": profile,
            "latest_analysis": latest,
            "job_match": match,
            "candidate_assignment": claimed,
            "role_recommendation": role_from_analysis(latest, match) if latest is not None else None,
        }

    async def list_candidates(self, hr_user_id: str, job_id: int) -> list[dict[str, Any]]:
        """Applications for a job with each candidate's GitHub identity.

        Any HR may view published jobs; unpublished jobs only their owner.
        """
        job = await self.jobs.get(job_id)
        if job is None:
            raise NotFoundError("Job not found")
        if not job.is_published and job.hr_user_id != hr_user_id:
            raise ForbiddenError(
                "You can only view candidates for published jobs or your own unpublished jobs"
            )

        rows = []
        for match in await self.matches.list_by_job(job_id):
            profile = await self.profiles.get(match.candidate_user_id)
            rows.append(
                {
                    "match": match,
                    "github_login": profile.github_login if profile else None,
                    "github_url": profile.github_url if profile else None,
                }
            )
        return rows

    # --- Candidate views ---

    async def list_published(self) -> list[Job]:
        return await self.jobs.list_published()

    async def candidate_job(self, candidate_user_id: str, job_id: int) -> dict[str, Any]:
        """The candidate's claimed assignment for a job, with its submission branch URL."""
        claimed = await self.assignments.find_for_job(job_id, candidate_user_id)
        if claimed is None:
            raise NotFoundError("Candidate assignment not found")

        branch_url = None
        if claimed.repo_url and claimed.submission_branch:
            branch_url = f"{claimed.repo_url}/tree/{quote(claimed.submission_branch, safe='')}"

        return {
            "job": await self.jobs.get(job_id),
            "assignment": await self.jobs.get_assignment_by_id(claimed.assignment_id),
            "candidate_assignment": claimed,
            "submission_branch_url": branch_url,
        }
