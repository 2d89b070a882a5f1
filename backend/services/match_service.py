"""Job match / application workflow.

A JobMatch row is a candidate's application to one job with one
repository. Rows are created two ways: scoring an analysis against every
published job (compute), or starting an assessment before any scoring has
happened (init_for_repo). HR moves rows through the review statuses.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import BadRequestError, ForbiddenError, NotFoundError
from app.logging_config import get_logger
from app.metrics import MATCH_SCORE, MATCH_SCORES_COMPUTED
from db.models import (
    CANDIDATE_STATUSES,
    FINAL_DECISIONS,
    ApplicationStatus,
    Job,
    JobMatch,
    RepoAnalysis,
)
from db.repositories.analyses import AnalysisRepository
from db.repositories.jobs import JobRepository
from db.repositories.matches import MatchRepository
from services.match_engine import RepoSkillMap, SkillEvidence, compute_deterministic_job_match
from services.track_engine import derive_repo_skill_evidence_map

logger = get_logger(__name__)

RATIONALE_VERSION = "match-rationale-v1"
RATIONALE_NOTE = "Deterministic scoring (rule-based) + coverage factor"


def merge_skill_maps(*maps: dict[str, Any]) -> RepoSkillMap:
    """Union of skill maps: highest confidence wins, evidence is concatenated."""
    merged: RepoSkillMap = {}
    for skill_map in maps:
        for name, value in (skill_map or {}).items():
            incoming = SkillEvidence.model_validate(value)
            current = merged.get(name)
            if current is None:
                merged[name] = incoming
                continue
            evidence = list(current.evidence)
            evidence.extend(e for e in incoming.evidence if e not in evidence)
            merged[name] = SkillEvidence(
                confidence=max(current.confidence, incoming.confidence),
                evidence=evidence,
            )
    return merged


def analysis_skill_map(analysis: RepoAnalysis) -> RepoSkillMap:
    """Skill evidence for an analysis: tech stack plus stored package.json skills."""
    rationale = analysis.rationale if isinstance(analysis.rationale, dict) else {}
    package_skills = rationale.get("package_skills")
    return merge_skill_maps(
        derive_repo_skill_evidence_map(analysis.tech_stack),
        package_skills if isinstance(package_skills, dict) else {},
    )


class MatchService:
    def __init__(self, session: AsyncSession) -> None:
        self.analyses = AnalysisRepository(session)
        self.jobs = JobRepository(session)
        self.matches = MatchRepository(session)

    async def compute(self, candidate_user_id: str, analysis_id: int) -> dict[str, Any]:
        """Score one analysis against every published job.

        Scored rows become completed unless HR already made a final decision.
        """
        analysis = await self.analyses.get_for_candidate(analysis_id, candidate_user_id)
        if analysis is None:
            raise NotFoundError("Analysis not found")

        jobs = await self.jobs.list_published()
        repo_skills = analysis_skill_map(analysis)

        upserted = 0
        for job in jobs:
            result = compute_deterministic_job_match(job.required_stacks or {}, repo_skills)
            rationale = {
                "version": RATIONALE_VERSION,
                "coverage": result.coverage,
                "breakdown": [item.model_dump() for item in result.breakdown],
                "note": RATIONALE_NOTE,
            }
            await self.matches.upsert_score(
                job.id,
                candidate_user_id,
                analysis.repo_full_name,
                analysis.id,
                result.score,
                rationale,
                ApplicationStatus.COMPLETED.value,
                keep=FINAL_DECISIONS,
            )
            MATCH_SCORES_COMPUTED.inc()
            MATCH_SCORE.observe(result.score)
            upserted += 1

        logger.info(
            "matches_computed",
            analysis_id=analysis.id,
            job_count=len(jobs),
            upserted=upserted,
        )
        return {"ok": True, "job_count": len(jobs), "upserted": upserted}

    async def list_mine(self, candidate_user_id: str) -> list[JobMatch]:
        return await self.matches.list_by_candidate(candidate_user_id)

    async def init_for_repo(self, candidate_user_id: str, repo_full_name: str) -> dict[str, Any]:
        """Mark applications for every published job as in progress.

        Rows already carrying a final HR decision keep it.
        """
        jobs = await self.jobs.list_published()
        for job in jobs:
            await self.matches.upsert_status(
                job.id,
                candidate_user_id,
                repo_full_name,
                ApplicationStatus.IN_PROGRESS.value,
                keep=FINAL_DECISIONS,
            )
        logger.info("applications_initialized", job_count=len(jobs))
        return {"ok": True, "job_count": len(jobs), "upserted": len(jobs)}

    async def _match_with_job(self, match_id: int) -> tuple[JobMatch, Job]:
        match = await self.matches.get(match_id)
        if match is None:
            raise NotFoundError("Match not found")
        job = await self.jobs.get(match.job_id)
        if job is None:
            raise NotFoundError("Job not found")
        return match, job

    async def set_status(self, hr_user_id: str, match_id: int, status: ApplicationStatus) -> JobMatch:
        """HR status change. Any HR may act on published jobs; owners only otherwise."""
        match, job = await self._match_with_job(match_id)
        if not job.is_published and job.hr_user_id != hr_user_id:
            raise ForbiddenError(
                "You can only update status for published jobs or your own unpublished jobs"
            )
        logger.info("application_status_set", match_id=match.id, status=status.value)
        return await self.matches.set_status(match, status.value)

    async def mark_flagged(self, hr_user_id: str, match_id: int) -> JobMatch:
        match, job = await self._match_with_job(match_id)
        if job.hr_user_id != hr_user_id:
            raise ForbiddenError("Not your job")
        return await self.matches.set_status(match, ApplicationStatus.FLAGGED.value)

    async def delete(self, match_id: int) -> None:
        """Remove one application row. The candidate and their analyses stay."""
        match = await self.matches.get(match_id)
        if match is None:
            raise NotFoundError("Match not found")
        await self.matches.delete(match)

    async def mark_progress(
        self,
        candidate_user_id: str,
        job_id: int,
        repo_full_name: str,
        status: ApplicationStatus,
    ) -> JobMatch:
        if status.value not in CANDIDATE_STATUSES:
            raise BadRequestError("Invalid candidate status")
        match = await self.matches.find(job_id, candidate_user_id, repo_full_name)
        if match is None:
            raise NotFoundError("Application not found")
        return await self.matches.set_status(match, status.value)
