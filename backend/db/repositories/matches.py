"""Job match / application repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import JobMatch


class MatchRepository:
    """Upserts keyed by (job, candidate, repo_full_name)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, match_id: int) -> JobMatch | None:
        return await self._session.get(JobMatch, match_id)

    async def find(
        self, job_id: int, candidate_user_id: str, repo_full_name: str
    ) -> JobMatch | None:
        result = await self._session.execute(
            select(JobMatch).where(
                JobMatch.job_id == job_id,
                JobMatch.candidate_user_id == candidate_user_id,
                JobMatch.repo_full_name == repo_full_name,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_score(
        self,
        job_id: int,
        candidate_user_id: str,
        repo_full_name: str,
        analysis_id: int,
        score: int,
        rationale: dict[str, Any],
        status: str,
        keep: set[str] | None = None,
    ) -> JobMatch:
        """Insert or refresh a scored match; the status is kept when it is in `keep`."""
        match = await self.find(job_id, candidate_user_id, repo_full_name)
        if match is None:
            match = JobMatch(
                job_id=job_id,
                candidate_user_id=candidate_user_id,
                repo_full_name=repo_full_name,
                analysis_id=analysis_id,
                score=score,
                rationale=rationale,
                status=status,
            )
            self._session.add(match)
        else:
            match.analysis_id = analysis_id
            match.score = score
            match.rationale = rationale
            if not keep or match.status not in keep:
                match.status = status
        await self._session.flush()
        return match

    async def upsert_status(
        self,
        job_id: int,
        candidate_user_id: str,
        repo_full_name: str,
        status: str,
        keep: set[str] | None = None,
    ) -> JobMatch:
        """Insert with status, or update status unless the current one is in `keep`."""
        match = await self.find(job_id, candidate_user_id, repo_full_name)
        if match is None:
            match = JobMatch(
                job_id=job_id,
                candidate_user_id=candidate_user_id,
                repo_full_name=repo_full_name,
                status=status,
                score=0,
            )
            self._session.add(match)
        elif not keep or match.status not in keep:
            match.status = status
        await self._session.flush()
        return match

    async def list_by_candidate(self, candidate_user_id: str) -> list[JobMatch]:
        result = await self._session.execute(
            select(JobMatch)
            .where(JobMatch.candidate_user_id == candidate_user_id)
            .order_by(JobMatch.score.desc(), JobMatch.id)
        )
        return list(result.scalars().all())

    async def list_by_job(self, job_id: int) -> list[JobMatch]:
        result = await self._session.execute(
            select(JobMatch).where(JobMatch.job_id == job_id).order_by(JobMatch.score.desc())
        )
        return list(result.scalars().all())

    async def get_for_analysis(
        self, job_id: int, candidate_user_id: str, analysis_id: int
    ) -> JobMatch | None:
        result = await self._session.execute(
            select(JobMatch).where(
                JobMatch.job_id == job_id,
                JobMatch.candidate_user_id == candidate_user_id,
                JobMatch.analysis_id == analysis_id,
            )
        )
        return result.scalars().first()

    async def set_status(self, match: JobMatch, status: str) -> JobMatch:
        match.status = status
        await self._session.flush()
        return match

    async def delete(self, match: JobMatch) -> None:
        await self._session.delete(match)
        await self._session.flush()
