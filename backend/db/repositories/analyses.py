"""Repository analysis repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import RepoAnalysis


class AnalysisRepository:
    """CRUD operations for repository analyses."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, model: RepoAnalysis) -> RepoAnalysis:
        self._session.add(model)
        await self._session.flush()
        return model

    async def get(self, analysis_id: int) -> RepoAnalysis | None:
        return await self._session.get(RepoAnalysis, analysis_id)

    async def get_for_candidate(
        self, analysis_id: int, candidate_user_id: str
    ) -> RepoAnalysis | None:
        """Fetch an analysis only if it belongs to the candidate."""
        result = await self._session.execute(
            select(RepoAnalysis).where(
                RepoAnalysis.id == analysis_id,
                RepoAnalysis.candidate_user_id == candidate_user_id,
            )
        )
        return result.scalar_one_or_none()

    async def latest_for_candidate(self, candidate_user_id: str) -> RepoAnalysis | None:
        result = await self._session.execute(
            select(RepoAnalysis)
            .where(RepoAnalysis.candidate_user_id == candidate_user_id)
            .order_by(RepoAnalysis.created_at.desc(), RepoAnalysis.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()
