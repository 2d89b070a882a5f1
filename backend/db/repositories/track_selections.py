"""Track selection repository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CandidateTrackSelection


class TrackSelectionRepository:
    """One selected track per (candidate, analysis)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, candidate_user_id: str, analysis_id: int) -> CandidateTrackSelection | None:
        result = await self._session.execute(
            select(CandidateTrackSelection).where(
                CandidateTrackSelection.candidate_user_id == candidate_user_id,
                CandidateTrackSelection.analysis_id == analysis_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert(
        self, candidate_user_id: str, analysis_id: int, track: str
    ) -> CandidateTrackSelection:
        selection = await self.get(candidate_user_id, analysis_id)
        if selection is None:
            selection = CandidateTrackSelection(
                candidate_user_id=candidate_user_id,
                analysis_id=analysis_id,
                track=track,
            )
            self._session.add(selection)
        else:
            selection.track = track
        await self._session.flush()
        return selection
