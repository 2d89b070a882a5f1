"""Candidate profile repository."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CandidateProfile


class ProfileRepository:
    """Read and upsert candidate GitHub profiles."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> CandidateProfile | None:
        result = await self._session.execute(
            select(CandidateProfile).where(CandidateProfile.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def upsert_github(
        self, user_id: str, github_url: str, github_login: str
    ) -> CandidateProfile:
        """Create the profile or replace its GitHub identity."""
        profile = await self.get(user_id)
        if profile is None:
            profile = CandidateProfile(
                user_id=user_id, github_url=github_url, github_login=github_login
            )
            self._session.add(profile)
        else:
            profile.github_url = github_url
            profile.github_login = github_login
        await self._session.flush()
        return profile

    async def touch_analyzed(self, user_id: str) -> None:
        profile = await self.get(user_id)
        if profile is not None:
            profile.last_analyzed_at = datetime.now(UTC)
            await self._session.flush()
