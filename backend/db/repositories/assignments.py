"""Candidate assignment repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CandidateAssignment


class AssignmentRepository:
    """Claimed assignments; one row per (assignment, candidate)."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, candidate_assignment_id: int) -> CandidateAssignment | None:
        return await self._session.get(CandidateAssignment, candidate_assignment_id)

    async def find(self, assignment_id: int, candidate_user_id: str) -> CandidateAssignment | None:
        result = await self._session.execute(
            select(CandidateAssignment).where(
                CandidateAssignment.assignment_id == assignment_id,
                CandidateAssignment.candidate_user_id == candidate_user_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_for_job(self, job_id: int, candidate_user_id: str) -> CandidateAssignment | None:
        result = await self._session.execute(
            select(CandidateAssignment)
            .where(
                CandidateAssignment.job_id == job_id,
                CandidateAssignment.candidate_user_id == candidate_user_id,
            )
            .order_by(CandidateAssignment.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, model: CandidateAssignment) -> CandidateAssignment:
        self._session.add(model)
        await self._session.flush()
        return model

    async def save(self, model: CandidateAssignment, fields: dict[str, Any]) -> CandidateAssignment:
        """Assign new column values (JSON columns are replaced wholesale)."""
        for name, value in fields.items():
            setattr(model, name, value)
        await self._session.flush()
        return model
