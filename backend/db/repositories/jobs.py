"""Job and assignment template repository."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Assignment, Job


class JobRepository:
    """CRUD operations for jobs and their assignment templates."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, model: Job) -> Job:
        self._session.add(model)
        await self._session.flush()
        return model

    async def get(self, job_id: int) -> Job | None:
        return await self._session.get(Job, job_id)

    async def list_by_hr(self, hr_user_id: str) -> list[Job]:
        result = await self._session.execute(
            select(Job).where(Job.hr_user_id == hr_user_id).order_by(Job.id.desc())
        )
        return list(result.scalars().all())

    async def list_published(self) -> list[Job]:
        result = await self._session.execute(
            select(Job).where(Job.is_published.is_(True)).order_by(Job.id)
        )
        return list(result.scalars().all())

    async def update(self, job: Job, fields: dict[str, Any]) -> Job:
        for name, value in fields.items():
            setattr(job, name, value)
        await self._session.flush()
        return job

    async def delete(self, job: Job) -> None:
        await self._session.execute(delete(Assignment).where(Assignment.job_id == job.id))
        await self._session.delete(job)
        await self._session.flush()

    # --- Assignment templates ---

    async def get_assignment(self, job_id: int) -> Assignment | None:
        """First assignment template attached to the job."""
        result = await self._session.execute(
            select(Assignment).where(Assignment.job_id == job_id).order_by(Assignment.id).limit(1)
        )
        return result.scalar_one_or_none()

    async def get_assignment_by_id(self, assignment_id: int) -> Assignment | None:
        return await self._session.get(Assignment, assignment_id)

    async def upsert_assignment(
        self, job_id: int, repo_template_url: str, instructions: str | None
    ) -> Assignment:
        assignment = await self.get_assignment(job_id)
        if assignment is None:
            assignment = Assignment(
                job_id=job_id,
                repo_template_url=repo_template_url,
                instructions=instructions,
            )
            self._session.add(assignment)
        else:
            assignment.repo_template_url = repo_template_url
            assignment.instructions = instructions
        await self._session.flush()
        return assignment

    async def list_published_with_assignment(self) -> list[tuple[Job, Assignment | None]]:
        """Published jobs paired with their first assignment template."""
        jobs = await self.list_published()
        pairs = []
        for job in jobs:
            pairs.append((job, await self.get_assignment(job.id)))
        return pairs
