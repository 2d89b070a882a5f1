"""Assessment track selection and job recommendations for an analysis."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import NotFoundError
from app.logging_config import get_logger
from app.metrics import TRACK_SELECTIONS
from db.models import RepoAnalysis
from db.repositories.analyses import AnalysisRepository
from db.repositories.jobs import JobRepository
from db.repositories.track_selections import TrackSelectionRepository
from services.track_engine import (
    JobRecommendation,
    TrackKey,
    derive_repo_skills,
    generate_track_options,
    recommend_default_track,
    top_recommendations,
)

logger = get_logger(__name__)

TOP_N = 3


class TrackService:
    def __init__(self, session: AsyncSession) -> None:
        self.analyses = AnalysisRepository(session)
        self.jobs = JobRepository(session)
        self.selections = TrackSelectionRepository(session)

    async def _analysis(self, candidate_user_id: str, analysis_id: int) -> RepoAnalysis:
        analysis = await self.analyses.get_for_candidate(analysis_id, candidate_user_id)
        if analysis is None:
            raise NotFoundError("Analysis not found")
        return analysis

    async def _recommend(self, analysis: RepoAnalysis, track: TrackKey) -> list[JobRecommendation]:
        jobs = await self.jobs.list_published_with_assignment()
        return top_recommendations(
            track,
            jobs,
            derive_repo_skills(analysis.tech_stack),
            analysis.signals,
            analysis.domain_tags or [],
            limit=TOP_N,
        )

    async def get_options(self, candidate_user_id: str, analysis_id: int) -> dict[str, Any]:
        """Track cards, the recommended default and top jobs for every track."""
        analysis = await self._analysis(candidate_user_id, analysis_id)
        selection = await self.selections.get(candidate_user_id, analysis.id)
        domain_tags = analysis.domain_tags or []

        jobs = await self.jobs.list_published_with_assignment()
        repo_skills = derive_repo_skills(analysis.tech_stack)
        by_track = {
            track.value: top_recommendations(
                track, jobs, repo_skills, analysis.signals, domain_tags, limit=TOP_N
            )
            for track in TrackKey
        }

        return {
            "analysis_id": analysis.id,
            "repo_full_name": analysis.repo_full_name,
            "domain_tags": domain_tags,
            "tech_stack": analysis.tech_stack,
            "recommended_track_key": recommend_default_track(
                analysis.tech_stack, analysis.signals, domain_tags
            ),
            "recommendations_by_track": by_track,
            "options": generate_track_options(analysis.tech_stack, analysis.signals, domain_tags),
            "selected_track": selection.track if selection else None,
        }

    async def select(self, candidate_user_id: str, analysis_id: int, track: TrackKey) -> dict[str, Any]:
        analysis = await self._analysis(candidate_user_id, analysis_id)
        await self.selections.upsert(candidate_user_id, analysis.id, track.value)
        TRACK_SELECTIONS.labels(track=track.value).inc()
        logger.info("track_selected", analysis_id=analysis.id, track=track.value)
        return {"ok": True, "analysis_id": analysis.id, "selected_track": track}

    async def select_and_recommend(
        self, candidate_user_id: str, analysis_id: int, track: TrackKey
    ) -> dict[str, Any]:
        result = await self.select(candidate_user_id, analysis_id, track)
        analysis = await self.analyses.get(analysis_id)
        result["recommendations"] = await self._recommend(analysis, track)
        return result
