"""Tests for track selection and recommendations."""

import pytest

from app.exceptions import NotFoundError
from db.repositories.track_selections import TrackSelectionRepository
from services.track_engine import TrackKey
from services.track_service import TrackService

CANDIDATE_ID = "cand_1"


@pytest.fixture
def service(db_session):
    return TrackService(db_session)


class TestTrackService:
    async def test_options(self, service, seeded):
        options = await service.get_options(CANDIDATE_ID, seeded["analysis"].id)

        assert options["repo_full_name"] == "octocat/shop"
        assert options["recommended_track_key"] == TrackKey.SPECIALIST
        assert [o.track_key for o in options["options"]] == list(TrackKey)
        assert set(options["recommendations_by_track"]) == {"specialist", "expansion", "pragmatist"}
        assert options["selected_track"] is None

        pragmatist = options["recommendations_by_track"]["pragmatist"][0]
        assert pragmatist.job_id == seeded["job"].id
        assert pragmatist.score == 12
        assert pragmatist.reason == "stack overlap 0% · domain: ecommerce"
        assert pragmatist.assignment.id == seeded["assignment"].id

    async def test_unknown_analysis(self, service, seeded):
        with pytest.raises(NotFoundError):
            await service.get_options("cand_other", seeded["analysis"].id)

    async def test_select_is_an_upsert(self, service, seeded, db_session):
        analysis_id = seeded["analysis"].id
        await service.select(CANDIDATE_ID, analysis_id, TrackKey.SPECIALIST)
        result = await service.select(CANDIDATE_ID, analysis_id, TrackKey.EXPANSION)

        assert result == {"ok": True, "analysis_id": analysis_id, "selected_track": TrackKey.EXPANSION}
        selection = await TrackSelectionRepository(db_session).get(CANDIDATE_ID, analysis_id)
        assert selection.track == "expansion"
        options = await service.get_options(CANDIDATE_ID, analysis_id)
        assert options["selected_track"] == "expansion"

    async def test_select_and_recommend(self, service, seeded):
        result = await service.select_and_recommend(
            CANDIDATE_ID, seeded["analysis"].id, TrackKey.EXPANSION
        )
        [rec] = result["recommendations"]
        assert rec.score == 8
        assert rec.reason == "stack overlap 0% · fill CI/CD gap"
