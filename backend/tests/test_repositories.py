"""Tests for database repositories."""

from db.models import Assignment, RepoAnalysis
from db.repositories.analyses import AnalysisRepository
from db.repositories.jobs import JobRepository
from db.repositories.matches import MatchRepository
from db.repositories.profiles import ProfileRepository

CANDIDATE_ID = "cand_1"


class TestAnalysisRepository:
    async def test_latest_for_candidate(self, db_session, seeded, sample_tech_stack):
        repo = AnalysisRepository(db_session)
        newer = await repo.create(
            RepoAnalysis(
                candidate_user_id=CANDIDATE_ID,
                repo_full_name="octocat/blog",
                tech_stack=sample_tech_stack,
                created_at=seeded["analysis"].created_at,
            )
        )
        latest = await repo.latest_for_candidate(CANDIDATE_ID)
        assert latest.id == newer.id
        assert await repo.latest_for_candidate("nobody") is None

    async def test_get_for_candidate_checks_owner(self, db_session, seeded):
        repo = AnalysisRepository(db_session)
        assert await repo.get_for_candidate(seeded["analysis"].id, "cand_other") is None


class TestProfileRepository:
    async def test_touch_analyzed(self, db_session, seeded):
        repo = ProfileRepository(db_session)
        await repo.touch_analyzed(CANDIDATE_ID)
        assert (await repo.get(CANDIDATE_ID)).last_analyzed_at is not None
        await repo.touch_analyzed("nobody")


class TestJobRepository:
    async def test_upsert_assignment(self, db_session, seeded):
        repo = JobRepository(db_session)
        updated = await repo.upsert_assignment(seeded["job"].id, "https://github.com/acme/v2", None)
        assert updated.id == seeded["assignment"].id
        assert updated.instructions is None

    async def test_published_pairs(self, db_session, seeded):
        [(job, assignment)] = await JobRepository(db_session).list_published_with_assignment()
        assert job.id == seeded["job"].id
        assert assignment.id == seeded["assignment"].id

    async def test_delete_removes_assignments(self, db_session, seeded):
        repo = JobRepository(db_session)
        job_id = seeded["job"].id
        await repo.delete(seeded["job"])
        assert await repo.get(job_id) is None
        assert await db_session.get(Assignment, seeded["assignment"].id, populate_existing=True) is None


class TestMatchRepository:
    async def test_upsert_status_respects_keep(self, db_session, seeded):
        repo = MatchRepository(db_session)
        job_id = seeded["job"].id
        match = await repo.upsert_status(job_id, CANDIDATE_ID, "octocat/shop", "proceed")
        again = await repo.upsert_status(
            job_id, CANDIDATE_ID, "octocat/shop", "in_progress", keep={"proceed"}
        )
        assert again.id == match.id
        assert again.status == "proceed"

        await repo.upsert_status(job_id, CANDIDATE_ID, "octocat/shop", "in_progress")
        assert match.status == "in_progress"

    async def test_upsert_score_respects_keep(self, db_session, seeded):
        repo = MatchRepository(db_session)
        job_id = seeded["job"].id
        analysis_id = seeded["analysis"].id
        await repo.upsert_status(job_id, CANDIDATE_ID, "octocat/shop", "waitlisted")
        match = await repo.upsert_score(
            job_id, CANDIDATE_ID, "octocat/shop", analysis_id, 61, {}, "completed", keep={"waitlisted"}
        )
        assert match.status == "waitlisted"
        assert match.score == 61
        assert (await repo.get_for_analysis(job_id, CANDIDATE_ID, analysis_id)).id == match.id

    async def test_upsert_score_sets_status(self, db_session, seeded):
        repo = MatchRepository(db_session)
        job_id = seeded["job"].id
        await repo.upsert_status(job_id, CANDIDATE_ID, "octocat/shop", "in_progress")
        match = await repo.upsert_score(
            job_id, CANDIDATE_ID, "octocat/shop", seeded["analysis"].id, 61, {}, "completed"
        )
        assert match.status == "completed"
