"""Tests for job match scoring and the application workflow."""

import pytest

from app.exceptions import BadRequestError, ForbiddenError, NotFoundError
from db.models import ApplicationStatus, Job, RepoAnalysis
from db.repositories.matches import MatchRepository
from services.match_service import (
    RATIONALE_VERSION,
    MatchService,
    analysis_skill_map,
    merge_skill_maps,
)

CANDIDATE_ID = "cand_1"
HR_ID = "hr_1"
REPO = "octocat/shop"


class TestSkillMaps:
    def test_merge_keeps_highest_confidence_and_all_evidence(self):
        merged = merge_skill_maps(
            {"React": {"confidence": 0.7, "evidence": ["Detected framework/library"]}},
            {"React": {"confidence": 1.0, "evidence": ["dependencies.react", "Detected framework/library"]}},
            {"Docker": {"confidence": 0.5}},
        )
        assert merged["React"].confidence == 1.0
        assert merged["React"].evidence == ["Detected framework/library", "dependencies.react"]
        assert merged["Docker"].evidence == []

    def test_analysis_skill_map_includes_package_skills(self, sample_tech_stack):
        analysis = RepoAnalysis(
            candidate_user_id=CANDIDATE_ID,
            repo_full_name=REPO,
            tech_stack=sample_tech_stack,
            rationale={"package_skills": {"CI/CD": {"confidence": 1.0, "evidence": ["dir:.github"]}}},
        )
        skills = analysis_skill_map(analysis)
        assert skills["CI/CD"].evidence == ["dir:.github"]
        assert skills["TypeScript"].evidence == ["Language share: 73%"]

    def test_analysis_skill_map_without_rationale(self, sample_tech_stack):
        analysis = RepoAnalysis(candidate_user_id=CANDIDATE_ID, repo_full_name=REPO, tech_stack=sample_tech_stack)
        assert "React" in analysis_skill_map(analysis)


@pytest.fixture
def service(db_session):
    return MatchService(db_session)


@pytest.fixture
def matches(db_session):
    return MatchRepository(db_session)


async def add_job(db_session, hr_user_id=HR_ID, published=True, stacks=None) -> Job:
    job = Job(
        hr_user_id=hr_user_id,
        title="Backend Engineer",
        required_stacks=stacks or {"go": 1},
        is_published=published,
    )
    db_session.add(job)
    await db_session.flush()
    return job


class TestCompute:
    async def test_scores_published_jobs(self, service, matches, seeded, db_session):
        await add_job(db_session, published=False)

        result = await service.compute(CANDIDATE_ID, seeded["analysis"].id)

        assert result == {"ok": True, "job_count": 1, "upserted": 1}
        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        # react 0.7 and typescript 0.725 found, ci missing: 53.125 * (0.7 + 0.3 * 2/3)
        assert match.score == 48
        assert match.status == ApplicationStatus.COMPLETED.value
        assert match.analysis_id == seeded["analysis"].id
        assert match.rationale["version"] == RATIONALE_VERSION
        assert [item["requirement"] for item in match.rationale["breakdown"]] == [
            "react",
            "typescript",
            "ci",
        ]
        assert match.rationale["breakdown"][2]["reason"] == "No evidence found for ci"

    async def test_package_skills_raise_the_score(self, service, matches, seeded):
        analysis = seeded["analysis"]
        analysis.rationale = {
            "package_skills": {
                "React": {"confidence": 1.0, "evidence": ["dependencies.react"]},
                "CI/CD": {"confidence": 1.0, "evidence": ["dir:.github"]},
            }
        }

        await service.compute(CANDIDATE_ID, analysis.id)

        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        assert match.score == 93
        assert match.rationale["coverage"] == 1.0

    async def test_rescoring_keeps_hr_decision(self, service, matches, seeded):
        await service.compute(CANDIDATE_ID, seeded["analysis"].id)
        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        await matches.set_status(match, ApplicationStatus.PROCEED.value)

        await service.compute(CANDIDATE_ID, seeded["analysis"].id)

        assert match.status == ApplicationStatus.PROCEED.value

    async def test_scoring_completes_started_application(self, service, matches, seeded):
        await service.init_for_repo(CANDIDATE_ID, REPO)

        await service.compute(CANDIDATE_ID, seeded["analysis"].id)

        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        assert match.status == ApplicationStatus.COMPLETED.value
        assert match.score == 48

    async def test_other_candidates_analysis(self, service, seeded):
        with pytest.raises(NotFoundError):
            await service.compute("cand_other", seeded["analysis"].id)

    async def test_list_mine_orders_by_score(self, service, seeded, db_session):
        await add_job(db_session, stacks={"typescript": 1})
        await service.compute(CANDIDATE_ID, seeded["analysis"].id)

        rows = await service.list_mine(CANDIDATE_ID)

        assert [row.score for row in rows] == sorted((row.score for row in rows), reverse=True)
        assert len(rows) == 2


class TestInitForRepo:
    async def test_creates_in_progress_rows(self, service, matches, seeded):
        result = await service.init_for_repo(CANDIDATE_ID, REPO)
        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        assert result["job_count"] == 1
        assert match.status == ApplicationStatus.IN_PROGRESS.value
        assert match.score == 0

    @pytest.mark.parametrize(
        "status,expected",
        [
            (ApplicationStatus.PROCEED, ApplicationStatus.PROCEED),
            (ApplicationStatus.WAITLISTED, ApplicationStatus.WAITLISTED),
            (ApplicationStatus.COMPLETED, ApplicationStatus.IN_PROGRESS),
        ],
    )
    async def test_final_decisions_survive(self, service, matches, seeded, status, expected):
        await service.compute(CANDIDATE_ID, seeded["analysis"].id)
        match = await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)
        await matches.set_status(match, status.value)

        await service.init_for_repo(CANDIDATE_ID, REPO)

        assert match.status == expected.value
        assert match.score == 48


class TestHRStatus:
    @pytest.fixture
    async def match(self, service, matches, seeded):
        await service.compute(CANDIDATE_ID, seeded["analysis"].id)
        return await matches.find(seeded["job"].id, CANDIDATE_ID, REPO)

    async def test_any_hr_on_published_job(self, service, match):
        updated = await service.set_status("hr_other", match.id, ApplicationStatus.WAITLISTED)
        assert updated.status == "waitlisted"

    async def test_unpublished_job_owner_only(self, service, match, seeded):
        seeded["job"].is_published = False
        with pytest.raises(ForbiddenError):
            await service.set_status("hr_other", match.id, ApplicationStatus.REJECTED)
        updated = await service.set_status(HR_ID, match.id, ApplicationStatus.REJECTED)
        assert updated.status == "rejected"

    async def test_missing_match(self, service, seeded):
        with pytest.raises(NotFoundError):
            await service.set_status(HR_ID, 9999, ApplicationStatus.PROCEED)

    async def test_flag_owner_only(self, service, match):
        with pytest.raises(ForbiddenError):
            await service.mark_flagged("hr_other", match.id)
        flagged = await service.mark_flagged(HR_ID, match.id)
        assert flagged.status == "flagged"

    async def test_delete(self, service, matches, match):
        await service.delete(match.id)
        assert await matches.get(match.id) is None
        with pytest.raises(NotFoundError):
            await service.delete(match.id)


class TestCandidateProgress:
    async def test_mark_progress(self, service, seeded):
        await service.init_for_repo(CANDIDATE_ID, REPO)
        match = await service.mark_progress(
            CANDIDATE_ID, seeded["job"].id, REPO, ApplicationStatus.COMPLETED
        )
        assert match.status == "completed"

    async def test_candidate_cannot_set_hr_decision(self, service, seeded):
        with pytest.raises(BadRequestError):
            await service.mark_progress(
                CANDIDATE_ID, seeded["job"].id, REPO, ApplicationStatus.PROCEED
            )

    async def test_unknown_application(self, service, seeded):
        with pytest.raises(NotFoundError):
            await service.mark_progress(
                CANDIDATE_ID, seeded["job"].id, "octocat/other", ApplicationStatus.IN_PROGRESS
            )
