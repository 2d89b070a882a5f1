"""Tests for repository analysis."""

from unittest.mock import AsyncMock

import pytest

from app.exceptions import BadRequestError, ForbiddenError, GitHubAPIError, GitHubNotFoundError
from db.models import CandidateProfile
from db.repositories.analyses import AnalysisRepository
from services.repo_analyzer import (
    RepoAnalyzer,
    detect_frameworks_from_package_json,
    detect_signals,
    extract_tech_stack,
    infer_domain_tags,
)

CANDIDATE_ID = "cand_1"

ROOT_CONTENTS = [
    {"name": "package.json", "path": "package.json", "type": "file"},
    {"name": "Dockerfile", "path": "Dockerfile", "type": "file"},
    {"name": "src", "path": "src", "type": "dir"},
]


class TestDetectFrameworks:
    def test_frontend_stack(self):
        frameworks = detect_frameworks_from_package_json(
            {
                "dependencies": {"react": "18", "next": "14", "@radix-ui/react-dialog": "1"},
                "devDependencies": {"tailwindcss": "3"},
            }
        )
        assert frameworks == ["React", "Next.js", "Tailwind CSS", "Radix UI", "shadcn/ui"]

    def test_backend_and_orm(self):
        frameworks = detect_frameworks_from_package_json(
            {"dependencies": {"express": "4", "prisma": "5", "zustand": "4"}}
        )
        assert frameworks == ["Express", "Prisma", "Zustand"]

    def test_radix_without_tailwind_is_not_shadcn(self):
        frameworks = detect_frameworks_from_package_json(
            {"dependencies": {"@radix-ui/react-popover": "1"}}
        )
        assert frameworks == ["Radix UI"]

    def test_missing_sections(self):
        assert detect_frameworks_from_package_json({"dependencies": "oops"}) == []


class TestExtractTechStack:
    def test_language_percentages(self):
        stack = extract_tech_stack({"TypeScript": 750, "CSS": 250}, [])
        assert stack["languages"] == [
            {"language": "TypeScript", "percentage": 75.0},
            {"language": "CSS", "percentage": 25.0},
        ]

    def test_zero_bytes(self):
        stack = extract_tech_stack({"Shell": 0}, [])
        assert stack["languages"] == [{"language": "Shell", "percentage": 0}]

    def test_marker_file_fallback(self):
        contents = [{"name": "go.mod"}, {"name": "requirements.txt"}, {"name": "docker-compose.yml"}]
        stack = extract_tech_stack({}, contents)
        assert stack["frameworks"] == ["Python", "Go"]
        assert stack["tooling"] == ["Docker Compose"]

    def test_package_json_wins_over_marker_files(self):
        stack = extract_tech_stack({}, ROOT_CONTENTS, {"dependencies": {"vue": "3"}})
        assert stack["frameworks"] == ["Vue"]
        assert stack["tooling"] == ["Docker"]

    def test_package_json_without_known_frameworks(self):
        stack = extract_tech_stack({}, ROOT_CONTENTS, {"dependencies": {"lodash": "4"}})
        assert stack["frameworks"] == ["Node.js"]


class TestDetectSignals:
    def test_all_signals(self):
        signals = detect_signals(
            [
                {"name": ".gitlab-ci.yml", "path": ".gitlab-ci.yml"},
                {"name": "Dockerfile.prod", "path": "Dockerfile.prod"},
                {"name": "jest.config.js", "path": "jest.config.js"},
                {"name": "playwright.config.ts", "path": "playwright.config.ts"},
            ]
        )
        assert signals == {
            "has_ci": True,
            "has_dockerfile": True,
            "test_frameworks": ["Jest", "Playwright"],
        }

    def test_empty(self):
        assert detect_signals([]) == {"has_ci": False, "has_dockerfile": False, "test_frameworks": []}


class TestInferDomainTags:
    def test_topics_then_keywords(self):
        tags = infer_domain_tags(
            "An e-commerce checkout built with AI tooling",
            {"topics": ["Shop", "  "]},
        )
        assert tags == ["shop", "ecommerce", "ai"]

    def test_ai_requires_word_boundary(self):
        assert infer_domain_tags("Plain old email client", None) == ["devtools"]

    def test_limit(self):
        tags = infer_domain_tags(None, {"topics": [f"t{i}" for i in range(12)]})
        assert len(tags) == 8

    def test_nothing(self):
        assert infer_domain_tags(None, None) == []


@pytest.fixture
def github():
    mock = AsyncMock()
    mock.get_repo.return_value = {"private": False, "topics": ["shop"]}
    mock.get_languages.return_value = {"TypeScript": 900, "CSS": 100}
    mock.get_contents.return_value = ROOT_CONTENTS
    mock.get_file_json.return_value = {
        "dependencies": {"react": "18", "next": "14"},
        "devDependencies": {"jest": "29"},
    }
    mock.get_readme.return_value = "A web app storefront"
    return mock


@pytest.fixture
async def profile(db_session):
    db_session.add(
        CandidateProfile(
            user_id=CANDIDATE_ID,
            github_login="octocat",
            github_url="https://github.com/octocat",
        )
    )
    await db_session.flush()


class TestRepoAnalyzer:
    async def test_analyze_persists_analysis(self, db_session, github, profile):
        result = await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/shop")

        assert result["tech_stack"]["frameworks"] == ["React", "Next.js"]
        assert result["tech_stack"]["tooling"] == ["Docker"]
        assert result["signals"]["has_dockerfile"] is True
        assert result["domain_tags"] == ["shop", "web"]
        assert result["debug"]["package_json_found"] is True
        assert result["debug"]["detected_dependencies"] == ["react", "next"]
        assert result["debug"]["readme_found"] is True

        stored = await AnalysisRepository(db_session).get(result["analysis_id"])
        assert stored.repo_full_name == "octocat/shop"
        assert stored.readme_excerpt == "A web app storefront"
        package_skills = stored.rationale["package_skills"]
        assert package_skills["React"]["confidence"] == 1.0
        assert package_skills["Testing"]["evidence"] == ["devDependencies.jest"]
        assert package_skills["TypeScript"]["evidence"] == ["detectedFiles.hasTypeScript"]
        github.get_file_json.assert_awaited_once_with("octocat/shop", "package.json")

    async def test_requires_profile(self, db_session, github):
        with pytest.raises(BadRequestError):
            await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/shop")
        github.get_repo.assert_not_called()

    async def test_private_repo_rejected(self, db_session, github, profile):
        github.get_repo.return_value = {"private": True}
        with pytest.raises(ForbiddenError):
            await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/shop")

    async def test_missing_repo(self, db_session, github, profile):
        github.get_repo.side_effect = GitHubNotFoundError("Repository not found")
        with pytest.raises(GitHubNotFoundError):
            await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/nope")

    async def test_secondary_failures_degrade(self, db_session, github, profile):
        github.get_languages.side_effect = GitHubAPIError("boom")
        github.get_file_json.side_effect = GitHubAPIError("boom")
        github.get_readme.return_value = None

        result = await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/shop")

        assert result["tech_stack"]["languages"] == []
        assert result["tech_stack"]["frameworks"] == ["Node.js"]
        assert result["debug"]["package_json_found"] is False
        assert result["debug"]["readme_found"] is False
        assert result["domain_tags"] == ["shop"]

    async def test_no_package_json_skips_fetch(self, db_session, github, profile):
        github.get_contents.return_value = [{"name": "go.mod", "path": "go.mod", "type": "file"}]
        result = await RepoAnalyzer(db_session, github).analyze(CANDIDATE_ID, "octocat/shop")
        assert result["tech_stack"]["frameworks"] == ["Go"]
        github.get_file_json.assert_not_called()
