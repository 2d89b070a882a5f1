"""Shared test fixtures for the CodeSync backend."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.config import AIProvider, Environment, Settings
from app.dependencies import get_redis
from app.main import create_app
from db.models import Assignment, Base, CandidateProfile, Job, RepoAnalysis
from db.session import create_session_factory, get_db_session
from services.assessment_types import AIAction, AIResponse

HR_ID = "hr_1"
CANDIDATE_ID = "cand_1"


@pytest.fixture
def test_settings() -> Settings:
    """Provide test settings with safe defaults."""
    return Settings(
        environment=Environment.TESTING,
        debug=True,
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="redis://localhost:6379/15",
        github_token=SecretStr("ghp_test_token_fake_value"),
        ai_provider=AIProvider.ANTHROPIC,
        anthropic_api_key=SecretStr("sk-ant-test-key"),
        openai_api_key=SecretStr("sk-openai-test-key"),
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
async def fake_redis() -> AsyncGenerator:
    """Provide a fake Redis instance for testing."""
    server = fakeredis.FakeServer()
    redis = fakeredis.aioredis.FakeRedis(server=server, decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
async def db_engine():
    """In-memory SQLite engine shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def app(session_factory, fake_redis):
    """Create a test application wired to SQLite and fake Redis."""
    application = create_app()

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_redis():
        yield fake_redis

    application.dependency_overrides[get_db_session] = override_db_session
    application.dependency_overrides[get_redis] = override_redis
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator:
    """Provide an async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def hr_headers() -> dict[str, str]:
    return {"X-User-ID": HR_ID, "X-User-Role": "hr"}


@pytest.fixture
def candidate_headers() -> dict[str, str]:
    return {"X-User-ID": CANDIDATE_ID, "X-User-Role": "candidate"}


@pytest.fixture
def sample_tech_stack() -> dict:
    return {
        "languages": [
            {"language": "TypeScript", "percentage": 72.5},
            {"language": "CSS", "percentage": 27.5},
        ],
        "frameworks": ["React", "Next.js", "Tailwind CSS"],
        "tooling": ["Docker"],
    }


@pytest.fixture
async def seeded(db_session, sample_tech_stack):
    """Profile, analysis and one published job with an assignment template."""
    db_session.add(
        CandidateProfile(
            user_id=CANDIDATE_ID,
            github_login="octocat",
            github_url="https://github.com/octocat",
        )
    )
    analysis = RepoAnalysis(
        candidate_user_id=CANDIDATE_ID,
        repo_full_name="octocat/shop",
        tech_stack=sample_tech_stack,
        signals={"has_ci": False, "has_dockerfile": True, "test_frameworks": []},
        rationale={"confidence": 85, "source": "GitHub API"},
        domain_tags=["ecommerce", "web"],
    )
    job = Job(
        hr_user_id=HR_ID,
        title="Frontend Engineer",
        description="Build ecommerce storefronts",
        required_stacks={"react": 2, "typescript": 1, "ci": 1},
        is_published=True,
    )
    db_session.add_all([analysis, job])
    await db_session.flush()
    assignment = Assignment(
        job_id=job.id,
        repo_template_url="https://github.com/acme/template",
        instructions="Build a cart page",
    )
    db_session.add(assignment)
    await db_session.commit()
    return {"analysis": analysis, "job": job, "assignment": assignment}


@pytest.fixture
def mock_evaluator():
    """Evaluator stub; tests set the next AI reply."""
    evaluator = AsyncMock()
    evaluator.process_ai_chat.return_value = AIResponse(
        message="Build a todo list component with add and remove.",
        action=AIAction.ISSUE_TASK,
    )
    return evaluator


@pytest.fixture
def mock_fetcher():
    fetcher = AsyncMock()
    fetcher.fetch_multiple_files.return_value = {"src/App.tsx": "export const App = () => null;"}
    return fetcher
