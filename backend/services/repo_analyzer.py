"""Repository Analyzer.

Turns one public GitHub repository into a stored analysis:
1. Language shares from the languages API
2. Frameworks from package.json (falling back to marker files)
3. Tooling and engineering signals (CI, Dockerfile, test frameworks)
4. Domain tags from repo topics and README keywords

The analysis feeds the match engine and the track recommender.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import BadRequestError, ForbiddenError, GitHubNotFoundError
from app.logging_config import get_logger
from app.metrics import REPO_ANALYSES
from db.models import RepoAnalysis
from db.repositories.analyses import AnalysisRepository
from db.repositories.profiles import ProfileRepository
from services.github_service import GitHubService
from services.repo_tech import extract_repo_skills_from_package_json

logger = get_logger(__name__)

README_EXCERPT_LIMIT = 4000
MAX_DOMAIN_TAGS = 8

# Domain tag -> README keywords (plain substrings or compiled patterns)
DOMAIN_KEYWORDS: list[tuple[str, list[str | re.Pattern[str]]]] = [
    ("ecommerce", ["e-commerce", "ecommerce", "shopping cart", "checkout"]),
    ("fintech", ["fintech", "payment", "payments", "wallet", "billing"]),
    ("ai", ["machine learning", "deep learning", "llm", "rag", "embedding", re.compile(r"\bai\b")]),
    ("devtools", ["cli", "developer tool", "dx", "plugin", "sdk", "framework"]),
    ("infra", ["kubernetes", "k8s", "terraform", "helm", "observability", "prometheus"]),
    ("data", ["etl", "pipeline", "warehouse", "analytics", "bigquery", "snowflake"]),
    ("mobile", ["android", "ios", "react native", "flutter"]),
    ("web", ["web app", "frontend", "backend", "full stack", "full-stack"]),
    ("security", ["oauth", "jwt", "auth", "authentication", "authorization"]),
]

TEST_FRAMEWORK_MARKERS = [
    ("jest", "Jest"),
    ("vitest", "Vitest"),
    ("mocha", "Mocha"),
    ("cypress", "Cypress"),
    ("playwright", "Playwright"),
]

CI_PATH_MARKERS = (".github/workflows", ".gitlab-ci.yml", "circleci", "travis.yml")


def _dep_names(package_json: dict[str, Any]) -> list[str]:
    names: list[str] = []
    for section in ("dependencies", "devDependencies"):
        deps = package_json.get(section)
        if isinstance(deps, dict):
            names.extend(name.lower() for name in deps)
    return names


def detect_frameworks_from_package_json(package_json: dict[str, Any]) -> list[str]:
    """Map package.json dependency names to framework labels."""
    deps = _dep_names(package_json)

    def any_dep(predicate) -> bool:
        return any(predicate(dep) for dep in deps)

    has_tailwind = any_dep(lambda d: d in ("tailwindcss", "tailwind"))
    frameworks: list[str] = []

    # Frontend
    if any_dep(lambda d: d in ("react", "react-dom") or d.startswith("@types/react")):
        frameworks.append("React")
    if any_dep(lambda d: d in ("vue", "vue3") or d.startswith("@vue/")):
        frameworks.append("Vue")
    if any_dep(lambda d: d in ("@angular/core", "angular") or d.startswith("@angular/")):
        frameworks.append("Angular")
    if "svelte" in deps:
        frameworks.append("Svelte")
    if "next" in deps:
        frameworks.append("Next.js")
    if any_dep(lambda d: d in ("nuxt", "nuxt3")):
        frameworks.append("Nuxt")
    if "remix" in deps:
        frameworks.append("Remix")
    if "gatsby" in deps:
        frameworks.append("Gatsby")

    # UI libraries
    if has_tailwind:
        frameworks.append("Tailwind CSS")
    if any_dep(lambda d: d in ("@mui/material", "material-ui") or d.startswith("@mui/")):
        frameworks.append("Material-UI")
    if any_dep(lambda d: d.startswith("@radix-ui/")):
        frameworks.append("Radix UI")
        # shadcn/ui is not a package; Radix + Tailwind is its footprint
        if has_tailwind:
            frameworks.append("shadcn/ui")
    if any_dep(lambda d: d in ("chakra-ui", "@chakra-ui/react") or d.startswith("@chakra-ui/")):
        frameworks.append("Chakra UI")
    if any_dep(lambda d: d in ("antd", "ant-design")):
        frameworks.append("Ant Design")
    if any_dep(lambda d: d in ("bootstrap", "react-bootstrap")):
        frameworks.append("Bootstrap")

    # Backend
    if "express" in deps:
        frameworks.append("Express")
    if "koa" in deps:
        frameworks.append("Koa")
    if "fastify" in deps:
        frameworks.append("Fastify")
    if any_dep(lambda d: "nestjs" in d or d.startswith("@nestjs/")):
        frameworks.append("NestJS")
    if any_dep(lambda d: d == "hapi" or d.startswith("@hapi/")):
        frameworks.append("Hapi")

    # Databases / ORMs
    if any_dep(lambda d: d.startswith("drizzle")):
        frameworks.append("Drizzle ORM")
    if "prisma" in deps:
        frameworks.append("Prisma")
    if any_dep(lambda d: d in ("typeorm", "@typeorm/core")):
        frameworks.append("TypeORM")
    if "mongoose" in deps:
        frameworks.append("Mongoose")

    # State management
    if any_dep(lambda d: d.startswith("redux") or d == "@reduxjs/toolkit"):
        frameworks.append("Redux")
    if "zustand" in deps:
        frameworks.append("Zustand")
    if "jotai" in deps:
        frameworks.append("Jotai")

    if "sveltekit" in deps:
        frameworks.append("SvelteKit")

    return frameworks


def _file_names(contents: list[dict[str, Any]]) -> list[str]:
    return [str(item.get("name") or "").lower() for item in contents if isinstance(item, dict)]


def extract_tech_stack(
    languages: dict[str, int],
    contents: list[dict[str, Any]],
    package_json: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build {languages, frameworks, tooling} for a repository."""
    total_bytes = sum(languages.values())
    language_list = [
        {
            "language": language,
            "percentage": (count / total_bytes) * 100 if total_bytes > 0 else 0,
        }
        for language, count in languages.items()
    ]

    names = _file_names(contents)
    frameworks: list[str] = []
    tooling: list[str] = []

    if package_json:
        frameworks.extend(detect_frameworks_from_package_json(package_json))

    if not frameworks:
        if "package.json" in names:
            frameworks.append("Node.js")
        if "requirements.txt" in names or "setup.py" in names:
            frameworks.append("Python")
        if "go.mod" in names:
            frameworks.append("Go")
        if "cargo.toml" in names:
            frameworks.append("Rust")
        if "pom.xml" in names or "build.gradle" in names:
            frameworks.append("Java/Maven")

    if "dockerfile" in names:
        tooling.append("Docker")
    if "docker-compose.yml" in names or "docker-compose.yaml" in names:
        tooling.append("Docker Compose")
    if "webpack.config.js" in names:
        tooling.append("Webpack")
    if "vite.config.js" in names or "vite.config.ts" in names:
        tooling.append("Vite")

    return {"languages": language_list, "frameworks": frameworks, "tooling": tooling}


def detect_signals(contents: list[dict[str, Any]]) -> dict[str, Any]:
    """Detect CI, Dockerfile and test framework signals from root contents."""
    names = _file_names(contents)
    paths = [str(item.get("path") or "").lower() for item in contents if isinstance(item, dict)]

    has_ci = any(marker in path for path in paths for marker in CI_PATH_MARKERS)
    has_dockerfile = any(name == "dockerfile" or name.startswith("dockerfile.") for name in names)
    test_frameworks = [
        label for marker, label in TEST_FRAMEWORK_MARKERS if any(marker in name for name in names)
    ]

    return {
        "has_ci": has_ci,
        "has_dockerfile": has_dockerfile,
        "test_frameworks": test_frameworks,
    }


def infer_domain_tags(readme_text: str | None, repo_data: dict[str, Any] | None) -> list[str]:
    """Repo topics first, then README keyword tags; at most 8."""
    tags: dict[str, None] = {}
    readme = (readme_text or "").lower()

    topics = (repo_data or {}).get("topics")
    if isinstance(topics, list):
        for topic in topics:
            if isinstance(topic, str) and topic.strip():
                tags[topic.strip().lower()] = None

    for tag, patterns in DOMAIN_KEYWORDS:
        for pattern in patterns:
            hit = pattern in readme if isinstance(pattern, str) else pattern.search(readme)
            if hit:
                tags[tag] = None
                break

    return list(tags)[:MAX_DOMAIN_TAGS]


def package_skill_map(
    package_json: dict[str, Any] | None,
    contents: list[dict[str, Any]],
    signals: dict[str, Any],
    languages: dict[str, int],
) -> dict[str, Any]:
    """Serialized package.json skill map stored alongside the analysis."""
    package_json = package_json or {}
    entries = [item for item in contents if isinstance(item, dict) and item.get("name")]
    files = [item["name"] for item in entries if item.get("type") != "dir"]
    dirs = [item["name"] for item in entries if item.get("type") == "dir"]
    skills = extract_repo_skills_from_package_json(
        dependencies=package_json.get("dependencies") or {},
        dev_dependencies=package_json.get("devDependencies") or {},
        scripts=package_json.get("scripts") or {},
        top_level_files=files,
        top_level_dirs=dirs,
        has_ci=signals["has_ci"],
        has_dockerfile=signals["has_dockerfile"],
        has_typescript="TypeScript" in languages,
    )
    return {name: evidence.model_dump() for name, evidence in skills.items()}


class RepoAnalyzer:
    """Analyze a candidate's public repository and persist the result."""

    def __init__(self, session: AsyncSession, github: GitHubService) -> None:
        self.github = github
        self.profiles = ProfileRepository(session)
        self.analyses = AnalysisRepository(session)

    async def _best_effort(self, coro, default: Any, what: str, repo: str) -> Any:
        try:
            return await coro
        except Exception as exc:
            logger.warning("repo_fetch_degraded", resource=what, repo=repo, error=str(exc))
            return default

    async def analyze(self, candidate_user_id: str, repo_full_name: str) -> dict[str, Any]:
        """Run the analysis pipeline for `owner/repo`.

        Raises:
            BadRequestError: The candidate has not registered a GitHub profile.
            ForbiddenError: The repository is private.
            GitHubNotFoundError: The repository does not exist.
        """
        profile = await self.profiles.get(candidate_user_id)
        if profile is None:
            raise BadRequestError("Please set your GitHub profile first")

        try:
            repo_data, languages, contents = await asyncio.gather(
                self.github.get_repo(repo_full_name),
                self._best_effort(self.github.get_languages(repo_full_name), {}, "languages", repo_full_name),
                self._best_effort(self.github.get_contents(repo_full_name), [], "contents", repo_full_name),
            )
        except GitHubNotFoundError:
            REPO_ANALYSES.labels(status="not_found").inc()
            raise

        contents = contents if isinstance(contents, list) else []
        languages = languages if isinstance(languages, dict) else {}

        if repo_data.get("private"):
            REPO_ANALYSES.labels(status="private").inc()
            raise ForbiddenError("Only public repositories can be analyzed")

        package_json = None
        if any(name == "package.json" for name in _file_names(contents)):
            package_json = await self._best_effort(
                self.github.get_file_json(repo_full_name, "package.json"),
                None,
                "package.json",
                repo_full_name,
            )
            if not isinstance(package_json, dict):
                package_json = None

        readme_text = await self._best_effort(
            self.github.get_readme(repo_full_name), None, "readme", repo_full_name
        )
        readme_excerpt = (
            readme_text[:README_EXCERPT_LIMIT]
            if isinstance(readme_text, str) and readme_text.strip()
            else None
        )
        domain_tags = infer_domain_tags(readme_text, repo_data)

        tech_stack = extract_tech_stack(languages, contents, package_json)
        signals = detect_signals(contents)
        rationale = {
            "confidence": 85,
            "source": "GitHub API",
            "package_skills": package_skill_map(package_json, contents, signals, languages),
        }

        analysis = await self.analyses.create(
            RepoAnalysis(
                candidate_user_id=candidate_user_id,
                repo_full_name=repo_full_name,
                tech_stack=tech_stack,
                signals=signals,
                rationale=rationale,
                readme_excerpt=readme_excerpt,
                domain_tags=domain_tags,
            )
        )
        await self.profiles.touch_analyzed(candidate_user_id)

        REPO_ANALYSES.labels(status="success").inc()
        logger.info(
            "repo_analysis_created",
            analysis_id=analysis.id,
            frameworks=len(tech_stack["frameworks"]),
            domain_tags=len(domain_tags),
        )

        dependencies = (package_json or {}).get("dependencies") or {}
        return {
            "analysis_id": analysis.id,
            "tech_stack": tech_stack,
            "signals": signals,
            "domain_tags": domain_tags,
            "debug": {
                "package_json_found": package_json is not None,
                "detected_dependencies": list(dependencies)[:10],
                "contents_count": len(contents),
                "readme_found": readme_excerpt is not None,
            },
        }
