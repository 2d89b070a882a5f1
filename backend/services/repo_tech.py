"""Skill extraction from a repository's package.json and top-level layout."""

from __future__ import annotations

from services.match_engine import RepoSkillMap, SkillEvidence

TEST_DEV_DEPENDENCIES = ("vitest", "jest", "mocha", "cypress", "@playwright/test")
BACKEND_DEPENDENCIES = ("express", "fastify", "@nestjs/core")


def extract_repo_skills_from_package_json(
    dependencies: dict[str, str] | None = None,
    dev_dependencies: dict[str, str] | None = None,
    scripts: dict[str, str] | None = None,
    top_level_files: list[str] | None = None,
    top_level_dirs: list[str] | None = None,
    has_ci: bool = False,
    has_dockerfile: bool = False,
    has_typescript: bool = False,
) -> RepoSkillMap:
    """Build a skill map for the match engine from package.json data.

    File and directory names compare case-insensitively.
    """
    deps = dependencies or {}
    dev = dev_dependencies or {}
    scripts = scripts or {}
    files = {name.lower() for name in top_level_files or []}
    dirs = {name.lower() for name in top_level_dirs or []}

    skills: RepoSkillMap = {}

    if "react" in deps:
        skills["React"] = SkillEvidence(confidence=1.0, evidence=["dependencies.react"])
    elif "next" in deps:
        skills["React"] = SkillEvidence(confidence=0.8, evidence=["dependencies.next"])
    if "next" in deps:
        skills["Next.js"] = SkillEvidence(confidence=1.0, evidence=["dependencies.next"])

    backend = [f"dependencies.{name}" for name in BACKEND_DEPENDENCIES if name in deps]
    if backend:
        skills["Node.js"] = SkillEvidence(confidence=1.0, evidence=backend)
    elif deps:
        skills["Node.js"] = SkillEvidence(confidence=0.3, evidence=["package.json"])

    if has_typescript or "typescript" in dev or "tsconfig.json" in files:
        evidence = []
        if has_typescript:
            evidence.append("detectedFiles.hasTypeScript")
        if "typescript" in dev:
            evidence.append("devDependencies.typescript")
        if "tsconfig.json" in files:
            evidence.append("file:tsconfig.json")
        skills["TypeScript"] = SkillEvidence(confidence=1.0, evidence=evidence)

    testing = [f"devDependencies.{name}" for name in TEST_DEV_DEPENDENCIES if name in dev]
    if testing:
        skills["Testing"] = SkillEvidence(confidence=1.0, evidence=testing)
    elif "test" in scripts:
        skills["Testing"] = SkillEvidence(confidence=0.5, evidence=["scripts.test"])

    if has_ci or ".github" in dirs:
        evidence = []
        if has_ci:
            evidence.append("detectedFiles.hasCI")
        if ".github" in dirs:
            evidence.append("dir:.github")
        skills["CI/CD"] = SkillEvidence(confidence=1.0, evidence=evidence or ["repo:ci"])

    if has_dockerfile or "dockerfile" in files:
        evidence = []
        if has_dockerfile:
            evidence.append("detectedFiles.hasDockerfile")
        if "dockerfile" in files:
            evidence.append("file:Dockerfile")
        skills["Docker"] = SkillEvidence(confidence=1.0, evidence=evidence)

    # Weak structure signals
    if "apps" in dirs or "packages" in dirs:
        skills["Monorepo"] = SkillEvidence(confidence=0.7, evidence=["dir:apps|packages"])
    if "src" in dirs:
        skills["Structure"] = SkillEvidence(confidence=0.6, evidence=["dir:src"])

    return skills
