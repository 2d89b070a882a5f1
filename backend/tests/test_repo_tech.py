"""Tests for package.json skill extraction."""

from services.repo_tech import extract_repo_skills_from_package_json


class TestExtractRepoSkills:
    def test_react_and_next(self):
        skills = extract_repo_skills_from_package_json(
            dependencies={"react": "^18.0.0", "next": "14.0.0"},
        )
        assert skills["React"].confidence == 1.0
        assert skills["Next.js"].confidence == 1.0
        assert skills["Node.js"].confidence == 0.3
        assert skills["Node.js"].evidence == ["package.json"]

    def test_next_without_react_implies_react(self):
        skills = extract_repo_skills_from_package_json(dependencies={"next": "14.0.0"})
        assert skills["React"].confidence == 0.8
        assert skills["React"].evidence == ["dependencies.next"]

    def test_backend_frameworks_are_strong_node_evidence(self):
        skills = extract_repo_skills_from_package_json(
            dependencies={"express": "4", "@nestjs/core": "10"},
        )
        assert skills["Node.js"].confidence == 1.0
        assert skills["Node.js"].evidence == ["dependencies.express", "dependencies.@nestjs/core"]

    def test_typescript_sources(self):
        skills = extract_repo_skills_from_package_json(
            dev_dependencies={"typescript": "5"},
            top_level_files=["TSConfig.json"],
        )
        assert skills["TypeScript"].evidence == ["devDependencies.typescript", "file:tsconfig.json"]

    def test_testing_from_dev_dependency_or_script(self):
        strong = extract_repo_skills_from_package_json(dev_dependencies={"vitest": "1"})
        weak = extract_repo_skills_from_package_json(scripts={"test": "node test.js"})
        assert strong["Testing"].confidence == 1.0
        assert weak["Testing"].confidence == 0.5
        assert weak["Testing"].evidence == ["scripts.test"]

    def test_ci_docker_and_structure(self):
        skills = extract_repo_skills_from_package_json(
            top_level_files=["Dockerfile"],
            top_level_dirs=[".github", "src", "packages"],
        )
        assert skills["CI/CD"].evidence == ["dir:.github"]
        assert skills["Docker"].evidence == ["file:Dockerfile"]
        assert skills["Monorepo"].confidence == 0.7
        assert skills["Structure"].confidence == 0.6

    def test_ci_flag_evidence(self):
        skills = extract_repo_skills_from_package_json(has_ci=True, has_dockerfile=True)
        assert skills["CI/CD"].evidence == ["detectedFiles.hasCI"]
        assert skills["Docker"].evidence == ["detectedFiles.hasDockerfile"]

    def test_empty_package_json(self):
        assert extract_repo_skills_from_package_json() == {}
