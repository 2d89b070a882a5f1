"""Tests for GitHub identifier parsing."""

import pytest

from app.exceptions import InvalidGitHubInputError
from services.github_parse import parse_github_owner, parse_github_repo, parse_github_url


class TestParseGitHubRepo:
    @pytest.mark.parametrize(
        "value",
        [
            "octocat/hello-world",
            "https://github.com/octocat/hello-world",
            "github.com/octocat/hello-world",
            "https://www.github.com/octocat/hello-world",
            "https://github.com/octocat/hello-world/tree/main/src",
            "https://github.com/octocat/hello-world.git",
            "git@github.com:octocat/hello-world.git",
            "  octocat/hello-world  ",
        ],
    )
    def test_accepted_forms(self, value):
        parsed = parse_github_repo(value)
        assert parsed.owner == "octocat"
        assert parsed.repo == "hello-world"
        assert parsed.full_name == "octocat/hello-world"

    def test_leading_at_is_stripped(self):
        assert parse_github_repo("@octocat/hello-world").owner == "octocat"

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_input_raises(self, value):
        with pytest.raises(InvalidGitHubInputError):
            parse_github_repo(value)

    def test_non_github_host_raises(self):
        with pytest.raises(InvalidGitHubInputError):
            parse_github_repo("https://gitlab.com/octocat/hello-world")

    def test_missing_repo_raises(self):
        with pytest.raises(InvalidGitHubInputError):
            parse_github_repo("https://github.com/octocat")


class TestParseGitHubOwner:
    @pytest.mark.parametrize(
        "value",
        [
            "octocat",
            "@octocat",
            "https://github.com/octocat",
            "github.com/octocat",
            "https://github.com/octocat/hello-world",
        ],
    )
    def test_owner_forms(self, value):
        assert parse_github_owner(value) == "octocat"

    def test_empty_returns_empty_string(self):
        assert parse_github_owner("") == ""
        assert parse_github_owner("   ") == ""


class TestParseGitHubUrl:
    def test_default_branch_is_main(self):
        info = parse_github_url("https://github.com/octocat/hello-world")
        assert (info.owner, info.repo, info.branch) == ("octocat", "hello-world", "main")

    def test_branch_from_tree_segment(self):
        info = parse_github_url("https://github.com/octocat/hello-world/tree/user-submission")
        assert info.branch == "user-submission"

    def test_git_suffix_stripped(self):
        assert parse_github_url("https://github.com/octocat/hello-world.git").repo == "hello-world"

    @pytest.mark.parametrize(
        "url",
        [
            "octocat/hello-world",
            "https://gitlab.com/octocat/hello-world",
            "https://github.com/octocat",
        ],
    )
    def test_invalid_urls_raise(self, url):
        with pytest.raises(InvalidGitHubInputError):
            parse_github_url(url)
