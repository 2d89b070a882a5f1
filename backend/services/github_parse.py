"""GitHub identifier parsing.

Turns user-supplied repository or profile strings into owner/repo pairs.
Accepted repository forms:
- "owner/repo"
- "https://github.com/owner/repo"
- "github.com/owner/repo"
- "https://github.com/owner/repo/tree/main/path"
- "git@github.com:owner/repo.git"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from app.exceptions import InvalidGitHubInputError

GITHUB_HOSTS = {"github.com", "www.github.com"}

_SSH_PATTERN = re.compile(r"^git@github\.com:([^/]+)/([^/]+?)(?:\.git)?$", re.IGNORECASE)
_PLAIN_PATTERN = re.compile(r"^[^/]+/[^/]+$")


@dataclass(frozen=True)
class GitHubOwnerRepo:
    owner: str
    repo: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class GitHubRepoInfo:
    owner: str
    repo: str
    branch: str = "main"


def _strip_git_suffix(value: str) -> str:
    return value[:-4] if value.endswith(".git") else value


def _clean(value: str) -> str:
    value = value.strip()
    return value[1:] if value.startswith("@") else value


def _as_url(value: str) -> str:
    return value if value.startswith("http") else f"https://{value}"


def parse_github_repo(value: str) -> GitHubOwnerRepo:
    """Parse a GitHub repository identifier.

    Raises:
        InvalidGitHubInputError: For empty input, non-github hosts or a
            missing owner/repo pair.
    """
    trimmed = _clean(value or "")
    if not trimmed:
        raise InvalidGitHubInputError("Empty GitHub repo input")

    ssh = _SSH_PATTERN.match(trimmed)
    if ssh:
        owner = _clean(ssh.group(1))
        repo = _strip_git_suffix(_clean(ssh.group(2)))
        if not owner or not repo:
            raise InvalidGitHubInputError("Invalid GitHub repo input")
        return GitHubOwnerRepo(owner=owner, repo=repo)

    if "://" not in trimmed and _PLAIN_PATTERN.match(trimmed):
        owner, repo_raw = trimmed.split("/")
        repo = _strip_git_suffix(_clean(repo_raw))
        if not owner or not repo:
            raise InvalidGitHubInputError("Invalid GitHub repo input")
        return GitHubOwnerRepo(owner=_clean(owner), repo=repo)

    try:
        parsed = urlparse(_as_url(trimmed))
    except ValueError as e:
        raise InvalidGitHubInputError("Invalid GitHub URL") from e

    if (parsed.hostname or "") not in GITHUB_HOSTS:
        raise InvalidGitHubInputError("URL is not a github.com URL")

    segments = [s for s in parsed.path.split("/") if s]
    owner = _clean(segments[0]) if segments else ""
    repo = _strip_git_suffix(_clean(segments[1])) if len(segments) > 1 else ""
    if not owner or not repo:
        raise InvalidGitHubInputError("GitHub repo URL must include /owner/repo")
    return GitHubOwnerRepo(owner=owner, repo=repo)


def parse_github_owner(value: str) -> str:
    """Parse a GitHub login from "octocat", "@octocat" or a profile URL."""
    trimmed = _clean(value or "")
    if not trimmed:
        return ""

    if "/" in trimmed and "." in trimmed:
        try:
            parsed = urlparse(_as_url(trimmed))
        except ValueError:
            parsed = None
        if parsed is not None and (parsed.hostname or "") in GITHUB_HOSTS:
            segments = [s for s in parsed.path.split("/") if s]
            return _clean(segments[0]) if segments else ""

    if trimmed.startswith("github.com/"):
        segments = [s for s in trimmed[len("github.com/") :].split("/") if s]
        return _clean(segments[0]) if segments else ""

    segments = [s for s in trimmed.split("/") if s]
    return _clean(segments[0]) if segments else ""


def parse_github_url(url: str) -> GitHubRepoInfo:
    """Parse a full repository URL, reading the branch from /tree/<branch>."""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise InvalidGitHubInputError(f"Invalid GitHub URL: {url}") from e

    if not parsed.scheme or "github.com" not in (parsed.hostname or ""):
        raise InvalidGitHubInputError(f"Invalid GitHub URL: {url}")

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise InvalidGitHubInputError(f"Invalid GitHub URL: {url}")

    owner = parts[0]
    repo = _strip_git_suffix(parts[1])
    branch = "main"
    if "tree" in parts:
        tree_index = parts.index("tree")
        if tree_index + 1 < len(parts):
            branch = parts[tree_index + 1]

    return GitHubRepoInfo(owner=owner, repo=repo, branch=branch)
