"""Raw file fetcher for code review.

Reads candidate files from raw.githubusercontent.com so the AI-PM can
review submitted code. Individual file failures never abort a batch.
"""

from __future__ import annotations

import asyncio

import httpx
import redis.asyncio as aioredis

from app.config import get_settings
from app.exceptions import GitHubAPIError, GitHubNotFoundError, GitHubRateLimitError
from app.logging_config import get_logger
from app.metrics import GITHUB_API_CALLS, GITHUB_CACHE_HITS, GITHUB_CACHE_MISSES
from services.github_parse import parse_github_url

logger = get_logger(__name__)

RAW_CACHE_PREFIX = "github:raw:"
RAW_CACHE_TTL = 300  # 5 minutes
USER_AGENT = "CodeSync-Recruitment-App"


class RawFileFetcher:
    """Fetch raw repository files with an optional Redis cache."""

    def __init__(self, redis: aioredis.Redis | None = None) -> None:
        self.redis = redis
        self.settings = get_settings()
        self._headers = {"User-Agent": USER_AGENT}
        if self.settings.github_token:
            self._headers["Authorization"] = (
                f"token {self.settings.github_token.get_secret_value()}"
            )

    def _raw_url(self, owner: str, repo: str, path: str, branch: str) -> str:
        return f"{self.settings.github_raw_base}/{owner}/{repo}/{branch}/{path}"

    async def fetch_file(
        self, owner: str, repo: str, path: str, branch: str = "main"
    ) -> str:
        """Fetch one file's text.

        Raises:
            GitHubNotFoundError: 404 from GitHub.
            GitHubRateLimitError: 403, rate limited or private repository.
            GitHubAPIError: Any other failure.
        """
        url = self._raw_url(owner, repo, path, branch)
        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(url, headers=self._headers)
        except httpx.RequestError as exc:
            GITHUB_API_CALLS.labels(endpoint="raw", status="error").inc()
            raise GitHubAPIError("Failed to fetch file from GitHub") from exc

        status = response.status_code
        GITHUB_API_CALLS.labels(endpoint="raw", status=str(status)).inc()

        if status == 404:
            raise GitHubNotFoundError(f"File not found: {path}")
        if status == 403:
            raise GitHubRateLimitError(
                message="GitHub rate limit exceeded or repository is private"
            )
        if not response.is_success:
            raise GitHubAPIError(
                f"GitHub API error: {response.reason_phrase}", status_code=502
            )

        return response.text

    async def fetch_file_cached(
        self, owner: str, repo: str, path: str, branch: str = "main"
    ) -> str:
        """Fetch one file, serving from Redis for five minutes after a hit."""
        if self.redis is None:
            return await self.fetch_file(owner, repo, path, branch)

        cache_key = f"{RAW_CACHE_PREFIX}{owner}/{repo}/{branch}/{path}"
        cached = await self.redis.get(cache_key)
        if cached is not None:
            GITHUB_CACHE_HITS.labels(kind="raw").inc()
            return cached.decode("utf-8") if isinstance(cached, bytes) else cached

        GITHUB_CACHE_MISSES.labels(kind="raw").inc()
        content = await self.fetch_file(owner, repo, path, branch)
        await self.redis.setex(cache_key, RAW_CACHE_TTL, content)
        return content

    async def clear_cache(self) -> int:
        """Delete every cached raw file. Returns number of keys deleted."""
        if self.redis is None:
            return 0
        keys = [key async for key in self.redis.scan_iter(match=f"{RAW_CACHE_PREFIX}*", count=100)]
        if keys:
            return await self.redis.delete(*keys)
        return 0

    async def fetch_multiple_files(
        self,
        repo_url: str,
        paths: list[str],
        branch: str | None = None,
    ) -> dict[str, str]:
        """Fetch several files concurrently.

        Returns:
            Mapping of path to content for files that were fetched. Failed
            paths are logged and left out.
        """
        info = parse_github_url(repo_url)
        target_branch = branch or info.branch

        results = await asyncio.gather(
            *(
                self.fetch_file_cached(info.owner, info.repo, path, target_branch)
                for path in paths
            ),
            return_exceptions=True,
        )

        files: dict[str, str] = {}
        errors: list[str] = []
        for path, result in zip(paths, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                errors.append(f"{path}: {result}")
            else:
                files[path] = result

        if errors:
            logger.warning(
                "raw_files_partially_fetched",
                fetched=len(files),
                failed=errors,
            )

        return files
