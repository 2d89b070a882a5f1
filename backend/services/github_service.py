"""GitHub Repository Service.

Fetches the handful of public repository resources needed to analyze one
repository: metadata, language bytes, root contents, package.json and
README. Responses are cached in Redis with a short TTL.

Only public repositories are analyzed; nothing here writes to GitHub.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import random
import zlib
from typing import Any, Optional

import httpx
import redis.asyncio as aioredis

from app.config import get_settings
from app.exceptions import (
    GitHubAPIError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from app.logging_config import get_logger
from app.metrics import (
    GITHUB_API_CALLS,
    GITHUB_API_DURATION,
    GITHUB_CACHE_HITS,
    GITHUB_CACHE_MISSES,
)

logger = get_logger(__name__)

CACHE_COMPRESS_THRESHOLD = 4096  # Compress payloads > 4KB
COMPRESSED_PREFIX = "zlib:"


def decode_base64_text(content: Any) -> str | None:
    """Decode a base64 payload from the contents API, or None on failure."""
    if not isinstance(content, str):
        return None
    normalized = content.replace("\n", "")
    try:
        return base64.b64decode(normalized).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None


class GitHubService:
    """Read-only access to a public repository via the GitHub REST API.

    Cache keys: github:repo:{owner}/{repo}:{resource}
    """

    def __init__(self, redis: aioredis.Redis) -> None:
        self.redis = redis
        self.settings = get_settings()
        self._headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.settings.github_token:
            self._headers["Authorization"] = (
                f"Bearer {self.settings.github_token.get_secret_value()}"
            )

    # --- Cache Helpers ---

    async def _cache_get(self, key: str) -> Any | None:
        """Get value from Redis cache with optional decompression."""
        raw = await self.redis.get(key)
        if raw is None:
            GITHUB_CACHE_MISSES.labels(kind="api").inc()
            return None

        GITHUB_CACHE_HITS.labels(kind="api").inc()

        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")

        # Compressed payloads are base64 text so decode_responses pools can read them
        if raw.startswith(COMPRESSED_PREFIX):
            try:
                raw = zlib.decompress(base64.b64decode(raw[len(COMPRESSED_PREFIX):])).decode("utf-8")
            except (binascii.Error, zlib.error, UnicodeDecodeError):
                logger.warning("github_cache_corrupt", cache_key=key)
                await self.redis.delete(key)
                return None

        return json.loads(raw)

    async def _cache_set(self, key: str, value: Any) -> None:
        """Set value in Redis cache with optional compression."""
        serialized = json.dumps(value, separators=(",", ":"))

        if len(serialized) > CACHE_COMPRESS_THRESHOLD:
            compressed = zlib.compress(serialized.encode("utf-8"), level=6)
            serialized = COMPRESSED_PREFIX + base64.b64encode(compressed).decode("ascii")

        await self.redis.setex(key, self.settings.github_cache_ttl, serialized)

    async def _cached(self, repo_full_name: str, resource: str, path: str) -> Any:
        cache_key = f"github:repo:{repo_full_name}:{resource}"
        cached = await self._cache_get(cache_key)
        if cached is not None:
            logger.debug("github_cache_hit", cache_key=cache_key)
            return cached

        url = f"{self.settings.github_api_base}/repos/{repo_full_name}{path}"
        data = await self._api_request(url)
        await self._cache_set(cache_key, data)
        return data

    # --- Repository resources ---

    async def get_repo(self, repo_full_name: str) -> dict[str, Any]:
        """Fetch repository metadata (visibility, topics, default branch)."""
        return await self._cached(repo_full_name, "meta", "")

    async def get_languages(self, repo_full_name: str) -> dict[str, int]:
        """Fetch language -> byte count for the repository."""
        data = await self._cached(repo_full_name, "languages", "/languages")
        return data if isinstance(data, dict) else {}

    async def get_contents(self, repo_full_name: str) -> list[dict[str, Any]]:
        """List the repository root."""
        data = await self._cached(repo_full_name, "contents", "/contents")
        return data if isinstance(data, list) else []

    async def get_file_json(self, repo_full_name: str, path: str) -> Any | None:
        """Fetch a file through the contents API and parse it as JSON.

        Returns None when the file is not base64 encoded or not valid JSON.
        """
        data = await self._cached(repo_full_name, f"file:{path}", f"/contents/{path}")
        if not isinstance(data, dict) or data.get("encoding") != "base64":
            return None
        text = decode_base64_text(data.get("content"))
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("github_file_json_invalid", repo=repo_full_name, path=path)
            return None

    async def get_readme(self, repo_full_name: str) -> str | None:
        """Fetch and decode the repository README."""
        data = await self._cached(repo_full_name, "readme", "/readme")
        if not isinstance(data, dict) or data.get("encoding") != "base64":
            return None
        return decode_base64_text(data.get("content"))

    async def _api_request(
        self,
        url: str,
        params: Optional[dict[str, Any]] = None,
        max_retries: int = 3,
    ) -> Any:
        """Make a request to the GitHub API with retry logic.

        Implements exponential backoff for:
        - 429 Too Many Requests
        - 403 Forbidden (rate limit)
        - 502/503/504 Server errors

        Non-retryable errors (404, 401) are raised immediately.
        """
        endpoint = url.split("/")[-1]
        last_exception: Exception | None = None

        for attempt in range(max_retries + 1):
            async with httpx.AsyncClient(timeout=30.0) as client:
                with GITHUB_API_DURATION.labels(endpoint=endpoint).time():
                    try:
                        response = await client.get(
                            url, headers=self._headers, params=params
                        )
                    except httpx.RequestError as exc:
                        GITHUB_API_CALLS.labels(endpoint=endpoint, status="error").inc()
                        last_exception = exc
                        if attempt < max_retries:
                            wait = self._backoff_delay(attempt)
                            logger.warning(
                                "github_api_connection_retry",
                                attempt=attempt + 1,
                                wait_seconds=wait,
                                endpoint=endpoint,
                            )
                            await asyncio.sleep(wait)
                            continue
                        raise GitHubAPIError(
                            "GitHub API connection failed after retries"
                        ) from exc

                status = response.status_code
                GITHUB_API_CALLS.labels(endpoint=endpoint, status=str(status)).inc()

                if status == 404:
                    raise GitHubNotFoundError(
                        "Repository not found. Please check the repository name "
                        "and ensure it's a public repository."
                    )
                if status == 401:
                    raise GitHubAPIError(
                        "GitHub token invalid or expired", status_code=401
                    )

                if status in (403, 429):
                    retry_after = response.headers.get("Retry-After")
                    rate_remaining = response.headers.get("X-RateLimit-Remaining")

                    if attempt < max_retries:
                        if retry_after:
                            wait = min(int(retry_after), 60)
                        elif rate_remaining == "0":
                            wait = self._backoff_delay(attempt, base=5.0)
                        else:
                            wait = self._backoff_delay(attempt)

                        logger.warning(
                            "github_rate_limit_retry",
                            attempt=attempt + 1,
                            wait_seconds=wait,
                            status=status,
                            endpoint=endpoint,
                        )
                        await asyncio.sleep(wait)
                        continue

                    raise GitHubRateLimitError(
                        retry_after=int(retry_after) if retry_after else None
                    )

                if status in (502, 503, 504):
                    if attempt < max_retries:
                        wait = self._backoff_delay(attempt)
                        logger.warning(
                            "github_server_error_retry",
                            attempt=attempt + 1,
                            wait_seconds=wait,
                            status=status,
                            endpoint=endpoint,
                        )
                        await asyncio.sleep(wait)
                        continue

                    raise GitHubAPIError(
                        f"GitHub API server error {status} after retries",
                        status_code=status,
                    )

                if status >= 400:
                    raise GitHubAPIError(
                        f"GitHub API returned status {status}",
                        status_code=status,
                    )

                return response.json()

        raise GitHubAPIError("GitHub API request failed") from last_exception

    @staticmethod
    def _backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 30.0) -> float:
        """Calculate exponential backoff delay with jitter.

        Formula: min(base * 2^attempt + jitter, max_delay)
        """
        delay = base * (2 ** attempt)
        jitter = random.uniform(0, delay * 0.1)
        return min(delay + jitter, max_delay)
