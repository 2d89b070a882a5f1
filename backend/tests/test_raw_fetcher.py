"""Tests for the raw file fetcher."""

import httpx
import pytest
import respx
from httpx import Response

from app.exceptions import GitHubAPIError, GitHubNotFoundError, GitHubRateLimitError
from services.raw_fetcher import RawFileFetcher

RAW = "https://raw.githubusercontent.com/octocat/shop"


@pytest.fixture
def fetcher(fake_redis):
    return RawFileFetcher(fake_redis)


class TestFetchFile:
    @respx.mock
    async def test_fetch_file(self):
        route = respx.get(f"{RAW}/main/src/App.tsx").mock(
            return_value=Response(200, text="export const App = () => null;")
        )
        content = await RawFileFetcher().fetch_file("octocat", "shop", "src/App.tsx")
        assert content == "export const App = () => null;"
        assert route.calls.last.request.headers["user-agent"] == "CodeSync-Recruitment-App"

    @pytest.mark.parametrize(
        "status,error",
        [
            (404, GitHubNotFoundError),
            (403, GitHubRateLimitError),
            (500, GitHubAPIError),
        ],
    )
    @respx.mock
    async def test_error_statuses(self, status, error):
        respx.get(f"{RAW}/main/a.ts").mock(return_value=Response(status))
        with pytest.raises(error):
            await RawFileFetcher().fetch_file("octocat", "shop", "a.ts")

    @respx.mock
    async def test_network_error(self):
        respx.get(f"{RAW}/main/a.ts").mock(side_effect=httpx.ConnectError("refused"))
        with pytest.raises(GitHubAPIError):
            await RawFileFetcher().fetch_file("octocat", "shop", "a.ts")


class TestCache:
    @respx.mock
    async def test_second_read_is_cached(self, fetcher):
        route = respx.get(f"{RAW}/dev/a.ts").mock(return_value=Response(200, text="one"))

        assert await fetcher.fetch_file_cached("octocat", "shop", "a.ts", "dev") == "one"
        assert await fetcher.fetch_file_cached("octocat", "shop", "a.ts", "dev") == "one"
        assert route.call_count == 1

    @respx.mock
    async def test_clear_cache(self, fetcher, fake_redis):
        respx.get(f"{RAW}/main/a.ts").mock(return_value=Response(200, text="one"))
        respx.get(f"{RAW}/main/b.ts").mock(return_value=Response(200, text="two"))
        await fetcher.fetch_file_cached("octocat", "shop", "a.ts")
        await fetcher.fetch_file_cached("octocat", "shop", "b.ts")
        await fake_redis.set("unrelated", "x")

        assert await fetcher.clear_cache() == 2
        assert await fake_redis.get("unrelated") == "x"

    async def test_clear_cache_without_redis(self):
        assert await RawFileFetcher().clear_cache() == 0


class TestFetchMultipleFiles:
    @respx.mock
    async def test_partial_failures_are_dropped(self, fetcher):
        respx.get(f"{RAW}/main/a.ts").mock(return_value=Response(200, text="a"))
        respx.get(f"{RAW}/main/missing.ts").mock(return_value=Response(404))

        files = await fetcher.fetch_multiple_files(
            "https://github.com/octocat/shop", ["a.ts", "missing.ts"]
        )
        assert files == {"a.ts": "a"}

    @respx.mock
    async def test_branch_from_url_and_override(self, fetcher):
        respx.get(f"{RAW}/user-submission/a.ts").mock(return_value=Response(200, text="sub"))
        respx.get(f"{RAW}/release/a.ts").mock(return_value=Response(200, text="rel"))

        from_url = await fetcher.fetch_multiple_files(
            "https://github.com/octocat/shop/tree/user-submission", ["a.ts"]
        )
        overridden = await fetcher.fetch_multiple_files(
            "https://github.com/octocat/shop/tree/user-submission", ["a.ts"], branch="release"
        )
        assert from_url == {"a.ts": "sub"}
        assert overridden == {"a.ts": "rel"}
