"""Tests for the GitHub releases client."""

import httpx
import pytest

from conftest import API_URL, make_release
from modcache.domain.models import RepositoryRef
from modcache.services.github_client import GitHubAPIError, GitHubReleaseClient

REPO = RepositoryRef(owner="owner", name="repo")


@pytest.mark.asyncio
async def test_list_releases_follows_every_page(upstream):
    upstream.page_size = 2
    upstream.releases["owner/repo"] = [
        make_release(f"v{i}", f"2024-01-0{i}T00:00:00Z") for i in range(1, 6)
    ]
    async with upstream.client() as client:
        releases = await GitHubReleaseClient(client, API_URL).list_releases(REPO)

    assert [r["tag_name"] for r in releases] == ["v1", "v2", "v3", "v4", "v5"]
    assert len(upstream.requests_to(API_URL)) == 3


@pytest.mark.asyncio
async def test_list_releases_sends_token(upstream):
    upstream.releases["owner/repo"] = []
    async with upstream.client() as client:
        await GitHubReleaseClient(client, API_URL, token="secret").list_releases(REPO)

    request = upstream.requests_to(API_URL)[0]
    assert request.headers["Authorization"] == "Bearer secret"
    assert request.url.params["per_page"] == "100"


@pytest.mark.asyncio
async def test_list_releases_raises_api_error(upstream):
    async with upstream.client() as client:
        with pytest.raises(GitHubAPIError) as excinfo:
            await GitHubReleaseClient(client, API_URL).list_releases(REPO)

    assert excinfo.value.status_code == 404
    assert excinfo.value.message == "Not Found"
    assert not excinfo.value.is_rate_limited


@pytest.mark.asyncio
async def test_list_releases_reports_rate_limit(upstream):
    upstream.rate_limit("owner/repo")
    async with upstream.client() as client:
        with pytest.raises(GitHubAPIError) as excinfo:
            await GitHubReleaseClient(client, API_URL).list_releases(REPO)

    assert excinfo.value.is_rate_limited


def test_rate_limit_detected_from_headers():
    error = GitHubAPIError(403, "Forbidden", {"X-RateLimit-Remaining": "0"})
    assert error.is_rate_limited


def test_secondary_rate_limit_detected_from_retry_after():
    error = GitHubAPIError(403, "You have exceeded a secondary rate limit", {"Retry-After": "60"})
    assert error.is_rate_limited


def test_secondary_rate_limit_detected_from_message_with_quota_left():
    error = GitHubAPIError(
        403,
        "You have exceeded a secondary rate limit. Please wait a few minutes.",
        {"X-RateLimit-Remaining": "4321"},
    )
    assert error.is_rate_limited


def test_rate_limit_falls_back_to_message_without_headers():
    assert GitHubAPIError(403, "API rate limit exceeded for 1.2.3.4.").is_rate_limited
    assert GitHubAPIError(429, "Too many requests: rate limit").is_rate_limited


def test_permission_error_with_quota_left_is_not_rate_limit():
    error = GitHubAPIError(403, "rate limit wording but quota left", {"X-RateLimit-Remaining": "42"})
    assert not error.is_rate_limited
    assert not GitHubAPIError(403, "Resource not accessible").is_rate_limited
    assert not GitHubAPIError(500, "rate limit").is_rate_limited


def test_from_response_uses_body_message():
    response = httpx.Response(403, json={"message": "API rate limit exceeded"})
    error = GitHubAPIError.from_response(response)
    assert error.message == "API rate limit exceeded"
    assert error.is_rate_limited
