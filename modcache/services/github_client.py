"""
Minimal async client for the GitHub releases API.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from modcache.domain.models import GITHUB_API_URL, RepositoryRef

logger = logging.getLogger(__name__)

RATE_LIMIT_STATUSES = (403, 429)


class GitHubAPIError(Exception):
    """A non-success response from the GitHub API."""

    def __init__(
        self,
        status_code: int,
        message: str,
        headers: Optional[Mapping[str, str]] = None,
    ):
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.headers = {k.lower(): v for k, v in (headers or {}).items()}

    @classmethod
    def from_response(cls, response: httpx.Response) -> "GitHubAPIError":
        message = response.reason_phrase or ""
        try:
            body = response.json()
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
        except ValueError:
            if response.text:
                message = response.text
        return cls(response.status_code, message, response.headers)

    @property
    def is_rate_limited(self) -> bool:
        """
        Whether this failure means the API quota is exhausted.

        The rate-limit headers are authoritative when present; the message is
        only inspected when the response carries no structured signal.
        """
        if self.status_code not in RATE_LIMIT_STATUSES:
            return False
        remaining = self.headers.get("x-ratelimit-remaining")
        if remaining is not None and remaining.strip() == "0":
            return True
        if "retry-after" in self.headers:
            return True
        # Secondary limits are enforced while primary quota is still left.
        if "secondary rate limit" in self.message.lower():
            return True
        if remaining is not None:
            # Quota left, so this is a plain permission error.
            return False
        return "rate limit" in self.message.lower()


class GitHubReleaseClient:
    """Lists repository releases, following pagination links to the last page."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_url: str = GITHUB_API_URL,
        token: Optional[str] = None,
    ):
        self._client = client
        self.api_url = api_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def list_releases(self, repo: RepositoryRef, per_page: int = 100) -> List[Dict[str, Any]]:
        url: Optional[str] = f"{self.api_url}/repos/{repo.owner}/{repo.name}/releases"
        params: Optional[Dict[str, Any]] = {"per_page": per_page}
        releases: List[Dict[str, Any]] = []
        page = 0

        while url:
            page += 1
            response = await self._client.get(url, params=params, headers=self.headers)
            if response.is_error:
                raise GitHubAPIError.from_response(response)

            items = response.json()
            if not isinstance(items, list):
                raise GitHubAPIError(response.status_code, "Unexpected releases payload")
            releases.extend(item for item in items if isinstance(item, dict))

            remaining = response.headers.get("x-ratelimit-remaining")
            logger.debug(
                f"{repo.full_name}: page {page} returned {len(items)} releases "
                f"(rate limit remaining: {remaining})"
            )

            # The next link already carries the query string.
            url = response.links.get("next", {}).get("url")
            params = None

        return releases
