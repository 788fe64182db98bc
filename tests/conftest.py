"""Shared fixtures: a fake manifest/GitHub upstream served through httpx.MockTransport."""

import hashlib
from typing import Dict, List, Optional

import httpx
import pytest

from modcache.domain.models import RefreshSettings

MANIFEST_URL = "https://manifest.test/manifest.json"
API_URL = "https://api.github.test"
DOWNLOAD_HOST = "https://downloads.test"


def sha256_of(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def make_release(
    tag: str,
    published_at: Optional[str],
    assets: Optional[List[dict]] = None,
    **extra,
) -> dict:
    release = {
        "tag_name": tag,
        "html_url": f"https://github.com/example/releases/tag/{tag}",
        "published_at": published_at,
        "prerelease": False,
        "draft": False,
        "body": f"Changes in {tag}",
        "assets": assets or [],
    }
    release.update(extra)
    return release


def make_asset(name: str, url: str, size: int = 100) -> dict:
    return {"name": name, "browser_download_url": url, "size": size}


class FakeUpstream:
    """Serves the manifest, paginated release lists and asset downloads."""

    def __init__(self):
        self.manifest: dict = {"objects": {}}
        self.manifest_status = 200
        self.releases: Dict[str, List[dict]] = {}
        self.errors: Dict[str, httpx.Response] = {}
        self.assets: Dict[str, bytes] = {}
        self.asset_status: Dict[str, int] = {}
        self.page_size = 100
        self.requests: List[httpx.Request] = []

    def add_mod(
        self,
        repo: str,
        releases: Optional[List[dict]] = None,
        group: str = "com.example",
        author: str = "Example Author",
        name: Optional[str] = None,
        **entry,
    ) -> None:
        owner, repo_name = repo.split("/")
        mod_name = name or repo_name
        group_data = self.manifest["objects"].setdefault(
            group, {"author": {author: {"url": f"https://github.com/{owner}"}}, "entries": {}}
        )
        group_data["entries"][f"{group}.{mod_name}"] = {
            "name": mod_name,
            "description": f"{mod_name} description",
            "category": entry.pop("category", "Misc"),
            "sourceLocation": f"https://github.com/{repo}",
            "tags": entry.pop("tags", ["tag"]),
            "flags": entry.pop("flags", None),
            **entry,
        }
        self.releases[repo] = releases or []

    def add_asset(self, url: str, content: bytes, status: int = 200) -> None:
        self.assets[url] = content
        self.asset_status[url] = status

    def rate_limit(self, repo: str) -> None:
        self.errors[repo] = httpx.Response(
            403,
            json={"message": "API rate limit exceeded for 127.0.0.1."},
            headers={"x-ratelimit-remaining": "0"},
        )

    def requests_to(self, url_prefix: str) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    @property
    def asset_downloads(self) -> List[httpx.Request]:
        return self.requests_to(DOWNLOAD_HOST)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if url == MANIFEST_URL:
            if self.manifest_status != 200:
                return httpx.Response(self.manifest_status, text="unavailable")
            return httpx.Response(200, json=self.manifest)

        if url.startswith(API_URL):
            parts = request.url.path.strip("/").split("/")
            full_name = f"{parts[1]}/{parts[2]}"
            if full_name in self.errors:
                return self.errors[full_name]
            if full_name not in self.releases:
                return httpx.Response(404, json={"message": "Not Found"})
            releases = self.releases[full_name]
            page = int(request.url.params.get("page", "1"))
            start = (page - 1) * self.page_size
            headers = {}
            if start + self.page_size < len(releases):
                next_url = f"{API_URL}{request.url.path}?per_page={self.page_size}&page={page + 1}"
                headers["Link"] = f'<{next_url}>; rel="next"'
            return httpx.Response(200, json=releases[start:start + self.page_size], headers=headers)

        if url in self.assets:
            return httpx.Response(self.asset_status[url], content=self.assets[url])
        return httpx.Response(404)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=True)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings(tmp_path) -> RefreshSettings:
    return RefreshSettings(
        manifest_url=MANIFEST_URL,
        repositories_file=tmp_path / "repositories.json",
        cache_dir=tmp_path / "cache",
        github_api_url=API_URL,
        hash_delay_seconds=0,
        mod_delay_seconds=0,
    )
