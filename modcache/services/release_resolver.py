"""
Resolve the release history of a mod repository into cache records.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from modcache.domain.github_utils import select_asset
from modcache.domain.models import Release, RepositoryRef
from modcache.services.github_client import GitHubAPIError, GitHubReleaseClient
from modcache.services.importer.asset_hasher import AssetHasher
from modcache.services.refresh_policy import should_compute_hash

logger = logging.getLogger(__name__)

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


class ResolveResult(BaseModel):
    """
    Releases for one repository plus what happened while resolving them.

    When ``rate_limited`` or ``failed`` is set, ``releases`` is the cached list
    passed in by the caller, unchanged.
    """

    releases: List[Release] = Field(default_factory=list)
    rate_limited: bool = False
    failed: bool = False
    hashes_computed: int = 0
    hashes_reused: int = 0


def sort_releases(releases: List[Release]) -> List[Release]:
    """Newest first; releases without a publish date go last. Stable for ties."""
    def key(release: Release) -> datetime:
        published = release.published_at
        if published is None:
            return _OLDEST
        if published.tzinfo is None:
            return published.replace(tzinfo=timezone.utc)
        return published

    return sorted(releases, key=key, reverse=True)


class ReleaseResolver:
    def __init__(
        self,
        github: GitHubReleaseClient,
        hasher: Optional[AssetHasher],
        asset_suffixes: List[str],
        hash_delay_seconds: float = 1.0,
    ):
        self.github = github
        self.hasher = hasher
        self.asset_suffixes = asset_suffixes
        self.hash_delay_seconds = hash_delay_seconds

    async def resolve(
        self,
        repo: RepositoryRef,
        cached_releases: List[Release],
        force_hash: bool = False,
    ) -> ResolveResult:
        """
        Fetch every release of ``repo`` that carries a recognized asset.

        Cached hashes are reused per version tag unless ``force_hash`` is set.
        Never raises: a rate limit or any other fetch failure hands back
        ``cached_releases`` with the matching flag set.
        """
        logger.info(f"Fetching releases for {repo.full_name}...")
        try:
            raw_releases = await self.github.list_releases(repo)
        except GitHubAPIError as e:
            if e.is_rate_limited:
                logger.error(
                    f"Rate limit reached for {repo.full_name}. Using existing data if available."
                )
                return ResolveResult(releases=list(cached_releases), rate_limited=True)
            logger.warning(f"Failed to get releases for {repo.full_name}: {e}")
            return ResolveResult(releases=list(cached_releases), failed=True)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to get releases for {repo.full_name}: {e}")
            return ResolveResult(releases=list(cached_releases), failed=True)

        cached_by_version = {r.version: r for r in cached_releases}
        result = ResolveResult()
        seen = set()

        for raw in raw_releases:
            tag = raw.get("tag_name")
            if not tag or tag in seen:
                continue

            asset = select_asset(raw.get("assets") or [], self.asset_suffixes)
            if asset is None:
                logger.debug(f"  No recognized asset in release {tag}")
                continue
            seen.add(tag)

            release = await self._build_release(raw, asset, cached_by_version.get(tag), force_hash, result)
            result.releases.append(release)

        result.releases = sort_releases(result.releases)
        logger.info(f"  Found {len(result.releases)} releases with recognized assets")
        return result

    async def _build_release(
        self,
        raw: Dict[str, Any],
        asset: Dict[str, Any],
        cached: Optional[Release],
        force_hash: bool,
        result: ResolveResult,
    ) -> Release:
        tag = raw["tag_name"]
        download_url = asset.get("browser_download_url") or None
        sha256: Optional[str] = None
        file_size: Optional[int] = asset.get("size")

        if download_url and self.hasher is not None and should_compute_hash(cached, force_hash):
            logger.info(f"  Calculating hash for {tag}...")
            hashed = await self.hasher.hash_asset(download_url)
            result.hashes_computed += 1
            if hashed is not None:
                sha256, file_size = hashed.sha256, hashed.file_size
            elif cached is not None and cached.sha256:
                logger.info(f"  Falling back to cached hash for {tag}")
                sha256 = cached.sha256
                file_size = cached.file_size or file_size
            await asyncio.sleep(self.hash_delay_seconds)
        elif cached is not None and cached.sha256:
            logger.debug(f"  Using cached hash for {tag}: {cached.sha256}")
            sha256 = cached.sha256
            file_size = cached.file_size or file_size
            result.hashes_reused += 1

        return Release(
            version=tag,
            download_url=download_url,
            release_url=raw.get("html_url"),
            published_at=raw.get("published_at"),
            prerelease=bool(raw.get("prerelease")),
            draft=bool(raw.get("draft")),
            changelog=raw.get("body") or None,
            file_name=asset.get("name"),
            file_size=file_size,
            sha256=sha256,
        )
