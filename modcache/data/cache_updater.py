"""
The cache refresh run: sources -> releases -> hashes -> cache files.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

import httpx

from modcache.data.sources import collect_descriptors, load_additional_repositories
from modcache.data.summary import summarize
from modcache.domain.github_utils import parse_github_url
from modcache.domain.models import (
    HashMetadata,
    Mod,
    ModDescriptor,
    RefreshOutcome,
    RefreshSettings,
    Release,
    RunState,
)
from modcache.services.github_client import GitHubReleaseClient
from modcache.services.hash_index import build_hash_index
from modcache.services.importer.asset_hasher import AssetHasher
from modcache.services.importer.manifest_downloader import ManifestDownloader
from modcache.services.refresh_policy import decide_mod_refresh
from modcache.services.release_resolver import ReleaseResolver, ResolveResult
from modcache.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _hash_metadata(
    releases: List[Release],
    last_hash_update: Optional[datetime],
) -> HashMetadata:
    return HashMetadata(
        total_releases=len(releases),
        releases_with_hash=sum(1 for r in releases if r.sha256),
        last_hash_update=last_hash_update,
    )


def _resolved_mod(
    descriptor: ModDescriptor,
    cached: Optional[Mod],
    result: ResolveResult,
    now: datetime,
) -> Mod:
    previous_hash_update = None
    if cached is not None and cached.hash_metadata is not None:
        previous_hash_update = cached.hash_metadata.last_hash_update

    if result.failed:
        # Keep the old timestamp so the next run tries again. A new record gets
        # none at all, which forces a refresh next time.
        last_updated = cached.last_updated if cached is not None else None
        return Mod.from_descriptor(
            descriptor,
            result.releases,
            last_updated,
            _hash_metadata(result.releases, previous_hash_update or now),
        )

    last_hash_update = now if result.hashes_computed else (previous_hash_update or now)
    return Mod.from_descriptor(
        descriptor,
        result.releases,
        now,
        _hash_metadata(result.releases, last_hash_update),
    )


def _unlinked_mod(descriptor: ModDescriptor, cached: Optional[Mod], now: datetime) -> Mod:
    """A mod without a GitHub repository: no releases, bookkeeping from its prior record."""
    if cached is None:
        return Mod.from_descriptor(descriptor, [], now, _hash_metadata([], now))
    previous_hash_update = cached.hash_metadata.last_hash_update if cached.hash_metadata else None
    return Mod.from_descriptor(
        descriptor,
        [],
        cached.last_updated or now,
        _hash_metadata([], previous_hash_update or now),
    )


class CacheUpdater:
    """
    Runs one refresh over every descriptor, sequentially.

    The prior snapshot passed in is the only baseline: cached releases and
    hashes are looked up in it by source location, never in shared state.
    """

    def __init__(
        self,
        settings: RefreshSettings,
        resolver: ReleaseResolver,
        store: CacheStore,
    ):
        self.settings = settings
        self.resolver = resolver
        self.store = store

    async def refresh(
        self,
        descriptors: List[ModDescriptor],
        prior_mods: List[Mod],
    ) -> RefreshOutcome:
        prior: Dict[str, Mod] = {}
        for mod in prior_mods:
            prior.setdefault(mod.cache_key, mod)

        mods: List[Mod] = []
        state: RunState = "WRITTEN"
        hashes_computed = hashes_reused = mods_reused = carried_forward = 0
        total = len(descriptors)

        for position, descriptor in enumerate(descriptors):
            logger.info(f"[{position + 1}/{total}] Processing {descriptor.name}...")
            now = _utcnow()

            cached = prior.get(descriptor.cache_key)
            repo = parse_github_url(descriptor.source_location)
            if repo is None:
                logger.warning(f"  No GitHub repository for {descriptor.name}; keeping it without releases")
                mods.append(_unlinked_mod(descriptor, cached, now))
                continue

            decision = decide_mod_refresh(
                cached,
                now,
                freshness_window=self.settings.freshness_window,
                force=self.settings.force_hash,
            )
            if not decision.refresh:
                logger.info(f"  Using cached data (less than {self.settings.freshness_window.days} days old)")
                mods.append(
                    Mod.from_descriptor(descriptor, cached.releases, cached.last_updated, cached.hash_metadata)
                )
                mods_reused += 1
                hashes_reused += sum(1 for r in cached.releases if r.sha256)
                continue

            logger.debug(f"  Refreshing {descriptor.name}: {', '.join(decision.reasons)}")
            result = await self.resolver.resolve(
                repo,
                cached.releases if cached is not None else [],
                force_hash=self.settings.force_hash,
            )
            if result.rate_limited:
                logger.error("API rate limit reached. Stopping processing.")
                state = "RATE_LIMITED_PARTIAL"
                carried_forward = self._carry_forward(descriptors[position:], prior, mods)
                break

            hashes_computed += result.hashes_computed
            hashes_reused += result.hashes_reused
            mods.append(_resolved_mod(descriptor, cached, result, now))
            await asyncio.sleep(self.settings.mod_delay_seconds)

        hash_index = build_hash_index(mods)
        await self.store.save_mods(mods)
        await self.store.save_hash_index(hash_index)

        summary = summarize(
            mods,
            hash_index,
            state=state,
            hashes_computed=hashes_computed,
            hashes_reused=hashes_reused,
            mods_reused=mods_reused,
            mods_carried_forward=carried_forward,
        )
        return RefreshOutcome(state=state, mods=mods, hash_index=hash_index, summary=summary)

    @staticmethod
    def _carry_forward(
        remaining: List[ModDescriptor],
        prior: Dict[str, Mod],
        mods: List[Mod],
    ) -> int:
        """Append the prior record of every unprocessed mod so the cache never shrinks."""
        carried = 0
        for descriptor in remaining:
            cached = prior.get(descriptor.cache_key)
            if cached is None:
                logger.debug(f"  {descriptor.name} has no cached record; omitted until a later run")
                continue
            mods.append(cached)
            carried += 1
        if carried:
            logger.info(f"Carried forward {carried} mods from the previous cache")
        return carried


async def refresh_mod_cache(
    settings: RefreshSettings,
    store: CacheStore,
    client: Optional[httpx.AsyncClient] = None,
) -> RefreshOutcome:
    """
    Run a full refresh and write the cache.

    Raises ManifestError when the manifest cannot be fetched or parsed; every
    other failure is absorbed and logged.
    """
    if client is None:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=settings.http_timeout_seconds
        ) as owned_client:
            return await refresh_mod_cache(settings, store, owned_client)

    groups = await ManifestDownloader(settings.manifest_url, client).download_manifest()
    additional = load_additional_repositories(settings.repositories_file)
    descriptors = collect_descriptors(groups, additional)
    prior_mods = await store.load_mods()

    github = GitHubReleaseClient(client, settings.github_api_url, settings.github_token)
    hasher = None if settings.skip_hashes else AssetHasher(client, settings.max_hash_size)
    resolver = ReleaseResolver(
        github,
        hasher,
        settings.asset_suffixes,
        hash_delay_seconds=settings.hash_delay_seconds,
    )
    return await CacheUpdater(settings, resolver, store).refresh(descriptors, prior_mods)
