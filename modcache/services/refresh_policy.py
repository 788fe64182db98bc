"""
Decide when cached mod data and hashes can be reused.

A mod is refreshed (releases re-resolved, missing hashes computed) when any of
these holds:
* there is no cached record for it,
* the cached record is older than the freshness window,
* a cached release with a download URL has no hash,
* the caller forces hash recomputation.

Within a refreshed mod each release still keeps its cached hash unless hashing
is forced.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from modcache.domain.models import Mod, Release


class RefreshDecision(BaseModel):
    refresh: bool
    reasons: List[str] = Field(default_factory=list)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def decide_mod_refresh(
    cached: Optional[Mod],
    now: datetime,
    freshness_window: timedelta = timedelta(days=7),
    force: bool = False,
) -> RefreshDecision:
    reasons: List[str] = []
    if force:
        reasons.append("forced")
    if cached is None:
        reasons.append("not cached")
    else:
        if cached.last_updated is None:
            reasons.append("no refresh timestamp")
        elif _as_utc(now) - _as_utc(cached.last_updated) > freshness_window:
            reasons.append("stale")
        if any(r.download_url and not r.sha256 for r in cached.releases):
            reasons.append("missing hashes")
    return RefreshDecision(refresh=bool(reasons), reasons=reasons)


def should_compute_hash(cached_release: Optional[Release], force: bool = False) -> bool:
    """Per-release check inside a refreshed mod."""
    if force:
        return True
    return cached_release is None or not cached_release.sha256
