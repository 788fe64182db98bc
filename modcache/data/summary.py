"""
Run statistics: computed from the written cache, logged, and optionally
appended to a GitHub Actions step summary.
"""
from __future__ import annotations

import logging
import os
from collections import Counter
from pathlib import Path
from typing import List, Optional

from modcache.domain.models import HashIndex, Mod, RefreshSummary, RunState

logger = logging.getLogger(__name__)

STEP_SUMMARY_ENV_VAR = "GITHUB_STEP_SUMMARY"


def summarize(
    mods: List[Mod],
    hash_index: HashIndex,
    state: RunState = "WRITTEN",
    hashes_computed: int = 0,
    hashes_reused: int = 0,
    mods_reused: int = 0,
    mods_carried_forward: int = 0,
) -> RefreshSummary:
    categories = Counter(mod.category or "Uncategorized" for mod in mods)
    return RefreshSummary(
        state=state,
        total_mods=len(mods),
        mods_with_releases=sum(1 for mod in mods if mod.releases),
        total_releases=sum(len(mod.releases) for mod in mods),
        releases_with_hash=sum(1 for mod in mods for r in mod.releases if r.sha256),
        unique_hashes=len(hash_index),
        hashes_computed=hashes_computed,
        hashes_reused=hashes_reused,
        mods_reused=mods_reused,
        mods_carried_forward=mods_carried_forward,
        categories=dict(sorted(categories.items(), key=lambda item: (-item[1], item[0]))),
    )


def log_summary(summary: RefreshSummary) -> None:
    logger.info("=== Summary ===")
    logger.info(f"Run state: {summary.state}")
    logger.info(f"MODs with releases: {summary.mods_with_releases}/{summary.total_mods}")
    logger.info(f"Total releases collected: {summary.total_releases}")
    logger.info(
        f"Releases with SHA256 hash: {summary.releases_with_hash} ({summary.hash_coverage:.1f}%)"
    )
    logger.info(f"Average releases per MOD: {summary.average_releases:.1f}")
    logger.info(f"Unique hashes in lookup table: {summary.unique_hashes}")
    logger.info(f"Hashes computed: {summary.hashes_computed}, reused: {summary.hashes_reused}")
    if summary.mods_reused:
        logger.info(f"MODs served from fresh cache: {summary.mods_reused}")
    if summary.mods_carried_forward:
        logger.info(f"MODs carried forward after rate limit: {summary.mods_carried_forward}")
    logger.info("MODs by category:")
    for category, count in summary.categories.items():
        logger.info(f"  {category}: {count}")


def render_markdown(summary: RefreshSummary, cache_dir: Optional[Path] = None) -> str:
    mods_file = cache_dir / "mods.json" if cache_dir is not None else "mods.json"
    lookup_file = cache_dir / "hash-lookup.json" if cache_dir is not None else "hash-lookup.json"
    lines = [
        "## MOD Cache Updated",
        "",
        f"- State: `{summary.state}`",
        f"- MODs: {summary.total_mods} ({summary.mods_with_releases} with releases)",
        f"- Releases: {summary.total_releases}",
        f"- Releases with SHA256: {summary.releases_with_hash} ({summary.hash_coverage:.1f}%)",
        f"- Unique hashes: {summary.unique_hashes}",
        f"- Hashes computed: {summary.hashes_computed}",
        "",
        "### Files Updated:",
        f"- `{mods_file}` - MOD information with hash data",
        f"- `{lookup_file}` - SHA256 hash lookup table",
    ]
    return "\n".join(lines) + "\n"


def write_step_summary(
    summary: RefreshSummary,
    path: Optional[Path] = None,
    cache_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Append the markdown summary to $GITHUB_STEP_SUMMARY when it is set."""
    if path is None:
        env_path = os.environ.get(STEP_SUMMARY_ENV_VAR)
        if not env_path:
            return None
        path = Path(env_path)
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(render_markdown(summary, cache_dir))
    except OSError as e:
        logger.warning(f"Failed to write step summary to {path}: {e}")
        return None
    return path
