import re
from typing import Any, Dict, Iterable, Optional

from modcache.domain.models import RepositoryRef

_GITHUB_REPO_RE = re.compile(r"github\.com[/:]([^/?#\s]+)/([^/?#\s]+)", re.IGNORECASE)


def parse_github_url(url: Optional[str]) -> Optional[RepositoryRef]:
    """
    Extract owner/name from a GitHub repository URL.

    Returns None when the value is empty or does not point at github.com.
    """
    if not url:
        return None
    match = _GITHUB_REPO_RE.search(url)
    if not match:
        return None
    owner, name = match.group(1), match.group(2)
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        return None
    return RepositoryRef(owner=owner, name=name)


def select_asset(
    assets: Iterable[Dict[str, Any]],
    suffixes: Iterable[str],
) -> Optional[Dict[str, Any]]:
    """
    Pick the release asset to track.

    Suffixes are tried in order, so an asset matching the primary suffix always
    wins over one matching a fallback suffix.
    """
    assets = list(assets or [])
    for suffix in suffixes:
        suffix = suffix.lower()
        for asset in assets:
            name = asset.get("name") or ""
            if name.lower().endswith(suffix):
                return asset
    return None
