"""
Download and parse the remote mod manifest.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List

import httpx

from modcache.domain.models import AuthorGroup, ManifestEntry

logger = logging.getLogger(__name__)


class ManifestError(Exception):
    """The manifest could not be fetched or parsed. Fatal for the run."""


def parse_manifest(document: Any) -> List[AuthorGroup]:
    """
    Turn a manifest document into author groups.

    The document holds an ``objects`` mapping of author-group key to
    ``{"author": {<display name>: {...}}, "entries": {<mod key>: {...}}}``.
    Group and entry order follow the document.
    """
    if not isinstance(document, dict):
        raise ManifestError("Manifest is not a JSON object")
    objects = document.get("objects")
    if not isinstance(objects, dict):
        raise ManifestError("Manifest has no 'objects' mapping")

    groups: List[AuthorGroup] = []
    for group_key, group in objects.items():
        if not isinstance(group, dict):
            logger.warning(f"Skipping malformed author group {group_key!r}")
            continue

        author = group.get("author")
        display_name = next(iter(author), None) if isinstance(author, dict) else None

        entries: List[ManifestEntry] = []
        raw_entries = group.get("entries")
        if isinstance(raw_entries, dict):
            for entry_key, raw_entry in raw_entries.items():
                if not isinstance(raw_entry, dict):
                    logger.warning(f"Skipping malformed manifest entry {entry_key!r}")
                    continue
                data = dict(raw_entry)
                if not data.get("name"):
                    data["name"] = entry_key
                try:
                    entries.append(ManifestEntry(key=entry_key, **data))
                except (TypeError, ValueError) as e:
                    logger.warning(f"Skipping invalid manifest entry {entry_key!r}: {e}")

        groups.append(
            AuthorGroup(key=group_key, display_name=display_name or group_key, entries=entries)
        )
    return groups


class ManifestDownloader:
    """Downloads the remote manifest and parses it into author groups."""

    def __init__(self, manifest_url: str, client: httpx.AsyncClient):
        self.manifest_url = manifest_url
        self._client = client

    async def download_manifest(self) -> List[AuthorGroup]:
        logger.info(f"Fetching mod manifest from {self.manifest_url}")
        try:
            response = await self._client.get(self.manifest_url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise ManifestError(f"Failed to fetch manifest: {e}") from e

        try:
            document: Dict[str, Any] = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ManifestError(f"Manifest is not valid JSON: {e}") from e

        groups = parse_manifest(document)
        entry_count = sum(len(g.entries) for g in groups)
        logger.info(f"Manifest lists {entry_count} mods in {len(groups)} author groups")
        return groups
