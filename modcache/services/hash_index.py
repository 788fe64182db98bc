from __future__ import annotations

from typing import List

from modcache.domain.models import HashIndex, HashLookupEntry, Mod


def build_hash_index(mods: List[Mod]) -> HashIndex:
    """
    Map every asset hash to the mod releases that ship it.

    Identical binaries published by different mods or versions share one key,
    so each key holds a list. Releases without a hash or a download URL are
    not indexed.
    """
    index: HashIndex = {}
    for mod in mods:
        for release in mod.releases:
            if not release.sha256 or not release.download_url:
                continue
            index.setdefault(release.sha256, []).append(
                HashLookupEntry(
                    mod_name=mod.name,
                    mod_source=mod.source_location,
                    version=release.version,
                    file_name=release.file_name,
                    file_size=release.file_size,
                    published_at=release.published_at,
                    download_url=release.download_url,
                )
            )
    return index
