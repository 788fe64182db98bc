import json
import logging
from pathlib import Path
from typing import Dict, List

import aiofiles
from pydantic import TypeAdapter, ValidationError

from modcache.domain.models import HashIndex, HashLookupEntry, Mod
from modcache.storage.cache_store import CacheStore

logger = logging.getLogger(__name__)

_MODS_ADAPTER = TypeAdapter(List[Mod])
_HASH_INDEX_ADAPTER = TypeAdapter(Dict[str, List[HashLookupEntry]])


class JsonCacheStore(CacheStore):
    """Keeps the cache as mods.json and hash-lookup.json in one directory."""

    def __init__(self, cache_dir: Path):
        self._cache_dir = cache_dir

    @property
    def mods_path(self) -> Path:
        return self._cache_dir / "mods.json"

    @property
    def hash_index_path(self) -> Path:
        return self._cache_dir / "hash-lookup.json"

    async def load_mods(self) -> List[Mod]:
        raw = await self._read_json(self.mods_path)
        if raw is None:
            logger.info("No existing cache found, starting fresh")
            return []
        if not isinstance(raw, list):
            logger.warning(f"Ignoring cache {self.mods_path}: expected a list")
            return []

        mods: List[Mod] = []
        for i, item in enumerate(raw):
            try:
                mods.append(Mod.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed cached mod #{i}: {e.error_count()} errors")
        logger.info(f"Loaded {len(mods)} cached mods from {self.mods_path}")
        return mods

    async def save_mods(self, mods: List[Mod]) -> None:
        await self._write(self.mods_path, _MODS_ADAPTER.dump_json(mods, indent=2))
        logger.info(f"Saved {len(mods)} mods to {self.mods_path}")

    async def save_hash_index(self, index: HashIndex) -> None:
        await self._write(self.hash_index_path, _HASH_INDEX_ADAPTER.dump_json(index, indent=2))
        logger.info(f"Saved hash lookup table with {len(index)} entries to {self.hash_index_path}")

    async def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None

    async def _write(self, path: Path, payload: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Write to a temp file first so a failed run never leaves a truncated cache.
        tmp_path = path.with_name(f"{path.name}.tmp")
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(payload)
            await f.write(b"\n")
        tmp_path.replace(path)
