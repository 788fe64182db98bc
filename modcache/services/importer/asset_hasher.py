"""
Download release assets and compute their SHA-256 digests.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Optional

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class HashResult(BaseModel):
    sha256: str
    file_size: int


class AssetHasher:
    """
    Streams an asset into a SHA-256 digest without keeping it on disk.

    Returns None (never raises) when the asset is too large, the server answers
    with a non-success status, or the transfer fails.
    """

    def __init__(self, client: httpx.AsyncClient, max_size: int = 50 * 1024 * 1024):
        self._client = client
        self.max_size = max_size

    async def hash_asset(self, url: str) -> Optional[HashResult]:
        logger.info(f"  Downloading and hashing: {url}")
        hasher = hashlib.sha256()
        downloaded = 0

        try:
            async with self._client.stream("GET", url) as response:
                if response.is_error:
                    logger.warning(
                        f"  Failed to download {url}: HTTP {response.status_code} {response.reason_phrase}"
                    )
                    return None

                content_length = int(response.headers.get("content-length") or 0)
                if content_length > self.max_size:
                    logger.warning(
                        f"  File too large ({content_length / 1024 / 1024:.1f}MB), skipping hash calculation"
                    )
                    return None

                async for chunk in response.aiter_bytes():
                    downloaded += len(chunk)
                    if downloaded > self.max_size:
                        logger.warning(
                            f"  Download exceeded {self.max_size / 1024 / 1024:.1f}MB, skipping hash calculation"
                        )
                        return None
                    hasher.update(chunk)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"  Failed to download/hash {url}: {e}")
            return None

        digest = hasher.hexdigest()
        logger.info(f"  Hash: {digest} ({downloaded / 1024:.1f}KB)")
        return HashResult(sha256=digest, file_size=downloaded)
