"""
Pydantic models for the mod cache.

This module defines all data models used throughout the application, including:
- Refresh configuration
- Source descriptors (manifest entries and additional repositories)
- Persisted mod and release records
- The hash lookup index and run summaries

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


SHA256_PATTERN = re.compile(r"^[0-9a-f]{64}$")

DEFAULT_MANIFEST_URL = (
    "https://raw.githubusercontent.com/resonite-modding-group/"
    "resonite-mod-manifest/main/manifest.json"
)
GITHUB_API_URL = "https://api.github.com"

# Where a descriptor came from.
ModSource = Literal["manifest", "additional"]

# Terminal states of a refresh run.
RunState = Literal["WRITTEN", "RATE_LIMITED_PARTIAL", "ABORTED"]


# ---------------------------------------------------------------------------
# Configuration Models
# ---------------------------------------------------------------------------


class RefreshSettings(BaseModel):
    """
    Configuration for a single cache refresh run.

    Built by ``load_settings()`` from environment variables and CLI flags.
    Delays exist to bound the request rate against GitHub; tests set them to 0.
    """

    manifest_url: str = Field(
        default=DEFAULT_MANIFEST_URL,
        description="URL of the remote mod manifest (primary data source).",
    )
    repositories_file: Path = Field(
        default=Path("repositories.json"),
        description="Local JSON file listing additional repositories.",
    )
    cache_dir: Path = Field(
        default=Path("cache"),
        description="Directory holding mods.json and hash-lookup.json.",
    )
    github_api_url: str = Field(
        default=GITHUB_API_URL,
        description="Base URL of the GitHub REST API.",
    )
    github_token: Optional[str] = Field(
        default=None,
        description="Token used to raise the GitHub API rate limit. Optional.",
    )
    asset_suffixes: List[str] = Field(
        default_factory=lambda: [".dll", ".nupkg"],
        description="Recognized release asset suffixes, primary suffix first.",
    )
    freshness_window: timedelta = Field(
        default=timedelta(days=7),
        description="Maximum age of a cached mod before it is re-resolved.",
    )
    max_hash_size: int = Field(
        default=50 * 1024 * 1024,
        gt=0,
        description="Assets larger than this many bytes are not hashed.",
    )
    hash_delay_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Pause after every asset hash computation.",
    )
    mod_delay_seconds: float = Field(
        default=0.5,
        ge=0,
        description="Pause after every mod whose releases were resolved.",
    )
    http_timeout_seconds: float = Field(default=60.0, gt=0)
    force_hash: bool = Field(
        default=False,
        description="Recompute every hash regardless of freshness or cached values.",
    )
    skip_hashes: bool = Field(
        default=False,
        description="Never download assets; only reuse hashes already in the cache.",
    )


# ---------------------------------------------------------------------------
# Source Models
# ---------------------------------------------------------------------------


class RepositoryRef(BaseModel):
    """An owner/name pair identifying a GitHub repository."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class ManifestEntry(BaseModel):
    """A single mod entry inside an author group of the remote manifest."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    key: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    source_location: Optional[str] = Field(default=None, alias="sourceLocation")
    tags: Optional[List[str]] = None
    flags: Optional[List[str]] = None


class AuthorGroup(BaseModel):
    """An author group of the remote manifest with its mod entries in document order."""

    key: str
    display_name: str
    entries: List[ManifestEntry] = Field(default_factory=list)


class AdditionalRepository(BaseModel):
    """
    An entry of the local repositories.json file.

    The repository URL may be given as either ``repository`` or ``url``.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    repository: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None
    tags: Optional[List[str]] = None
    flags: Optional[List[str]] = None
    enabled: bool = True

    @property
    def location(self) -> Optional[str]:
        return self.repository or self.url


class ModDescriptor(BaseModel):
    """
    Normalized description of a mod, regenerated every run from the sources.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    source_location: Optional[str] = None
    author: Optional[str] = None
    tags: Optional[List[str]] = None
    flags: Optional[List[str]] = None
    source: ModSource = "manifest"

    @property
    def cache_key(self) -> str:
        """Key used to find this mod in the prior cache snapshot."""
        return self.source_location or self.name


# ---------------------------------------------------------------------------
# Persisted Cache Models
# ---------------------------------------------------------------------------


class Release(BaseModel):
    """
    A published release of a mod, reduced to its single recognized asset.

    ``sha256`` is either None or the lowercase hex digest of the asset bytes.
    """

    model_config = ConfigDict(extra="ignore")

    version: str
    download_url: Optional[str] = None
    release_url: Optional[str] = None
    published_at: Optional[datetime] = None
    prerelease: bool = False
    draft: bool = False
    changelog: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    sha256: Optional[str] = None

    @field_validator("sha256", mode="before")
    @classmethod
    def _normalize_sha256(cls, value: Any) -> Optional[str]:
        # Anything that is not a valid digest is treated as missing, so it gets recomputed.
        if not value or not isinstance(value, str):
            return None
        value = value.strip().lower()
        return value if SHA256_PATTERN.match(value) else None


class HashMetadata(BaseModel):
    """Hash coverage of a mod's releases."""

    total_releases: int = 0
    releases_with_hash: int = 0
    last_hash_update: Optional[datetime] = None


class Mod(BaseModel):
    """
    A mod as persisted in mods.json: descriptor fields, releases (newest first),
    the latest-release projection and refresh bookkeeping.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    source_location: Optional[str] = None
    author: Optional[str] = None
    latest_version: Optional[str] = None
    latest_download_url: Optional[str] = None
    releases: List[Release] = Field(default_factory=list)
    tags: Optional[List[str]] = None
    flags: Optional[List[str]] = None
    last_updated: Optional[datetime] = None
    source: ModSource = "manifest"
    hash_metadata: Optional[HashMetadata] = None

    @classmethod
    def from_descriptor(
        cls,
        descriptor: ModDescriptor,
        releases: List[Release],
        last_updated: Optional[datetime],
        hash_metadata: Optional[HashMetadata] = None,
    ) -> "Mod":
        latest = releases[0] if releases else None
        return cls(
            name=descriptor.name,
            description=descriptor.description,
            category=descriptor.category,
            source_location=descriptor.source_location,
            author=descriptor.author,
            latest_version=latest.version if latest else None,
            latest_download_url=latest.download_url if latest else None,
            releases=list(releases),
            tags=descriptor.tags,
            flags=descriptor.flags,
            last_updated=last_updated,
            source=descriptor.source,
            hash_metadata=hash_metadata,
        )

    @property
    def cache_key(self) -> str:
        return self.source_location or self.name


class HashLookupEntry(BaseModel):
    """One mod/version that ships an asset with a given hash."""

    mod_name: str
    mod_source: Optional[str] = None
    version: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    published_at: Optional[datetime] = None
    download_url: Optional[str] = None


# sha256 -> every release whose asset has that digest
HashIndex = Dict[str, List[HashLookupEntry]]


# ---------------------------------------------------------------------------
# Run Result Models
# ---------------------------------------------------------------------------


class RefreshSummary(BaseModel):
    """Statistics reported at the end of a refresh run."""

    state: RunState = "WRITTEN"
    total_mods: int = 0
    mods_with_releases: int = 0
    total_releases: int = 0
    releases_with_hash: int = 0
    unique_hashes: int = 0
    hashes_computed: int = 0
    hashes_reused: int = 0
    mods_reused: int = 0
    mods_carried_forward: int = 0
    categories: Dict[str, int] = Field(default_factory=dict)

    @property
    def hash_coverage(self) -> float:
        if not self.total_releases:
            return 0.0
        return self.releases_with_hash / self.total_releases * 100

    @property
    def average_releases(self) -> float:
        if not self.mods_with_releases:
            return 0.0
        return self.total_releases / self.mods_with_releases


class RefreshOutcome(BaseModel):
    """Everything a refresh run produced."""

    state: RunState
    mods: List[Mod] = Field(default_factory=list)
    hash_index: HashIndex = Field(default_factory=dict)
    summary: RefreshSummary = Field(default_factory=RefreshSummary)
