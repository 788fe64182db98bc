"""Tests for the persisted cache models."""

from datetime import datetime, timezone

from modcache.domain.models import ModDescriptor, Mod, Release


def test_release_sha256_is_normalized_to_lowercase():
    digest = "AB" * 32
    release = Release(version="v1", sha256=digest)
    assert release.sha256 == "ab" * 32


def test_release_invalid_sha256_is_treated_as_missing():
    assert Release(version="v1", sha256="not-a-hash").sha256 is None
    assert Release(version="v1", sha256="").sha256 is None
    assert Release(version="v1", sha256=None).sha256 is None


def test_mod_from_descriptor_projects_latest_release():
    descriptor = ModDescriptor(
        name="Mod",
        source_location="https://github.com/o/r",
        author="o",
        source="additional",
    )
    releases = [
        Release(version="v2", download_url="https://dl/v2.dll"),
        Release(version="v1", download_url="https://dl/v1.dll"),
    ]
    now = datetime(2024, 5, 1, tzinfo=timezone.utc)
    mod = Mod.from_descriptor(descriptor, releases, now)

    assert mod.latest_version == "v2"
    assert mod.latest_download_url == "https://dl/v2.dll"
    assert mod.source == "additional"
    assert mod.last_updated == now


def test_mod_without_releases_has_no_latest():
    mod = Mod.from_descriptor(ModDescriptor(name="Mod"), [], None)
    assert mod.latest_version is None
    assert mod.latest_download_url is None


def test_mod_serializes_null_hash():
    mod = Mod(name="Mod", releases=[Release(version="v1")])
    dumped = mod.model_dump(mode="json")
    assert dumped["releases"][0]["sha256"] is None
    assert list(dumped)[:4] == ["name", "description", "category", "source_location"]


def test_cached_mod_without_source_defaults_to_manifest():
    mod = Mod.model_validate({"name": "Old", "releases": [], "unknown_field": 1})
    assert mod.source == "manifest"
    assert mod.cache_key == "Old"
