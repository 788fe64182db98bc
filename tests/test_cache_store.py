"""Tests for the JSON cache store and the hash index."""

import json

import pytest

from modcache.domain.models import Mod, Release
from modcache.services.hash_index import build_hash_index
from modcache.storage.json_cache_store import JsonCacheStore

HASH_A = "a" * 64
HASH_B = "b" * 64


def mod(name, releases, source=None):
    return Mod(name=name, source_location=source or f"https://github.com/o/{name}", releases=releases)


@pytest.mark.asyncio
async def test_load_mods_without_cache_is_empty(tmp_path):
    assert await JsonCacheStore(tmp_path / "cache").load_mods() == []


@pytest.mark.asyncio
async def test_load_mods_with_corrupt_cache_is_empty(tmp_path):
    (tmp_path / "mods.json").write_text("[{", encoding="utf-8")
    assert await JsonCacheStore(tmp_path).load_mods() == []

    (tmp_path / "mods.json").write_text(json.dumps({"not": "a list"}), encoding="utf-8")
    assert await JsonCacheStore(tmp_path).load_mods() == []


@pytest.mark.asyncio
async def test_load_mods_skips_malformed_records(tmp_path):
    (tmp_path / "mods.json").write_text(
        json.dumps([{"name": "Good", "releases": []}, {"releases": "nope"}]),
        encoding="utf-8",
    )
    mods = await JsonCacheStore(tmp_path).load_mods()
    assert [m.name for m in mods] == ["Good"]


@pytest.mark.asyncio
async def test_save_mods_round_trips_in_order(tmp_path):
    store = JsonCacheStore(tmp_path / "cache")
    mods = [
        mod("Zeta", [Release(version="v1", sha256=HASH_A, published_at="2024-01-01T00:00:00Z")]),
        mod("Alpha", []),
    ]
    await store.save_mods(mods)

    raw = json.loads(store.mods_path.read_text(encoding="utf-8"))
    assert [m["name"] for m in raw] == ["Zeta", "Alpha"]
    assert raw[0]["releases"][0]["published_at"] == "2024-01-01T00:00:00Z"
    assert raw[1]["latest_version"] is None
    assert not store.mods_path.with_name("mods.json.tmp").exists()

    assert await store.load_mods() == mods


@pytest.mark.asyncio
async def test_save_hash_index_writes_lists(tmp_path):
    store = JsonCacheStore(tmp_path)
    index = build_hash_index([mod("M", [Release(version="v1", download_url="https://dl/1", sha256=HASH_A)])])
    await store.save_hash_index(index)

    raw = json.loads(store.hash_index_path.read_text(encoding="utf-8"))
    assert list(raw) == [HASH_A]
    assert raw[HASH_A][0]["mod_name"] == "M"
    assert raw[HASH_A][0]["download_url"] == "https://dl/1"


def test_hash_index_groups_identical_binaries():
    mods = [
        mod("One", [
            Release(version="v2", download_url="https://dl/one/2", sha256=HASH_A, file_name="One.dll"),
            Release(version="v1", download_url="https://dl/one/1", sha256=HASH_B),
        ]),
        mod("Two", [Release(version="v9", download_url="https://dl/two/9", sha256=HASH_A)]),
    ]
    index = build_hash_index(mods)

    assert set(index) == {HASH_A, HASH_B}
    assert [(e.mod_name, e.version) for e in index[HASH_A]] == [("One", "v2"), ("Two", "v9")]
    assert index[HASH_A][0].mod_source == "https://github.com/o/One"
    assert index[HASH_A][0].file_name == "One.dll"


def test_hash_index_skips_unhashed_and_undownloadable_releases():
    mods = [
        mod("M", [
            Release(version="v3", download_url="https://dl/3"),
            Release(version="v2", sha256=HASH_A),
            Release(version="v1", download_url="https://dl/1", sha256=HASH_B),
        ]),
    ]
    index = build_hash_index(mods)
    assert list(index) == [HASH_B]
    for key, entries in index.items():
        assert len(key) == 64
        assert any(e.download_url for e in entries)
