import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from modcache.core.dependencies import load_settings
from modcache.data.cache_updater import refresh_mod_cache
from modcache.data.summary import log_summary, write_step_summary
from modcache.services.importer.manifest_downloader import ManifestError
from modcache.storage.json_cache_store import JsonCacheStore

logger = logging.getLogger(__name__)

DESCRIPTION = """\
Collect mod information, including SHA256 hashes of release assets, into a
local cache. This may take a while due to file downloads and GitHub API rate
limits.

Generates:
  cache/mods.json         complete mod information with release data and hashes
  cache/hash-lookup.json  SHA256 hash to mod/version lookup table
"""

EPILOG = """\
environment variables:
  GITHUB_TOKEN                GitHub token (recommended for higher rate limits)
  MODCACHE_DATA_DIR           directory holding repositories.json and cache/
  MODCACHE_MANIFEST_URL       override the mod manifest URL
  MODCACHE_REPOSITORIES_FILE  override the additional repositories file
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modcache",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    hash_mode = parser.add_mutually_exclusive_group()
    hash_mode.add_argument(
        "--force-hash",
        action="store_true",
        help="recompute every hash regardless of cache freshness",
    )
    hash_mode.add_argument(
        "--skip-hashes",
        action="store_true",
        help="resolve releases without downloading assets",
    )
    parser.add_argument("--cache-dir", type=Path, help="output directory for the cache files")
    parser.add_argument("--repositories", type=Path, help="additional repositories JSON file")
    parser.add_argument("--manifest-url", help="URL of the mod manifest")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    settings = load_settings(
        force_hash=args.force_hash,
        skip_hashes=args.skip_hashes,
        cache_dir=args.cache_dir,
        repositories_file=args.repositories,
        manifest_url=args.manifest_url,
    )
    store = JsonCacheStore(settings.cache_dir)

    logger.info("Starting MOD information collection...")
    try:
        outcome = asyncio.run(refresh_mod_cache(settings, store))
    except ManifestError as e:
        logger.error(f"Aborted: {e}")
        return 1
    except Exception:
        logger.exception("Error collecting MOD information")
        return 1

    log_summary(outcome.summary)
    write_step_summary(outcome.summary, cache_dir=settings.cache_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
