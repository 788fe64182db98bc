import logging
import os
from pathlib import Path
from typing import Any, Optional

from modcache.domain.models import DEFAULT_MANIFEST_URL, RefreshSettings

logger = logging.getLogger(__name__)

DATA_ROOT_ENV_VAR = "MODCACHE_DATA_DIR"
MANIFEST_URL_ENV_VAR = "MODCACHE_MANIFEST_URL"
REPOSITORIES_FILE_ENV_VAR = "MODCACHE_REPOSITORIES_FILE"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"


def get_data_dir() -> Path:
    """Root for repositories.json and cache/. Defaults to the working directory."""
    env_path = os.environ.get(DATA_ROOT_ENV_VAR)
    d = Path(env_path).expanduser() if env_path else Path.cwd()
    d.mkdir(parents=True, exist_ok=True)
    return d


def load_settings(**overrides: Any) -> RefreshSettings:
    """
    Build run settings from the environment.

    Keyword arguments (typically CLI flags) win over environment values;
    None values are ignored so unset flags fall through.
    """
    data_dir = get_data_dir()
    repositories_file: Optional[str] = os.environ.get(REPOSITORIES_FILE_ENV_VAR)

    values = {
        "manifest_url": os.environ.get(MANIFEST_URL_ENV_VAR) or DEFAULT_MANIFEST_URL,
        "repositories_file": Path(repositories_file) if repositories_file else data_dir / "repositories.json",
        "cache_dir": data_dir / "cache",
        "github_token": os.environ.get(GITHUB_TOKEN_ENV_VAR) or None,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    settings = RefreshSettings(**values)
    if not settings.github_token:
        logger.warning(
            f"{GITHUB_TOKEN_ENV_VAR} is not set; GitHub API requests are unauthenticated "
            "and limited to 60 per hour"
        )
    return settings
