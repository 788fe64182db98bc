"""
Merge the remote manifest and the local repository list into mod descriptors.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List

from modcache.domain.github_utils import parse_github_url
from modcache.domain.models import AdditionalRepository, AuthorGroup, ModDescriptor

logger = logging.getLogger(__name__)


def load_additional_repositories(path: Path) -> List[AdditionalRepository]:
    """
    Load enabled entries from the local repositories file.

    A missing or malformed file contributes nothing; it never fails the run.
    """
    if not path.exists():
        logger.warning(f"No additional repositories config found at {path}")
        return []

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        raw_repos = data["repositories"]
        if not isinstance(raw_repos, list):
            raise TypeError("'repositories' is not a list")
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Error reading additional repositories config {path}: {e}")
        return []

    repositories: List[AdditionalRepository] = []
    for i, raw in enumerate(raw_repos):
        try:
            repo = AdditionalRepository(**raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping invalid additional repository #{i}: {e}")
            continue
        if not repo.enabled:
            logger.debug(f"Additional repository {repo.name or repo.location} is disabled")
            continue
        repositories.append(repo)

    logger.info(f"Loaded {len(repositories)} additional repositories from {path}")
    return repositories


def descriptors_from_manifest(groups: List[AuthorGroup]) -> List[ModDescriptor]:
    descriptors = []
    for group in groups:
        for entry in group.entries:
            descriptors.append(
                ModDescriptor(
                    name=entry.name,
                    description=entry.description,
                    category=entry.category,
                    source_location=entry.source_location,
                    author=group.display_name,
                    tags=entry.tags,
                    flags=entry.flags,
                    source="manifest",
                )
            )
    return descriptors


def descriptor_from_repository(repo: AdditionalRepository) -> ModDescriptor:
    ref = parse_github_url(repo.location)
    if ref is None:
        logger.warning(f"Invalid GitHub URL for additional repository: {repo.location}")
    default_name = ref.full_name if ref else (repo.location or "unknown")
    return ModDescriptor(
        name=repo.name or default_name,
        description=repo.description,
        category=repo.category or "Other",
        source_location=repo.location,
        author=repo.author or (ref.owner if ref else None),
        tags=repo.tags,
        flags=repo.flags,
        source="additional",
    )


def collect_descriptors(
    groups: List[AuthorGroup],
    additional: List[AdditionalRepository],
) -> List[ModDescriptor]:
    """Manifest entries first (document order), then additional repositories."""
    descriptors = descriptors_from_manifest(groups)
    descriptors.extend(descriptor_from_repository(repo) for repo in additional)
    return descriptors
