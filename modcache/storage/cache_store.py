from abc import ABC, abstractmethod
from typing import List

from modcache.domain.models import HashIndex, Mod


class CacheStore(ABC):
    """
    Abstract base class for the mod cache storage.
    """

    @abstractmethod
    async def load_mods(self) -> List[Mod]:
        """Load the prior cache snapshot. An absent cache is an empty list."""
        pass

    @abstractmethod
    async def save_mods(self, mods: List[Mod]) -> None:
        """Replace the persisted mod list."""
        pass

    @abstractmethod
    async def save_hash_index(self, index: HashIndex) -> None:
        """Replace the persisted hash lookup table."""
        pass
