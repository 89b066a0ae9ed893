"""In-memory lookup caches shared by the resolver and distance engine."""
import logging
from typing import Any, Dict, Hashable, Optional

logger = logging.getLogger(__name__)


class MemoryCache:
    """Process-lifetime key/value cache with no eviction."""

    def __init__(self, name: str = 'cache', seed: Optional[Dict[Hashable, Any]] = None):
        """
        Initialize the cache.

        Args:
            name: Label used in log messages
            seed: Optional pre-loaded entries (useful for tests)
        """
        self.name = name
        self._entries: Dict[Hashable, Any] = dict(seed or {})

    def get(self, key: Hashable) -> Any:
        """Return the cached value for key, or None on a miss."""
        value = self._entries.get(key)
        if value is not None:
            logger.debug(f"{self.name} hit: {key!r}")
        return value

    def set(self, key: Hashable, value: Any) -> None:
        """Store value under key. Writes for the same key are idempotent."""
        self._entries[key] = value

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
