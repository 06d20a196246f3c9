"""Time-bounded summary cache keyed by article URL."""

import json
import time
from pathlib import Path
from typing import Callable, Dict, Optional

from .models import CacheEntry
from .logger import get_logger


FRESHNESS_WINDOW_SECONDS = 3600  # 1 hour


class SummaryCache:
    """Maps article URLs to summaries, expiring entries after one hour.

    The whole cache is loaded once at construction and the full snapshot is
    written back on every insert. Writes are last-writer-wins.
    """

    def __init__(
        self,
        cache_file: Optional[Path] = None,
        clock: Callable[[], float] = time.time,
        freshness_seconds: float = FRESHNESS_WINDOW_SECONDS
    ):
        """
        Initialize summary cache.

        Args:
            cache_file: JSON file holding the persisted snapshot (None keeps it in memory)
            clock: Callable returning the current Unix time in seconds
            freshness_seconds: Age after which an entry is treated as absent
        """
        self.cache_file = cache_file
        self.clock = clock
        self.freshness_seconds = freshness_seconds
        self.entries: Dict[str, CacheEntry] = {}
        self.logger = get_logger()

        self.load()

    def load(self) -> Dict[str, CacheEntry]:
        """
        Load the persisted snapshot.

        Returns:
            Dictionary mapping URLs to cache entries
        """
        if self.cache_file is None:
            return self.entries

        if not self.cache_file.exists():
            self.logger.info(f"Cache file not found, starting fresh: {self.cache_file}")
            return self.entries

        try:
            with open(self.cache_file, 'r', encoding='utf-8') as f:
                data = json.load(f)

            self.entries = {
                url: CacheEntry.from_dict(entry)
                for url, entry in data.items()
            }
            self.logger.info(f"Loaded {len(self.entries)} cached summaries")

        except Exception as e:
            self.logger.error(f"Failed to load cache file {self.cache_file}: {e}")
            self.entries = {}

        return self.entries

    def save(self) -> None:
        """Write the full cache snapshot to disk."""
        if self.cache_file is None:
            return

        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)

            data = {
                url: entry.to_dict()
                for url, entry in self.entries.items()
            }

            with open(self.cache_file, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

            self.logger.debug(f"Saved {len(self.entries)} cached summaries")

        except Exception as e:
            self.logger.error(f"Failed to save cache file {self.cache_file}: {e}")

    def get(self, key: str) -> Optional[str]:
        """
        Look up a fresh summary.

        Args:
            key: Article URL

        Returns:
            Cached summary, or None when absent or stale
        """
        entry = self.entries.get(key)
        if entry is None:
            return None

        if not entry.is_fresh(self.clock(), self.freshness_seconds):
            self.logger.debug(f"Cache entry expired for {key}")
            del self.entries[key]
            return None

        return entry.value

    def put(self, key: str, value: str) -> None:
        """
        Store a summary with the current timestamp and persist the snapshot.

        Args:
            key: Article URL
            value: Summary text
        """
        now = self.clock()
        self.entries[key] = CacheEntry(value=value, stored_at=now)
        self._purge_stale(now)
        self.save()

    def _purge_stale(self, now: float) -> None:
        stale = [
            url for url, entry in self.entries.items()
            if not entry.is_fresh(now, self.freshness_seconds)
        ]
        for url in stale:
            del self.entries[url]

        if stale:
            self.logger.debug(f"Purged {len(stale)} stale cache entries")

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
