"""
File Cache — SHA-256 hash-based incremental caching.

Caches parsed syntax trees per file, keyed by path and content hash.
Unchanged files skip re-parsing entirely.
"""

from __future__ import annotations

import hashlib
import logging
import time
from dataclasses import dataclass, field

from voidguard.config import settings
from voidguard.core.syntax import SyntaxTree

logger = logging.getLogger("voidguard.cache")


@dataclass
class CacheEntry:
    """A cached parse result for a single file."""

    content_hash: str
    syntax_tree: SyntaxTree
    timestamp: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        return (time.time() - self.timestamp) > settings.cache_ttl_seconds


class FileCache:
    """
    In-memory file-level cache keyed by SHA-256 of file content.

    Upgradeable to Redis/SQLite by swapping the storage backend.
    """

    def __init__(self) -> None:
        self._store: dict[str, CacheEntry] = {}

    @staticmethod
    def hash_content(content: str) -> str:
        """Compute SHA-256 hash of file content."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    def get(self, file_path: str, content: str) -> CacheEntry | None:
        """
        Look up cached result for a file.

        Returns None if not cached, expired, or content has changed.
        """
        content_hash = self.hash_content(content)
        key = f"{file_path}:{content_hash}"
        entry = self._store.get(key)

        if entry is None:
            return None

        if entry.is_expired:
            del self._store[key]
            return None

        return entry

    def put(self, file_path: str, content: str, syntax_tree: SyntaxTree) -> None:
        """Cache the parsed tree for a file. Expired entries are evicted first."""
        self.evict_expired()
        content_hash = self.hash_content(content)
        key = f"{file_path}:{content_hash}"
        self._store[key] = CacheEntry(content_hash=content_hash, syntax_tree=syntax_tree)

    def evict_expired(self) -> int:
        """Drop every expired entry. Returns count removed."""
        expired = [k for k, e in self._store.items() if e.is_expired]
        for key in expired:
            del self._store[key]
        if expired:
            logger.debug("Evicted %d expired cache entries", len(expired))
        return len(expired)

    def invalidate(self, file_path: str) -> int:
        """Remove all cached entries for a file path. Returns count removed."""
        keys_to_remove = [k for k in self._store if k.startswith(f"{file_path}:")]
        for key in keys_to_remove:
            del self._store[key]
        return len(keys_to_remove)

    @property
    def size(self) -> int:
        """Number of cached entries."""
        return len(self._store)

