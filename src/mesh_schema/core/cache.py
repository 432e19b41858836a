"""Validation context and validator cache."""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Literal


logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class ValidationContext:
    """Explicit per-call validation settings.

    Passed through every recursive call instead of living in global state.
    """
    max_depth: int = DEFAULT_MAX_DEPTH
    # "search" matches anywhere in the string, "fullmatch" anchors both ends
    pattern_mode: Literal["search", "fullmatch"] = "search"

    def __post_init__(self):
        if self.max_depth < 1:
            raise ValueError(f"max_depth must be positive, got {self.max_depth}")
        if self.pattern_mode not in ("search", "fullmatch"):
            raise ValueError(f"Unknown pattern_mode '{self.pattern_mode}'")


DEFAULT_VALIDATION_CONTEXT = ValidationContext()


class ValidatorCache:
    """Write-once, read-many cache of compiled validators keyed by message name.

    Readers never take the write lock; a writer publishes a new dict snapshot,
    so a reader sees either the old or the new mapping and never a partial
    update. Hit/miss counters are guarded by their own lock.
    """

    def __init__(self):
        self._entries: dict[str, Callable] = {}
        self._write_lock = threading.Lock()
        self._stats_lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Callable | None:
        entry = self._entries.get(key)
        with self._stats_lock:
            if entry is None:
                self.misses += 1
            else:
                self.hits += 1
        return entry

    def setdefault(self, key: str, entry: Callable) -> Callable:
        """Store ``entry`` unless the key is already set; return the stored entry"""
        with self._write_lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing
            snapshot = dict(self._entries)
            snapshot[key] = entry
            self._entries = snapshot
            logger.debug("cached validator for %r (%d entries)", key, len(snapshot))
            return entry

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        with self._write_lock:
            self._entries = {}
        with self._stats_lock:
            self.hits = 0
            self.misses = 0

    def stats(self) -> dict:
        with self._stats_lock:
            hits, misses = self.hits, self.misses
        total = hits + misses
        return {
            "entries": len(self._entries),
            "hits": hits,
            "misses": misses,
            "hit_rate": hits / total if total else 0.0,
        }
