"""
Key Arena - Single-owner storage for non-copyable keys

The arena keeps exactly one stored instance of every distinct key and hands
out integer slots. Indexes store slots, never the key itself.

Slot lifecycle:
    intern(key)   → existing slot (refcount += 1) or a new slot (refcount = 1)
    release(slot) → refcount -= 1; at 0 the slot is tombstoned and freed
    intern(other) → reuses the most recently freed slot

Tombstoning keeps every other slot valid: removing one key never renumbers
another. Reference counts live in a numpy array so that liveness queries
(`live_slots`, `stats`) are vectorised.
"""

from __future__ import annotations
from typing import Any, Dict, Generic, Hashable, List, Optional, TypeVar
import logging

import numpy as np

from .constants import ARENA_GROWTH_FACTOR, DEFAULT_ARENA_CAPACITY, REFCOUNT_DTYPE

logger = logging.getLogger(__name__)

K = TypeVar('K', bound=Hashable)

# Marks a dead slot in the key list. Liveness is decided by the refcount,
# so a stored None key is still a valid key.
_TOMBSTONE = object()


class KeyArena(Generic[K]):
    """
    Interning arena with reference-counted, reusable slots.

    Attributes:
        name: Label used in log messages ('group', 'agg', ...)
    """

    def __init__(self, capacity: int = DEFAULT_ARENA_CAPACITY, name: str = "keys"):
        self.name = name
        self._keys: List[Any] = []
        self._slots: Dict[K, int] = {}
        self._free: List[int] = []
        self._refcounts: np.ndarray = np.zeros(max(capacity, 1), dtype=REFCOUNT_DTYPE)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find(self, key: K) -> Optional[int]:
        """Slot of `key`, or None if it is not interned."""
        return self._slots.get(key)

    def __getitem__(self, slot: int) -> K:
        if not 0 <= slot < len(self._keys) or self._refcounts[slot] <= 0:
            raise KeyError(slot)
        return self._keys[slot]

    def __contains__(self, key: K) -> bool:
        return key in self._slots

    def __len__(self) -> int:
        return len(self._slots)

    def refcount(self, slot: int) -> int:
        """Number of live references held on `slot` (0 for dead slots)."""
        if not 0 <= slot < len(self._keys):
            return 0
        return int(self._refcounts[slot])

    def live_slots(self) -> np.ndarray:
        """Indices of all live slots."""
        return np.flatnonzero(self._refcounts[:len(self._keys)] > 0)

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def intern(self, key: K) -> int:
        """
        Return the slot for `key`, storing it if new.

        Every call takes one reference; pair it with one release().
        """
        slot = self._slots.get(key)
        if slot is None:
            slot = self._allocate(key)
        self._refcounts[slot] += 1
        return slot

    def retain(self, slot: int) -> None:
        """Take an extra reference on a live slot."""
        if self.refcount(slot) <= 0:
            raise KeyError(slot)
        self._refcounts[slot] += 1

    def release(self, slot: int) -> bool:
        """
        Drop one reference on `slot`.

        Returns:
            True if this was the last reference and the slot was freed
        """
        if self.refcount(slot) <= 0:
            raise KeyError(slot)
        self._refcounts[slot] -= 1
        if self._refcounts[slot] > 0:
            return False
        key = self._keys[slot]
        del self._slots[key]
        self._keys[slot] = _TOMBSTONE
        self._free.append(slot)
        return True

    def clear(self) -> None:
        """Drop every key; slot array keeps its allocated size."""
        self._keys.clear()
        self._slots.clear()
        self._free.clear()
        self._refcounts[:] = 0

    def _allocate(self, key: K) -> int:
        if self._free:
            slot = self._free.pop()
            self._keys[slot] = key
        else:
            slot = len(self._keys)
            if slot >= len(self._refcounts):
                self._grow()
            self._keys.append(key)
        self._slots[key] = slot
        return slot

    def _grow(self) -> None:
        old = self._refcounts
        grown = np.zeros(len(old) * ARENA_GROWTH_FACTOR, dtype=REFCOUNT_DTYPE)
        grown[:len(old)] = old
        self._refcounts = grown
        logger.debug("%s arena grown %d -> %d slots", self.name, len(old), len(grown))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def stats(self) -> Dict[str, int]:
        used = self._refcounts[:len(self._keys)]
        return {
            'slots': len(self._keys),
            'live': int(np.count_nonzero(used > 0)),
            'free': len(self._free),
            'allocated': len(self._refcounts),
            'references': int(used.sum()),
        }

    def __repr__(self) -> str:
        return f"KeyArena(name={self.name!r}, live={len(self)}, slots={len(self._keys)})"


__all__ = [
    'KeyArena',
]
