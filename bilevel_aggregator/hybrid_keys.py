"""
Hybrid Keys - group key copied, aggregation key owned once

Use this variant when the group key is a cheap value (an int, a date, a
short code) but the aggregation key is large. Group keys label buckets
directly; aggregation keys live once in a KeyArena and are referenced by
slot:

    agg arena:      kslot → aggregation key (shared across groups)
    primary store:  {(group, kslot): payload}
    group index:    {group: {kslot: None}}

    >>> from bilevel_aggregator.hybrid_keys import BilevelSet
    >>> s = BilevelSet()
    >>> s.update([(1, "2"), (2, "1"), (1, "2"), (2, "2")])
    3
    >>> list(s.group(2))
    ['1', '2']
"""

from __future__ import annotations
from typing import Any, Dict, Hashable, Iterator, Optional, Set, Tuple
import logging

from .arena import KeyArena
from .base import BilevelMapBase, BilevelSetBase, GroupView
from .keys import split_key

logger = logging.getLogger(__name__)

Handle = Tuple[Hashable, int]


class _HybridIndex:
    """Group index keyed by group value, holding aggregation key slots."""

    def __init__(self, capacity):
        self._agg_arena: KeyArena = KeyArena(capacity.agg_keys, name="agg")
        self._groups: Dict[Hashable, Dict[int, None]] = {}

    def _locate(self, group: Hashable, agg: Hashable) -> Optional[Handle]:
        kslot = self._agg_arena.find(agg)
        if kslot is None:
            return None
        return group, kslot

    def _index_add(self, group: Hashable, agg: Hashable) -> Handle:
        bucket = self._groups.get(group)
        if bucket is None:
            bucket = self._groups[group] = {}
            logger.debug("bucket created for group %r", group)
        kslot = self._agg_arena.intern(agg)
        bucket[kslot] = None
        return group, kslot

    def _index_discard(self, handle: Handle) -> None:
        group, kslot = handle
        bucket = self._groups[group]
        del bucket[kslot]
        self._agg_arena.release(kslot)
        if not bucket:
            del self._groups[group]
            logger.debug("bucket dropped for group %r", group)

    def _index_clear(self) -> None:
        self._groups.clear()
        self._agg_arena.clear()

    def _resolve(self, handle: Handle) -> Tuple[Hashable, Hashable]:
        group, kslot = handle
        return group, self._agg_arena[kslot]

    def groups(self) -> GroupView:
        return GroupView(tuple(self._groups))

    def has_group(self, group_key: Hashable) -> bool:
        return group_key in self._groups

    def group_size(self, group_key: Hashable) -> int:
        return len(self._groups.get(group_key, ()))

    def _index_members(self):
        agg_arena = self._agg_arena
        for group, bucket in self._groups.items():
            yield group, tuple(agg_arena[kslot] for kslot in bucket)

    @property
    def stats(self) -> Dict[str, Any]:
        stats = super().stats
        for name, value in self._agg_arena.stats.items():
            stats[f"agg_{name}"] = value
        return stats


class BilevelSet(_HybridIndex, BilevelSetBase):
    """
    Set of (group, agg) pairs with group keys stored by value and each
    distinct aggregation key stored once.
    """

    def __init__(self, capacity=None):
        BilevelSetBase.__init__(self, capacity)
        _HybridIndex.__init__(self, self.capacity)
        self._keys: Set[Handle] = set()

    def insert(self, full_key: Any) -> bool:
        group, agg = split_key(full_key)
        handle = self._locate(group, agg)
        if handle is not None and handle in self._keys:
            return False
        self._keys.add(self._index_add(group, agg))
        return True

    def contains(self, full_key: Any) -> bool:
        handle = self._locate(*split_key(full_key))
        return handle is not None and handle in self._keys

    def remove(self, full_key: Any) -> bool:
        handle = self._locate(*split_key(full_key))
        if handle is None or handle not in self._keys:
            return False
        self._keys.remove(handle)
        self._index_discard(handle)
        return True

    def group(self, group_key: Hashable) -> GroupView:
        bucket = self._groups.get(group_key)
        if not bucket:
            return GroupView()
        return GroupView(tuple(bucket), self._agg_arena.__getitem__)

    def clear(self) -> None:
        self._keys.clear()
        self._index_clear()
        logger.debug("set cleared")

    def __len__(self) -> int:
        return len(self._keys)

    def _primary_keys(self) -> Iterator[Tuple[Hashable, Hashable]]:
        return map(self._resolve, self._keys)


class BilevelMap(_HybridIndex, BilevelMapBase):
    """
    Map of (group, agg) pairs to payloads with group keys stored by value
    and each distinct aggregation key stored once.
    """

    def __init__(self, default_factory=None, capacity=None):
        BilevelMapBase.__init__(self, default_factory, capacity)
        _HybridIndex.__init__(self, self.capacity)
        self._entries: Dict[Handle, Any] = {}

    def insert(self, full_key: Any, payload: Any) -> Any:
        group, agg = split_key(full_key)
        handle = self._locate(group, agg)
        if handle is not None and handle in self._entries:
            previous = self._entries[handle]
            self._entries[handle] = payload
            return previous
        self._entries[self._index_add(group, agg)] = payload
        return None

    def contains(self, full_key: Any) -> bool:
        handle = self._locate(*split_key(full_key))
        return handle is not None and handle in self._entries

    def get(self, full_key: Any, default: Any = None) -> Any:
        handle = self._locate(*split_key(full_key))
        if handle is None:
            return default
        return self._entries.get(handle, default)

    def remove(self, full_key: Any, default: Any = None) -> Any:
        handle = self._locate(*split_key(full_key))
        if handle is None or handle not in self._entries:
            return default
        payload = self._entries.pop(handle)
        self._index_discard(handle)
        return payload

    def group(self, group_key: Hashable) -> GroupView:
        bucket = self._groups.get(group_key)
        if not bucket:
            return GroupView()
        agg_arena, entries = self._agg_arena, self._entries
        return GroupView(tuple(bucket), lambda kslot: (agg_arena[kslot], entries[(group_key, kslot)]))

    def clear(self) -> None:
        self._entries.clear()
        self._index_clear()
        logger.debug("map cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def _primary_keys(self) -> Iterator[Tuple[Hashable, Hashable]]:
        return map(self._resolve, self._entries)


__all__ = [
    'BilevelSet',
    'BilevelMap',
]
