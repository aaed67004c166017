"""
Owned Keys - neither the group key nor the aggregation key is copied

Use this variant when both key parts are large or expensive values (long
strings, tuples of many fields, objects). Each distinct key is stored once,
in a KeyArena, and everything else refers to it by slot:

    group arena:    gslot → group key
    agg arena:      kslot → aggregation key (shared by every group using it)
    primary store:  {(gslot, kslot): payload}
    group index:    {gslot: {kslot: None}}

Removal tombstones arena slots whose last reference goes away; slots of
other keys never move.

    >>> from bilevel_aggregator.owned_keys import BilevelMap
    >>> m = BilevelMap(int)
    >>> m.add_or_get(("north", "widgets")).value += 3
    >>> list(m.group("north"))
    [('widgets', 3)]
"""

from __future__ import annotations
from typing import Any, Dict, Hashable, Iterator, Optional, Set, Tuple
import logging

from .arena import KeyArena
from .base import BilevelMapBase, BilevelSetBase, GroupView
from .keys import split_key

logger = logging.getLogger(__name__)

Handle = Tuple[int, int]


class _OwnedIndex:
    """Group index of slot handles over two key arenas."""

    def __init__(self, capacity):
        self._group_arena: KeyArena = KeyArena(capacity.groups, name="group")
        self._agg_arena: KeyArena = KeyArena(capacity.agg_keys, name="agg")
        self._groups: Dict[int, Dict[int, None]] = {}

    def _locate(self, group: Hashable, agg: Hashable) -> Optional[Handle]:
        """Handle the pair would have, if both keys are interned."""
        gslot = self._group_arena.find(group)
        if gslot is None:
            return None
        kslot = self._agg_arena.find(agg)
        if kslot is None:
            return None
        return gslot, kslot

    def _index_add(self, group: Hashable, agg: Hashable) -> Handle:
        # agg first: an unhashable agg must fail before any bucket exists
        kslot = self._agg_arena.intern(agg)
        gslot = self._group_arena.find(group)
        if gslot is None:
            gslot = self._group_arena.intern(group)
            self._groups[gslot] = {}
            logger.debug("bucket created for group %r at slot %d", group, gslot)
        self._groups[gslot][kslot] = None
        return gslot, kslot

    def _index_discard(self, handle: Handle) -> None:
        gslot, kslot = handle
        bucket = self._groups[gslot]
        del bucket[kslot]
        self._agg_arena.release(kslot)
        if not bucket:
            del self._groups[gslot]
            self._group_arena.release(gslot)
            logger.debug("bucket dropped for group slot %d", gslot)

    def _index_clear(self) -> None:
        self._groups.clear()
        self._group_arena.clear()
        self._agg_arena.clear()

    def _resolve(self, handle: Handle) -> Tuple[Hashable, Hashable]:
        gslot, kslot = handle
        return self._group_arena[gslot], self._agg_arena[kslot]

    def _bucket(self, group_key: Hashable) -> Tuple[Optional[int], Dict[int, None]]:
        gslot = self._group_arena.find(group_key)
        if gslot is None:
            return None, {}
        return gslot, self._groups[gslot]

    def groups(self) -> GroupView:
        return GroupView(tuple(self._groups), self._group_arena.__getitem__)

    def has_group(self, group_key: Hashable) -> bool:
        return group_key in self._group_arena

    def group_size(self, group_key: Hashable) -> int:
        return len(self._bucket(group_key)[1])

    def _index_members(self):
        agg_arena = self._agg_arena
        for gslot, bucket in self._groups.items():
            yield self._group_arena[gslot], tuple(agg_arena[kslot] for kslot in bucket)

    @property
    def stats(self) -> Dict[str, Any]:
        stats = super().stats
        for prefix, arena in (("group", self._group_arena), ("agg", self._agg_arena)):
            for name, value in arena.stats.items():
                stats[f"{prefix}_{name}"] = value
        return stats


class BilevelSet(_OwnedIndex, BilevelSetBase):
    """
    Set of (group, agg) pairs where each distinct key part is stored once.
    """

    def __init__(self, capacity=None):
        BilevelSetBase.__init__(self, capacity)
        _OwnedIndex.__init__(self, self.capacity)
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
        _, bucket = self._bucket(group_key)
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


class BilevelMap(_OwnedIndex, BilevelMapBase):
    """
    Map of (group, agg) pairs to payloads where each distinct key part is
    stored once.
    """

    def __init__(self, default_factory=None, capacity=None):
        BilevelMapBase.__init__(self, default_factory, capacity)
        _OwnedIndex.__init__(self, self.capacity)
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
        gslot, bucket = self._bucket(group_key)
        if not bucket:
            return GroupView()
        agg_arena, entries = self._agg_arena, self._entries
        return GroupView(tuple(bucket), lambda kslot: (agg_arena[kslot], entries[(gslot, kslot)]))

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
