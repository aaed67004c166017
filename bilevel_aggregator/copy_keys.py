"""
Copy Keys - both the group key and the aggregation key are cheap values

Use this variant when both key parts are small immutable values (ints,
short strings, tuples of those). Each view stores the key values directly:

    primary store:  {(group, agg): payload}
    group index:    {group: {agg: None}}

    >>> from bilevel_aggregator.copy_keys import BilevelSet
    >>> s = BilevelSet()
    >>> s.update([(1, 2), (2, 1), (1, 2)])
    2
    >>> list(s)
    [FullKey(group=1, agg=2), FullKey(group=2, agg=1)]
"""

from __future__ import annotations
from typing import Any, Dict, Hashable, Iterator, Tuple
import logging

from .base import BilevelMapBase, BilevelSetBase, GroupView
from .keys import split_key

logger = logging.getLogger(__name__)


class _CopyIndex:
    """Group index holding aggregation key values per group."""

    def __init__(self):
        self._groups: Dict[Hashable, Dict[Hashable, None]] = {}

    def _index_add(self, group: Hashable, agg: Hashable) -> None:
        bucket = self._groups.get(group)
        if bucket is None:
            bucket = self._groups[group] = {}
            logger.debug("bucket created for group %r", group)
        bucket[agg] = None

    def _index_discard(self, group: Hashable, agg: Hashable) -> None:
        bucket = self._groups[group]
        del bucket[agg]
        if not bucket:
            del self._groups[group]
            logger.debug("bucket dropped for group %r", group)

    def groups(self) -> GroupView:
        return GroupView(tuple(self._groups))

    def has_group(self, group_key: Hashable) -> bool:
        return group_key in self._groups

    def group_size(self, group_key: Hashable) -> int:
        return len(self._groups.get(group_key, ()))

    def _index_members(self):
        for group, bucket in self._groups.items():
            yield group, tuple(bucket)


class BilevelSet(_CopyIndex, BilevelSetBase):
    """
    Set of (group, agg) pairs where both parts are stored by value.
    """

    def __init__(self, capacity=None):
        BilevelSetBase.__init__(self, capacity)
        _CopyIndex.__init__(self)
        self._keys: Dict[Tuple[Hashable, Hashable], None] = {}

    def insert(self, full_key: Any) -> bool:
        key = split_key(full_key)
        if key in self._keys:
            return False
        self._keys[key] = None
        self._index_add(*key)
        return True

    def contains(self, full_key: Any) -> bool:
        return split_key(full_key) in self._keys

    def remove(self, full_key: Any) -> bool:
        key = split_key(full_key)
        if key not in self._keys:
            return False
        del self._keys[key]
        self._index_discard(*key)
        return True

    def group(self, group_key: Hashable) -> GroupView:
        bucket = self._groups.get(group_key)
        return GroupView(tuple(bucket)) if bucket else GroupView()

    def clear(self) -> None:
        self._keys.clear()
        self._groups.clear()
        logger.debug("set cleared")

    def __len__(self) -> int:
        return len(self._keys)

    def _primary_keys(self) -> Iterator[Tuple[Hashable, Hashable]]:
        return iter(self._keys)


class BilevelMap(_CopyIndex, BilevelMapBase):
    """
    Map of (group, agg) pairs to payloads where both key parts are stored
    by value.

        >>> counts = BilevelMap(int)
        >>> counts.add_or_get((1, 2)).value += 1
        >>> counts.add_or_get((1, 2)).value += 1
        >>> counts.get((1, 2))
        2
    """

    def __init__(self, default_factory=None, capacity=None):
        BilevelMapBase.__init__(self, default_factory, capacity)
        _CopyIndex.__init__(self)
        self._entries: Dict[Tuple[Hashable, Hashable], Any] = {}

    def insert(self, full_key: Any, payload: Any) -> Any:
        key = split_key(full_key)
        previous = self._entries.get(key)
        if key not in self._entries:
            self._index_add(*key)
        self._entries[key] = payload
        return previous

    def contains(self, full_key: Any) -> bool:
        return split_key(full_key) in self._entries

    def get(self, full_key: Any, default: Any = None) -> Any:
        return self._entries.get(split_key(full_key), default)

    def remove(self, full_key: Any, default: Any = None) -> Any:
        key = split_key(full_key)
        if key not in self._entries:
            return default
        self._index_discard(*key)
        return self._entries.pop(key)

    def group(self, group_key: Hashable) -> GroupView:
        bucket = self._groups.get(group_key)
        if not bucket:
            return GroupView()
        entries = self._entries
        return GroupView(tuple(bucket), lambda agg: (agg, entries[(group_key, agg)]))

    def clear(self) -> None:
        self._entries.clear()
        self._groups.clear()
        logger.debug("map cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def _primary_keys(self) -> Iterator[Tuple[Hashable, Hashable]]:
        return iter(self._entries)


__all__ = [
    'BilevelSet',
    'BilevelMap',
]
