"""
Bilevel Container Interface

Abstract contracts shared by the three ownership variants:

- BilevelSetBase: set of full keys, enumerable per group
- BilevelMapBase: full key → payload, enumerable per group

Each variant (copy_keys, owned_keys, hybrid_keys) keeps two views of the same
data in step:

    primary store:  full key (or its handles) → payload
    group index:    group label → ordered bucket of aggregation members

Everything that can be expressed through the abstract primitives lives here:
grouped iteration, bulk update, drain, pivot, mapping sugar and the invariant
checker. Variants implement only storage.

Ordering: groups are listed in bucket-creation order, members in bucket
insertion order (dicts used as ordered sets).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import (
    Any, Callable, Dict, Hashable, Iterable, Iterator, Optional, Tuple, Union,
)

import numpy as np

from .errors import InvariantError
from .keys import Capacity, FullKey

_MISSING = object()


# =============================================================================
# SECTION 1: Views and References
# =============================================================================

class GroupView(Sequence):
    """
    Restartable snapshot of a group (or of the group list).

    Holds the member handles present at call time and resolves them to keys
    (and payloads) lazily on access. Mutating the owning container while a
    view is still being consumed is unsupported.
    """

    __slots__ = ('_members', '_resolve')

    def __init__(self, members: Tuple[Any, ...] = (), resolve: Optional[Callable[[Any], Any]] = None):
        self._members = members
        self._resolve = resolve

    def __len__(self) -> int:
        return len(self._members)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return GroupView(self._members[index], self._resolve)
        member = self._members[index]
        return member if self._resolve is None else self._resolve(member)

    def __iter__(self) -> Iterator[Any]:
        if self._resolve is None:
            return iter(self._members)
        return map(self._resolve, self._members)

    def __repr__(self) -> str:
        return f"GroupView({list(self)!r})"


class PayloadRef:
    """
    Mutable handle on one stored payload.

    `ref.value` reads the payload, `ref.value = x` replaces it in place
    (the key keeps its identity). Both go through the owning container's
    full-key lookup, so a reference outliving its entry raises KeyError
    instead of touching whatever reuses the storage.
    """

    __slots__ = ('key', '_owner')

    def __init__(self, owner: 'BilevelMapBase', key: FullKey):
        self.key = key
        self._owner = owner

    @property
    def value(self) -> Any:
        payload = self._owner.get(self.key, _MISSING)
        if payload is _MISSING:
            raise KeyError(self.key)
        return payload

    @value.setter
    def value(self, payload: Any) -> None:
        if not self._owner.contains(self.key):
            raise KeyError(self.key)
        self._owner.insert(self.key, payload)

    def __repr__(self) -> str:
        return f"PayloadRef(key={self.key!r})"


# =============================================================================
# SECTION 2: Shared Base
# =============================================================================

class _BilevelBase(ABC):
    """Members common to sets and maps."""

    def __init__(self, capacity: Union[Capacity, int, None] = None):
        self.capacity = Capacity.coerce(capacity)

    @abstractmethod
    def contains(self, full_key: Any) -> bool:
        """Is the full key present?"""
        pass

    @abstractmethod
    def groups(self) -> GroupView:
        """All non-empty group keys, no duplicates."""
        pass

    @abstractmethod
    def has_group(self, group_key: Hashable) -> bool:
        """Is there at least one member under `group_key`?"""
        pass

    @abstractmethod
    def group_size(self, group_key: Hashable) -> int:
        """Number of members under `group_key` (0 if absent)."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry and every bucket."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    @abstractmethod
    def _primary_keys(self) -> Iterator[Tuple[Hashable, Hashable]]:
        """(group, agg) of every entry, read from the primary store."""
        pass

    @abstractmethod
    def _index_members(self) -> Iterator[Tuple[Hashable, Tuple[Hashable, ...]]]:
        """(group, aggs) of every bucket, read from the group index."""
        pass

    def __contains__(self, full_key: Any) -> bool:
        return self.contains(full_key)

    def is_empty(self) -> bool:
        return len(self) == 0

    def check_invariants(self) -> None:
        """
        Recompute I1-I4 from raw storage.

        I1: every indexed member belongs to the bucket's group
        I2: index and primary store hold the same full keys
        I3: no duplicate full keys
        I4: no empty buckets

        Raises:
            InvariantError: on the first violated invariant
        """
        primary = list(self._primary_keys())
        primary_set = set(primary)
        if len(primary_set) != len(primary):
            raise InvariantError("I3", f"{len(primary) - len(primary_set)} duplicate full keys in primary store")
        if len(primary) != len(self):
            raise InvariantError("I2", f"len() is {len(self)} but primary store holds {len(primary)}")

        indexed = []
        for group, members in self._index_members():
            if not members:
                raise InvariantError("I4", f"empty bucket kept for group {group!r}")
            indexed.extend((group, agg) for agg in members)
        indexed_set = set(indexed)
        if len(indexed_set) != len(indexed):
            raise InvariantError("I3", f"{len(indexed) - len(indexed_set)} duplicate members in group index")

        orphans = indexed_set - primary_set
        if orphans:
            raise InvariantError("I1", f"indexed members with no matching entry: {sorted(map(repr, orphans))[:5]}")
        missing = primary_set - indexed_set
        if missing:
            raise InvariantError("I2", f"entries unreachable through group index: {sorted(map(repr, missing))[:5]}")

    @property
    def stats(self) -> Dict[str, Any]:
        groups = self.groups()
        sizes = np.fromiter((self.group_size(g) for g in groups), dtype=np.int64, count=len(groups))
        return {
            'entries': len(self),
            'groups': len(groups),
            'largest_group': int(sizes.max()) if sizes.size else 0,
            'mean_group_size': float(sizes.mean()) if sizes.size else 0.0,
        }

    def __repr__(self) -> str:
        return f"{type(self).__module__.rsplit('.', 1)[-1]}.{type(self).__name__}(len={len(self)}, groups={len(self.groups())})"


# =============================================================================
# SECTION 3: BilevelSet Contract
# =============================================================================

class BilevelSetBase(_BilevelBase):
    """
    A collection of distinct (group, agg) pairs grouped by group.

    As pairs are found they are added if not already present. Iteration lists
    pairs group by group.
    """

    @classmethod
    def with_capacity(cls, capacity: Union[Capacity, int]) -> 'BilevelSetBase':
        """Empty set pre-sized for `capacity` (a Capacity or an entry count)."""
        return cls(capacity=capacity)

    @abstractmethod
    def insert(self, full_key: Any) -> bool:
        """
        Add a full key.

        Returns:
            True if the set changed, False if the key was already present
        """
        pass

    @abstractmethod
    def remove(self, full_key: Any) -> bool:
        """
        Remove a full key, dropping its bucket if it becomes empty.

        Returns:
            True if the key was present
        """
        pass

    @abstractmethod
    def group(self, group_key: Hashable) -> GroupView:
        """Aggregation keys under `group_key` (empty view if absent)."""
        pass

    def __iter__(self) -> Iterator[FullKey]:
        for group in self.groups():
            for agg in self.group(group):
                yield FullKey(group, agg)

    def update(self, full_keys: Iterable[Any]) -> int:
        """Insert many full keys; return how many were new."""
        return sum(1 for full_key in full_keys if self.insert(full_key))

    def drain(self) -> Iterator[FullKey]:
        """List every full key grouped by group, leaving the set empty."""
        keys = list(self)
        self.clear()
        return iter(keys)

    def pivot(self) -> 'BilevelSetBase':
        """
        Copy into a new set of the same variant grouped by aggregation key.

        The aggregation keys become group keys, so they must satisfy this
        variant's requirements for group keys.
        """
        groups = self.groups()
        distinct_aggs = {agg for g in groups for agg in self.group(g)}
        pivoted = type(self)(capacity=Capacity(groups=len(distinct_aggs), agg_keys=len(groups)))
        for group, agg in self:
            pivoted.insert((agg, group))
        return pivoted


# =============================================================================
# SECTION 4: BilevelMap Contract
# =============================================================================

class BilevelMapBase(_BilevelBase):
    """
    A collection of distinct (group, agg) pairs grouped by group, with an
    opaque payload per pair.

    default_factory: Payload constructor used by add_or_get()
    """

    def __init__(
        self,
        default_factory: Optional[Callable[[], Any]] = None,
        capacity: Union[Capacity, int, None] = None,
    ):
        super().__init__(capacity)
        self.default_factory = default_factory

    @classmethod
    def with_capacity(
        cls,
        capacity: Union[Capacity, int],
        default_factory: Optional[Callable[[], Any]] = None,
    ) -> 'BilevelMapBase':
        """Empty map pre-sized for `capacity` (a Capacity or an entry count)."""
        return cls(default_factory=default_factory, capacity=capacity)

    @abstractmethod
    def insert(self, full_key: Any, payload: Any) -> Any:
        """
        Insert or replace the payload for a full key.

        Returns:
            Previous payload if the key existed, else None
        """
        pass

    @abstractmethod
    def get(self, full_key: Any, default: Any = None) -> Any:
        """Payload for a full key, or `default`."""
        pass

    @abstractmethod
    def remove(self, full_key: Any, default: Any = None) -> Any:
        """Remove a full key and return its payload (or `default`)."""
        pass

    @abstractmethod
    def group(self, group_key: Hashable) -> GroupView:
        """(agg, payload) pairs under `group_key` (empty view if absent)."""
        pass

    def get_mut(self, full_key: Any) -> Optional[PayloadRef]:
        """Mutable reference to a payload, or None if absent."""
        if not self.contains(full_key):
            return None
        return PayloadRef(self, FullKey.of(full_key))

    def add_or_get(self, full_key: Any) -> PayloadRef:
        """
        Mutable reference to a payload, inserting `default_factory()` first
        if the key is absent.

            counts = BilevelMap(int)
            counts.add_or_get(("fr", "paris")).value += 1

        Raises:
            KeyError: key absent and no default_factory set
        """
        ref = self.get_mut(full_key)
        if ref is None:
            if self.default_factory is None:
                raise KeyError(full_key)
            self.insert(full_key, self.default_factory())
            ref = self.get_mut(full_key)
        return ref

    def items(self) -> Iterator[Tuple[FullKey, Any]]:
        """(FullKey, payload) for every entry, grouped by group."""
        for group in self.groups():
            for agg, payload in self.group(group):
                yield FullKey(group, agg), payload

    def keys(self) -> Iterator[FullKey]:
        for full_key, _ in self.items():
            yield full_key

    def values(self) -> Iterator[Any]:
        for _, payload in self.items():
            yield payload

    def __iter__(self) -> Iterator[FullKey]:
        return self.keys()

    def __getitem__(self, full_key: Any) -> Any:
        payload = self.get(full_key, _MISSING)
        if payload is _MISSING:
            raise KeyError(full_key)
        return payload

    def __setitem__(self, full_key: Any, payload: Any) -> None:
        self.insert(full_key, payload)

    def __delitem__(self, full_key: Any) -> None:
        if self.remove(full_key, _MISSING) is _MISSING:
            raise KeyError(full_key)

    def update(self, pairs: Iterable[Tuple[Any, Any]]) -> int:
        """Insert or replace many (full_key, payload) pairs; return how many were new."""
        added = 0
        for full_key, payload in pairs:
            if not self.contains(full_key):
                added += 1
            self.insert(full_key, payload)
        return added

    def drain(self) -> Iterator[Tuple[FullKey, Any]]:
        """List every (FullKey, payload) grouped by group, leaving the map empty."""
        entries = list(self.items())
        self.clear()
        return iter(entries)


__all__ = [
    'GroupView',
    'PayloadRef',
    'BilevelSetBase',
    'BilevelMapBase',
]
