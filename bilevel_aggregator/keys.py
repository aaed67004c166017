"""
Key Composition - Full Key = (Group Key, Aggregation Key)

A full key uniquely identifies one row of aggregated data. It is always
handled as two separate parts:

- group key: the part rows are clustered by
- aggregation key: the remainder, unique within its group

Either part may be a scalar or a tuple of fields. Containers never store the
concatenated form; they split on entry and rebuild FullKey on the way out.

Composite keys of fixed arity (e.g. rows of strings) are described by a
KeyLayout, which splits a flat field tuple into the two parts:

    layout = KeyLayout(group_fields=2, agg_fields=1)
    key = layout.split(("2024", "EU", "widget"))
    # FullKey(group=('2024', 'EU'), agg=('widget',))
"""

from __future__ import annotations
from typing import Any, Hashable, NamedTuple, Sequence, Tuple, Union
from dataclasses import dataclass

from .constants import DEFAULT_ARENA_CAPACITY


# =============================================================================
# SECTION 1: Full Key
# =============================================================================

class FullKey(NamedTuple):
    """
    Logical (group, agg) pair.

    group: Group key (hashable)
    agg: Aggregation key (hashable), unique within group
    """
    group: Hashable
    agg: Hashable

    @classmethod
    def of(cls, full_key: Sequence[Any]) -> 'FullKey':
        """Normalise any 2-item sequence to a FullKey."""
        if isinstance(full_key, cls):
            return full_key
        group, agg = full_key
        return cls(group, agg)


def split_key(full_key: Sequence[Any]) -> Tuple[Hashable, Hashable]:
    """
    Split a full key into (group key, aggregation key).

    Accepts a FullKey or any sequence of exactly two items. Anything else
    fails with Python's own unpacking ValueError.
    """
    group, agg = full_key
    return group, agg


# =============================================================================
# SECTION 2: Composite Key Layout
# =============================================================================

@dataclass(frozen=True)
class KeyLayout:
    """
    Fixed-arity composite key description.

    The first `group_fields` fields of a row form the group key, the
    following `agg_fields` fields form the aggregation key. Both parts are
    returned as tuples, even when they have a single field.
    """
    group_fields: int = 1
    agg_fields: int = 1

    def __post_init__(self):
        """Validate layout."""
        if not isinstance(self.group_fields, int) or self.group_fields < 1:
            raise ValueError(f"group_fields must be an int >= 1, got {self.group_fields!r}")
        if not isinstance(self.agg_fields, int) or self.agg_fields < 1:
            raise ValueError(f"agg_fields must be an int >= 1, got {self.agg_fields!r}")

    @property
    def width(self) -> int:
        """Total number of fields in a full row key."""
        return self.group_fields + self.agg_fields

    def _check(self, fields: Sequence[Any]) -> None:
        if len(fields) != self.width:
            raise ValueError(
                f"Expected {self.width} key fields "
                f"({self.group_fields} group + {self.agg_fields} agg), got {len(fields)}"
            )

    def split(self, fields: Sequence[Any]) -> FullKey:
        """Split a flat field sequence into a FullKey of two tuples."""
        self._check(fields)
        fields = tuple(fields)
        return FullKey(fields[:self.group_fields], fields[self.group_fields:])

    def group_of(self, fields: Sequence[Any]) -> Tuple[Any, ...]:
        """Group key tuple of a flat field sequence."""
        self._check(fields)
        return tuple(fields[:self.group_fields])

    def join(self, full_key: Sequence[Any]) -> Tuple[Any, ...]:
        """Rebuild the flat field tuple from a FullKey of two tuples."""
        group, agg = split_key(full_key)
        fields = tuple(group) + tuple(agg)
        self._check(fields)
        return fields


# =============================================================================
# SECTION 3: Capacity
# =============================================================================

@dataclass(frozen=True)
class Capacity:
    """
    Pre-sizing hints for a container.

    groups: Number of distinct group keys to allocate slots for
    agg_keys: Number of distinct aggregation keys to allocate slots for

    Only arena-backed storage is pre-sized; plain dicts grow on their own.
    """
    groups: int = 0
    agg_keys: int = 0

    def __post_init__(self):
        """Validate capacity."""
        for name in ("groups", "agg_keys"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")

    @classmethod
    def for_entries(cls, n: int) -> 'Capacity':
        """Capacity for `n` anticipated full keys (worst case: all distinct)."""
        return cls(groups=n, agg_keys=n)

    @classmethod
    def coerce(cls, capacity: Union['Capacity', int, None]) -> 'Capacity':
        """Accept a Capacity, an entry count, or None (defaults)."""
        if capacity is None:
            return cls(groups=DEFAULT_ARENA_CAPACITY, agg_keys=DEFAULT_ARENA_CAPACITY)
        if isinstance(capacity, cls):
            return capacity
        return cls.for_entries(capacity)


__all__ = [
    'FullKey',
    'split_key',
    'KeyLayout',
    'Capacity',
]
