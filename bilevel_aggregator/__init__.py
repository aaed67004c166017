"""
Bilevel Aggregator - Groups of groups

Structures that index data by a composite *full key* and then group the
results by one component of that key. The key rows are grouped by is the
*group key*; the remainder of the full key is the *aggregation key*. Either
part may be simple or composite.

Two containers, each in three ownership variants:

- BilevelSet: lists the aggregation keys seen for each group key
- BilevelMap: additionally keeps an opaque payload per (group, agg) pairing

Variants (pick by import, not by flag):

- copy_keys:   both key parts are cheap values, stored directly
- owned_keys:  neither key part should be duplicated; both live once in
               a KeyArena and indexes hold slot handles
- hybrid_keys: group key stored directly, aggregation key held once in
               a KeyArena

Example:
    from bilevel_aggregator.copy_keys import BilevelMap

    totals = BilevelMap(int)
    for region, product, qty in rows:
        totals.add_or_get((region, product)).value += qty
    for product, qty in totals.group("north"):
        ...
"""

import logging

__version__ = "0.1.0"

from .errors import InvariantError
from .keys import Capacity, FullKey, KeyLayout, split_key
from .arena import KeyArena
from .base import BilevelMapBase, BilevelSetBase, GroupView, PayloadRef
from . import copy_keys, hybrid_keys, owned_keys

CopyBilevelSet = copy_keys.BilevelSet
CopyBilevelMap = copy_keys.BilevelMap
OwnedBilevelSet = owned_keys.BilevelSet
OwnedBilevelMap = owned_keys.BilevelMap
HybridBilevelSet = hybrid_keys.BilevelSet
HybridBilevelMap = hybrid_keys.BilevelMap

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Key composition
    "FullKey",
    "split_key",
    "KeyLayout",
    "Capacity",
    # Storage
    "KeyArena",
    "GroupView",
    "PayloadRef",
    "InvariantError",
    # Contracts
    "BilevelSetBase",
    "BilevelMapBase",
    # Variants
    "copy_keys",
    "owned_keys",
    "hybrid_keys",
    "CopyBilevelSet",
    "CopyBilevelMap",
    "OwnedBilevelSet",
    "OwnedBilevelMap",
    "HybridBilevelSet",
    "HybridBilevelMap",
]
