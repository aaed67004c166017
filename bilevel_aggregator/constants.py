# bilevel_aggregator/constants.py
"""
Bilevel Aggregator Constants

Defaults for the key arena used by the non-copy variants:
- DEFAULT_ARENA_CAPACITY: Initial number of slots when no Capacity is given
- ARENA_GROWTH_FACTOR: Multiplier applied when the slot array is full
- REFCOUNT_DTYPE: numpy dtype of the per-slot reference counts
"""
import numpy as np


# =============================================================================
# ARENA LAYER: Slot storage
# =============================================================================

DEFAULT_ARENA_CAPACITY = 16
ARENA_GROWTH_FACTOR = 2
REFCOUNT_DTYPE = np.int64

# Constraint: growth must be geometric or appends degrade to O(n)
assert ARENA_GROWTH_FACTOR > 1, "ARENA_GROWTH_FACTOR must be > 1"
