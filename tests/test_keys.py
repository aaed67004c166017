"""
Tests for key composition: FullKey, split_key, KeyLayout, Capacity
"""

import dataclasses

import pytest

from bilevel_aggregator import Capacity, FullKey, KeyLayout, split_key
from bilevel_aggregator.constants import DEFAULT_ARENA_CAPACITY


class TestFullKey:
    def test_fields(self):
        key = FullKey("A", 1)
        assert key.group == "A"
        assert key.agg == 1
        assert key == ("A", 1)

    def test_of_normalises_pairs(self):
        assert FullKey.of(["A", 1]) == FullKey("A", 1)
        assert isinstance(FullKey.of(("A", 1)), FullKey)

    def test_of_keeps_full_key(self):
        key = FullKey("A", 1)
        assert FullKey.of(key) is key

    def test_composite_parts(self):
        key = FullKey(("2024", "EU"), ("widget", "blue"))
        assert key.group == ("2024", "EU")
        assert key.agg == ("widget", "blue")


class TestSplitKey:
    def test_split_tuple(self):
        assert split_key(("A", 1)) == ("A", 1)

    def test_split_list(self):
        assert split_key(["A", 1]) == ("A", 1)

    def test_split_full_key(self):
        group, agg = split_key(FullKey("A", (1, 2)))
        assert group == "A"
        assert agg == (1, 2)

    def test_wrong_arity(self):
        with pytest.raises(ValueError):
            split_key(("A", 1, 2))
        with pytest.raises(ValueError):
            split_key(("A",))


class TestKeyLayout:
    def test_split_and_join(self):
        layout = KeyLayout(group_fields=2, agg_fields=1)
        key = layout.split(("2024", "EU", "widget"))
        assert key == FullKey(("2024", "EU"), ("widget",))
        assert layout.join(key) == ("2024", "EU", "widget")

    def test_split_accepts_lists(self):
        layout = KeyLayout(1, 2)
        assert layout.split(["a", "b", "c"]) == FullKey(("a",), ("b", "c"))

    def test_group_of(self):
        layout = KeyLayout(2, 2)
        assert layout.group_of(("a", "b", "c", "d")) == ("a", "b")

    def test_width(self):
        assert KeyLayout(3, 2).width == 5

    def test_wrong_field_count(self):
        layout = KeyLayout(2, 1)
        with pytest.raises(ValueError):
            layout.split(("a", "b"))
        with pytest.raises(ValueError):
            layout.join(FullKey(("a",), ("b",)))

    def test_invalid_layout(self):
        with pytest.raises(ValueError):
            KeyLayout(0, 1)
        with pytest.raises(ValueError):
            KeyLayout(1, 0)

    def test_frozen(self):
        layout = KeyLayout(1, 1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            layout.group_fields = 2


class TestCapacity:
    def test_defaults(self):
        capacity = Capacity()
        assert capacity.groups == 0
        assert capacity.agg_keys == 0

    def test_for_entries(self):
        assert Capacity.for_entries(10) == Capacity(groups=10, agg_keys=10)

    def test_coerce(self):
        explicit = Capacity(groups=4, agg_keys=8)
        assert Capacity.coerce(explicit) is explicit
        assert Capacity.coerce(5) == Capacity(5, 5)
        default = Capacity.coerce(None)
        assert default.groups == DEFAULT_ARENA_CAPACITY
        assert default.agg_keys == DEFAULT_ARENA_CAPACITY

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            Capacity(groups=-1)
        with pytest.raises(ValueError):
            Capacity.for_entries(-3)

    def test_non_int_rejected(self):
        with pytest.raises(ValueError):
            Capacity(groups=1.5)
        with pytest.raises(ValueError):
            Capacity(agg_keys=True)
        with pytest.raises(ValueError):
            Capacity.coerce("8")
