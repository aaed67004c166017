"""
Tests for BilevelMap, run against every ownership variant
"""

import pytest

from bilevel_aggregator import Capacity, FullKey, PayloadRef, copy_keys, hybrid_keys, owned_keys


VARIANTS = [copy_keys, owned_keys, hybrid_keys]


@pytest.fixture(params=VARIANTS, ids=lambda m: m.__name__.rsplit(".", 1)[-1])
def variant(request):
    return request.param


@pytest.fixture
def sales(variant):
    m = variant.BilevelMap()
    m.insert(("north", "widget"), 5)
    m.insert(("north", "gadget"), 2)
    m.insert(("south", "widget"), 1)
    return m


class TestScenario:
    def test_replace_returns_previous(self, variant):
        m = variant.BilevelMap()
        assert m.insert(("A", 1), "x") is None
        assert m.insert(("A", 1), "y") == "x"
        assert m.get(("A", 1)) == "y"
        assert len(m) == 1
        m.check_invariants()

    def test_counting(self, variant):
        m = variant.BilevelMap(int)
        for g, k in [(1, 2), (2, 1), (1, 2), (2, 2)]:
            m.add_or_get((g, k)).value += 1
        assert list(m.items()) == [((1, 2), 2), ((2, 1), 1), ((2, 2), 1)]
        m.check_invariants()


class TestLookup:
    def test_get(self, sales):
        assert sales.get(("north", "widget")) == 5
        assert sales.get(("north", "sprocket")) is None
        assert sales.get(("east", "widget")) is None
        assert sales.get(("east", "widget"), 0) == 0

    def test_contains(self, sales):
        assert sales.contains(("south", "widget"))
        assert ("north", "gadget") in sales
        assert ("south", "gadget") not in sales

    def test_none_payload_is_stored(self, variant):
        m = variant.BilevelMap()
        assert m.insert(("A", 1), None) is None
        assert m.contains(("A", 1))
        assert m.get(("A", 1), "default") is None
        assert m.remove(("A", 1), "default") is None
        assert not m.contains(("A", 1))

    def test_getitem(self, sales):
        assert sales[("north", "gadget")] == 2
        with pytest.raises(KeyError):
            sales[("north", "sprocket")]


class TestGetMut:
    def test_update_in_place(self, sales):
        ref = sales.get_mut(("north", "widget"))
        assert isinstance(ref, PayloadRef)
        assert ref.key == FullKey("north", "widget")
        ref.value += 10
        assert sales.get(("north", "widget")) == 15
        assert len(sales) == 3

    def test_absent(self, sales):
        assert sales.get_mut(("north", "sprocket")) is None

    def test_stale_reference(self, sales):
        ref = sales.get_mut(("south", "widget"))
        sales.remove(("south", "widget"))
        with pytest.raises(KeyError):
            ref.value
        with pytest.raises(KeyError):
            ref.value = 3
        assert not sales.contains(("south", "widget"))

    def test_stale_reference_after_slot_reuse(self, variant):
        m = variant.BilevelMap()
        m.insert(("A", "old"), 1)
        ref = m.get_mut(("A", "old"))
        m.remove(("A", "old"))
        m.insert(("A", "new"), 2)
        with pytest.raises(KeyError):
            ref.value
        assert m.get(("A", "new")) == 2


class TestAddOrGet:
    def test_creates_default(self, variant):
        m = variant.BilevelMap(list)
        m.add_or_get(("A", 1)).value.append("x")
        m.add_or_get(("A", 1)).value.append("y")
        assert m.get(("A", 1)) == ["x", "y"]
        assert len(m) == 1

    def test_existing_without_factory(self, sales):
        assert sales.add_or_get(("north", "widget")).value == 5

    def test_missing_without_factory(self, sales):
        with pytest.raises(KeyError):
            sales.add_or_get(("north", "sprocket"))
        assert len(sales) == 3
        sales.check_invariants()

    def test_with_capacity_keeps_factory(self, variant):
        m = variant.BilevelMap.with_capacity(Capacity(groups=2, agg_keys=2), int)
        assert m.default_factory is int
        m.add_or_get(("A", 1)).value += 1
        assert m[("A", 1)] == 1


class TestRemove:
    def test_remove_returns_payload(self, sales):
        assert sales.remove(("north", "gadget")) == 2
        assert list(sales.group("north")) == [("widget", 5)]
        assert len(sales) == 2
        sales.check_invariants()

    def test_remove_absent(self, sales):
        assert sales.remove(("north", "sprocket")) is None
        assert sales.remove(("east", "widget"), -1) == -1
        assert len(sales) == 3

    def test_remove_last_member_drops_group(self, sales):
        sales.remove(("south", "widget"))
        assert list(sales.groups()) == ["north"]
        assert not sales.has_group("south")
        sales.check_invariants()

    def test_delitem(self, sales):
        del sales[("north", "widget")]
        assert not sales.contains(("north", "widget"))
        with pytest.raises(KeyError):
            del sales[("north", "widget")]


class TestGroups:
    def test_group_pairs(self, sales):
        assert list(sales.group("north")) == [("widget", 5), ("gadget", 2)]
        assert list(sales.group("south")) == [("widget", 1)]
        assert list(sales.group("east")) == []

    def test_group_sees_replaced_payload(self, sales):
        sales.insert(("north", "widget"), 50)
        assert dict(sales.group("north")) == {"widget": 50, "gadget": 2}
        assert list(sales.groups()) == ["north", "south"]

    def test_items_keys_values(self, sales):
        assert list(sales.keys()) == [("north", "widget"), ("north", "gadget"), ("south", "widget")]
        assert list(sales) == list(sales.keys())
        assert list(sales.values()) == [5, 2, 1]
        assert all(isinstance(k, FullKey) for k, _ in sales.items())

    def test_group_size(self, sales):
        assert sales.group_size("north") == 2
        assert sales.group_size("east") == 0


class TestBulk:
    def test_setitem_and_update(self, variant):
        m = variant.BilevelMap()
        m[("A", 1)] = "a"
        assert m.update([(("A", 1), "b"), (("B", 1), "c")]) == 1
        assert m[("A", 1)] == "b"
        assert len(m) == 2

    def test_clear(self, sales):
        sales.clear()
        assert sales.is_empty()
        assert list(sales.groups()) == []
        assert sales.get(("north", "widget")) is None
        sales.check_invariants()

    def test_drain(self, sales):
        drained = list(sales.drain())
        assert drained == [
            (("north", "widget"), 5),
            (("north", "gadget"), 2),
            (("south", "widget"), 1),
        ]
        assert len(sales) == 0

    def test_stats(self, sales):
        stats = sales.stats
        assert stats["entries"] == 3
        assert stats["groups"] == 2
        assert stats["largest_group"] == 2
