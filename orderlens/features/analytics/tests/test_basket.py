"""Tests for product combination analysis."""

from datetime import UTC, datetime

import pytest

from orderlens.features.analytics.basket import analyze_combinations

CREATED = datetime(2024, 3, 1, 12, tzinfo=UTC)


class TestCombinations:
    """Tests for analyze_combinations."""

    def test_empty(self) -> None:
        """No orders gives no pairs and a zero denominator."""
        result = analyze_combinations([], [])

        assert result.combinations == []
        assert result.total_orders_analyzed == 0
        assert result.min_count == 1

    def test_pair_support(self, make_order, make_item) -> None:
        """Two {A,B} orders and one {A} order give support 1.0 for (A, B)."""
        orders = [make_order(oid, CREATED) for oid in ["o1", "o2", "o3"]]
        items = [
            make_item("o1", "A"),
            make_item("o1", "B"),
            make_item("o2", "B"),
            make_item("o2", "A"),
            make_item("o3", "A"),
        ]

        result = analyze_combinations(orders, items)

        assert result.total_orders_analyzed == 2
        assert len(result.combinations) == 1
        pair = result.combinations[0]
        assert [p.product_id for p in pair.products] == ["A", "B"]
        assert pair.co_order_count == 2
        assert pair.support_rate == 1.0

    def test_duplicate_lines_do_not_form_pairs(self, make_order, make_item) -> None:
        """Two lines of the same product are one distinct product."""
        orders = [make_order("o1", CREATED)]
        items = [make_item("o1", "A"), make_item("o1", "A")]

        result = analyze_combinations(orders, items)

        assert result.combinations == []
        assert result.total_orders_analyzed == 0

    def test_min_count_and_ordering(self, make_order, make_item) -> None:
        """Pairs below min_count are dropped; the rest sort by count."""
        orders = [make_order(oid, CREATED) for oid in ["o1", "o2", "o3"]]
        items = [
            make_item("o1", "A"),
            make_item("o1", "B"),
            make_item("o1", "C"),
            make_item("o2", "B"),
            make_item("o2", "C"),
            make_item("o3", "B"),
            make_item("o3", "C"),
        ]

        result = analyze_combinations(orders, items, min_count=2)

        assert [[p.product_id for p in c.products] for c in result.combinations] == [["B", "C"]]
        assert result.combinations[0].support_rate == 1.0
        assert result.min_count == 2

    def test_no_pair_reported_twice(self, make_order, make_item) -> None:
        """(A, B) and (B, A) are the same pair."""
        orders = [make_order(oid, CREATED) for oid in ["o1", "o2", "o3", "o4"]]
        items = []
        for oid, products in zip(
            ["o1", "o2", "o3", "o4"], [["A", "B"], ["B", "A"], ["C", "A"], ["B", "C"]]
        ):
            items.extend(make_item(oid, pid) for pid in products)

        result = analyze_combinations(orders, items)

        keys = [tuple(p.product_id for p in c.products) for c in result.combinations]
        assert len(keys) == len({frozenset(k) for k in keys})
        assert keys[0] == ("A", "B")
        assert all(0 <= c.support_rate <= 1 for c in result.combinations)

    def test_max_items(self, make_order, make_item) -> None:
        """Output is truncated to max_items pairs."""
        orders = [make_order("o1", CREATED)]
        items = [make_item("o1", pid) for pid in "ABCDE"]

        result = analyze_combinations(orders, items, max_items=3)

        assert len(result.combinations) == 3
        assert result.combinations[0].support_rate == pytest.approx(1.0)
