"""Tests for ABC classification."""

from datetime import UTC, datetime

import pytest

from orderlens.features.analytics.abc import classify_abc, grade_for
from orderlens.features.analytics.schemas import AbcGrade
from orderlens.features.orders.schemas import OrderStatus

CREATED = datetime(2024, 3, 1, 12, tzinfo=UTC)


class TestGradeFor:
    """Tests for the threshold rule."""

    @pytest.mark.parametrize(
        ("cumulative", "rank", "expected"),
        [
            (50.0, 0, AbcGrade.A),
            (80.0, 1, AbcGrade.A),
            (80.01, 1, AbcGrade.B),
            (95.0, 2, AbcGrade.B),
            (95.01, 2, AbcGrade.C),
            (100.0, 0, AbcGrade.A),
            (0.0, 0, AbcGrade.C),
        ],
    )
    def test_thresholds(self, cumulative, rank, expected) -> None:
        """Grade is decided by the cumulative share after inclusion."""
        assert grade_for(cumulative, rank) == expected


class TestClassifyAbc:
    """Tests for classify_abc."""

    def test_empty(self) -> None:
        """No products gives no items and a zeroed summary."""
        result = classify_abc([], [])

        assert result.items == []
        assert result.total_revenue == 0
        assert result.summary.grade_a.count == 0
        assert result.summary.grade_c.revenue_percentage == 0

    def test_single_product_is_grade_a(self, make_order, make_item) -> None:
        """One product with revenue 100 is graded A at 100%."""
        orders = [make_order("o1", CREATED)]
        items = [make_item("o1", "p1", quantity=1, unit_price=100)]

        result = classify_abc(items, orders)

        assert len(result.items) == 1
        assert result.items[0].grade == AbcGrade.A
        assert result.items[0].cumulative_percentage == 100

    def test_boundary_crossing_item_takes_lower_grade(self, make_order, make_item) -> None:
        """The item pushing cumulative share from 70% to 83% is graded B."""
        orders = [make_order("o1", CREATED)]
        revenues = {"p1": 70, "p2": 13, "p3": 10, "p4": 7}
        items = [make_item("o1", pid, unit_price=rev) for pid, rev in revenues.items()]

        result = classify_abc(items, orders)

        assert [(i.product_id, i.grade) for i in result.items] == [
            ("p1", AbcGrade.A),
            ("p2", AbcGrade.B),
            ("p3", AbcGrade.B),
            ("p4", AbcGrade.C),
        ]
        assert result.summary.grade_a.count == 1
        assert result.summary.grade_b.count == 2
        assert result.summary.grade_b.revenue_percentage == 23.0
        assert result.summary.grade_c.count == 1
        assert result.summary.grade_c.revenue_percentage == 7.0

    def test_cumulative_non_decreasing_and_ends_at_100(self, make_order, make_item) -> None:
        """Cumulative share never decreases and ends at 100."""
        orders = [make_order("o1", CREATED)]
        items = [make_item("o1", f"p{i}", unit_price=price) for i, price in enumerate([3, 7, 11])]

        result = classify_abc(items, orders)

        cumulative = [i.cumulative_percentage for i in result.items]
        assert cumulative == sorted(cumulative)
        assert cumulative[-1] == pytest.approx(100, abs=0.01)

    def test_zero_revenue_grades_everything_c(self, make_order, make_item) -> None:
        """Products that earned nothing are all graded C with 0%."""
        orders = [make_order("o1", CREATED)]
        items = [make_item("o1", "p1", unit_price=0), make_item("o1", "p2", unit_price=0)]

        result = classify_abc(items, orders)

        assert {i.grade for i in result.items} == {AbcGrade.C}
        assert all(i.revenue_percentage == 0 for i in result.items)

    def test_cancelled_orders_excluded(self, make_order, make_item) -> None:
        """Items of cancelled orders do not contribute revenue."""
        orders = [
            make_order("o1", CREATED),
            make_order("o2", CREATED, status=OrderStatus.CANCELLED),
        ]
        items = [make_item("o1", "p1", unit_price=10), make_item("o2", "p2", unit_price=1000)]

        result = classify_abc(items, orders)

        assert [i.product_id for i in result.items] == ["p1"]
