"""Tests for order pricing."""

import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from buildsetu.errors import ValidationError
from buildsetu.pricing import LineRequest, compute_order, to_money

P1 = uuid.uuid4()
P2 = uuid.uuid4()
P3 = uuid.uuid4()


def entry(price, is_active=True):
    return SimpleNamespace(price=Decimal(price), is_active=is_active)


class TestComputeOrder:
    def test_reference_example(self):
        priced = compute_order([LineRequest(P1, 2)], {P1: entry("500.00")})

        assert priced.subtotal == Decimal("1000.00")
        assert priced.tax == Decimal("50.00")
        assert priced.delivery_fee == Decimal("50.00")
        assert priced.total == Decimal("1100.00")

        [line] = priced.line_items
        assert line.unit_price == Decimal("500.00")
        assert line.line_total == Decimal("1000.00")

    def test_total_is_sum_of_parts(self):
        catalog = {P1: entry("650.00"), P2: entry("0.50"), P3: entry("99.99")}
        items = [LineRequest(P1, 3), LineRequest(P2, 1001), LineRequest(P3, 7)]

        priced = compute_order(items, catalog)

        assert priced.subtotal == sum(l.unit_price * l.quantity for l in priced.line_items)
        assert priced.total == priced.subtotal + priced.tax + priced.delivery_fee
        assert [l.product_id for l in priced.line_items] == [P1, P2, P3]

    def test_tax_rounds_half_up(self):
        # 0.10 * 5% = 0.005 -> 0.01
        priced = compute_order([LineRequest(P1, 1)], {P1: entry("0.10")})
        assert priced.tax == Decimal("0.01")

        # 0.50 * 5% = 0.025 -> 0.03 (banker's rounding would give 0.02)
        priced = compute_order([LineRequest(P1, 1)], {P1: entry("0.50")})
        assert priced.tax == Decimal("0.03")

    def test_deterministic(self):
        catalog = {P1: entry("123.45"), P2: entry("6.78")}
        items = [LineRequest(P1, 3), LineRequest(P2, 9)]
        assert compute_order(items, catalog) == compute_order(items, catalog)

    def test_custom_rates(self):
        priced = compute_order(
            [LineRequest(P1, 1)],
            {P1: entry("200.00")},
            tax_rate=Decimal("0.18"),
            delivery_fee=Decimal("0"),
        )
        assert priced.tax == Decimal("36.00")
        assert priced.total == Decimal("236.00")


class TestComputeOrderRejections:
    def test_empty_items(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_order([], {})
        assert exc_info.value.reason == "empty_order"

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_non_positive_quantity(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            compute_order([LineRequest(P1, quantity)], {P1: entry("10.00")})
        assert str(P1) in exc_info.value.message

    def test_unknown_product_is_named(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_order([LineRequest(P1, 1), LineRequest(P2, 1)], {P1: entry("10.00")})
        assert str(P2) in exc_info.value.message
        assert exc_info.value.details == {"product_id": str(P2)}

    def test_inactive_product_is_named(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_order([LineRequest(P1, 1)], {P1: entry("10.00", is_active=False)})
        assert str(P1) in exc_info.value.message
        assert exc_info.value.reason == "unavailable"

    def test_duplicate_product(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_order([LineRequest(P1, 1), LineRequest(P1, 2)], {P1: entry("10.00")})
        assert exc_info.value.reason == "duplicate_item"


class TestToMoney:
    def test_float_goes_through_str(self):
        assert to_money(0.1 + 0.2) == Decimal("0.30")

    def test_half_up(self):
        assert to_money("2.675") == Decimal("2.68")
        assert to_money("2.665") == Decimal("2.67")
