"""
Order pricing.

All amounts are ``Decimal`` values quantized to the currency's minor unit
(0.01) with ROUND_HALF_UP. Prices always come from the catalog lookup,
never from the buyer.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, List, Mapping

from buildsetu.config import TAX_RATE, DELIVERY_FEE
from buildsetu.errors import ValidationError

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize to 0.01, half-up. Floats go through ``str`` to avoid binary noise."""
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class LineRequest:
    product_id: Any
    quantity: int


@dataclass(frozen=True)
class PricedLine:
    product_id: Any
    quantity: int
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class PricedOrder:
    subtotal: Decimal
    tax: Decimal
    delivery_fee: Decimal
    total: Decimal
    line_items: List[PricedLine] = field(default_factory=list)


def compute_order(
    items: Iterable[LineRequest],
    price_lookup: Mapping[Any, Any],
    tax_rate: Decimal = TAX_RATE,
    delivery_fee: Decimal = DELIVERY_FEE,
) -> PricedOrder:
    """
    Price a set of line items against the current catalog.

    ``price_lookup`` maps product id to a catalog entry exposing ``price``
    and ``is_active`` (a ``Product`` row works). Raises ``ValidationError``
    naming the offending product for empty orders, non-positive or
    duplicate lines, and missing or inactive products.
    """
    items = list(items)
    if not items:
        raise ValidationError("Order must contain at least one item", reason="empty_order")

    seen = set()
    lines = []
    subtotal = Decimal("0.00")

    for item in items:
        product_id = item.product_id

        if item.quantity is None or item.quantity <= 0:
            raise ValidationError(
                f"Quantity for product {product_id} must be a positive number",
                resource="Product",
                reason="invalid_quantity",
                details={"product_id": str(product_id), "quantity": item.quantity},
            )

        if product_id in seen:
            raise ValidationError(
                f"Product {product_id} appears more than once",
                resource="Product",
                reason="duplicate_item",
                details={"product_id": str(product_id)},
            )
        seen.add(product_id)

        entry = price_lookup.get(product_id)
        if entry is None or not entry.is_active:
            raise ValidationError(
                f"Product {product_id} is not available",
                resource="Product",
                reason="unavailable",
                details={"product_id": str(product_id)},
            )

        unit_price = to_money(entry.price)
        line_total = to_money(unit_price * item.quantity)
        subtotal += line_total

        lines.append(PricedLine(
            product_id=product_id,
            quantity=item.quantity,
            unit_price=unit_price,
            line_total=line_total,
        ))

    subtotal = to_money(subtotal)
    tax = to_money(subtotal * Decimal(tax_rate))
    fee = to_money(delivery_fee)

    return PricedOrder(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        total=subtotal + tax + fee,
        line_items=lines,
    )
