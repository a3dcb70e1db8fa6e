"""
Order ledger.

Creates orders from a buyer's requested lines, prices them against the
live catalog and persists the order, its items and the stock decrement as
one unit of work. After creation an order only changes through status
transitions, which follow ``ORDER_TRANSITIONS``.

Stock check-then-act is linearizable only where the backend honours
``SELECT ... FOR UPDATE`` (PostgreSQL). Elsewhere it is best effort.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session, selectinload

from buildsetu.database import transaction
from buildsetu.errors import ConflictError, NotFoundError, ValidationError
from buildsetu.models import Address, Order, OrderItem, OrderStatus, Product
from buildsetu.pagination import Page, paginate
from buildsetu.policy import (
    Actor,
    can_list_all,
    require_address_owner,
    require_order_status_setter,
    require_owned,
)
from buildsetu.pricing import LineRequest, compute_order

logger = logging.getLogger(__name__)


# =====================================================
# STATE MACHINE
# =====================================================

ORDER_TRANSITIONS = {
    OrderStatus.pending: {OrderStatus.confirmed, OrderStatus.cancelled},
    OrderStatus.confirmed: {OrderStatus.shipped, OrderStatus.cancelled},
    OrderStatus.shipped: {OrderStatus.delivered},
    OrderStatus.delivered: set(),
    OrderStatus.cancelled: set(),
}

TERMINAL_ORDER_STATUSES = frozenset(s for s, targets in ORDER_TRANSITIONS.items() if not targets)


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS[current]


# =====================================================
# CREATE
# =====================================================

def create_order(db: Session, actor: Actor, address_id, items: Iterable[LineRequest]) -> Order:
    """
    Place an order for ``actor``.

    Only product ids and quantities are taken from the request; unit
    prices come from the catalog at the moment of ordering and are
    snapshotted onto the items.
    """
    items = list(items)

    with transaction(db):
        # Held until commit so delete_address cannot remove it underneath us
        address = (
            db.query(Address)
            .filter(Address.id == address_id)
            .with_for_update()
            .first()
        )
        if not address:
            raise NotFoundError("Address")
        require_address_owner(actor, address.user_id)

        product_ids = {item.product_id for item in items}
        products = (
            db.query(Product)
            .filter(Product.id.in_(product_ids))
            .with_for_update()
            .all()
        ) if product_ids else []
        catalog = {p.id: p for p in products}

        priced = compute_order(items, catalog)

        for line in priced.line_items:
            product = catalog[line.product_id]
            if line.quantity > product.stock_quantity:
                raise ValidationError(
                    f"Not enough stock for product {product.id}. Available: {product.stock_quantity}",
                    resource="Product",
                    reason="insufficient_stock",
                    details={
                        "product_id": str(product.id),
                        "requested": line.quantity,
                        "available": product.stock_quantity,
                    },
                )

        order = Order(
            user_id=actor.id,
            address_id=address.id,
            status=OrderStatus.pending,
            subtotal=priced.subtotal,
            tax=priced.tax,
            delivery_fee=priced.delivery_fee,
            total=priced.total,
        )
        db.add(order)
        db.flush()

        for position, line in enumerate(priced.line_items):
            db.add(OrderItem(
                order_id=order.id,
                product_id=line.product_id,
                position=position,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            ))
            catalog[line.product_id].stock_quantity -= line.quantity

    db.refresh(order)

    logger.info(
        "Order created | order_id=%s | user_id=%s | items=%s | total=%s",
        order.id,
        actor.id,
        len(priced.line_items),
        order.total,
    )
    return order


# =====================================================
# READ
# =====================================================

def get_order(db: Session, actor: Actor, order_id) -> Order:
    order = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.id == order_id)
        .first()
    )
    if not order:
        raise NotFoundError("Order")
    require_owned(actor, order.user_id, "Order")
    return order


def list_orders(
    db: Session,
    actor: Actor,
    page: int = 1,
    limit: int = 10,
    status: Optional[OrderStatus] = None,
) -> Page:
    """ADMIN lists every order; everyone else lists only their own."""
    query = db.query(Order).options(selectinload(Order.items))
    if not can_list_all(actor.role):
        query = query.filter(Order.user_id == actor.id)
    if status is not None:
        query = query.filter(Order.status == status)

    query = query.order_by(Order.created_at.desc(), Order.id)
    return paginate(query, page, limit)


# =====================================================
# STATUS TRANSITIONS
# =====================================================

def update_order_status(db: Session, actor: Actor, order_id, new_status: OrderStatus) -> Order:
    """
    Move an order along the status graph. SELLER or ADMIN only.

    The role check runs before the lookup so a BUYER gets the same denial
    whether or not the order exists. Cancelling returns the ordered
    quantities to stock.
    """
    require_order_status_setter(actor)
    new_status = OrderStatus(new_status)

    with transaction(db):
        order = (
            db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .first()
        )
        if not order:
            raise NotFoundError("Order")

        current = OrderStatus(order.status)
        if not can_transition(current, new_status):
            logger.warning(
                "Illegal order transition | order_id=%s | from=%s | to=%s | actor_id=%s",
                order.id,
                current.value,
                new_status.value,
                actor.id,
            )
            raise ConflictError(
                f"Cannot change order status from {current.value} to {new_status.value}",
                resource="Order",
                reason="invalid_transition",
                details={
                    "from": current.value,
                    "to": new_status.value,
                    "allowed": sorted(s.value for s in ORDER_TRANSITIONS[current]),
                },
            )

        if new_status == OrderStatus.cancelled:
            _restore_stock(db, order)

        order.status = new_status

    db.refresh(order)

    logger.info(
        "Order status changed | order_id=%s | from=%s | to=%s | actor_id=%s",
        order.id,
        current.value,
        new_status.value,
        actor.id,
    )
    return order


def _restore_stock(db: Session, order: Order) -> None:
    product_ids = [item.product_id for item in order.items]
    products = {
        p.id: p
        for p in db.query(Product).filter(Product.id.in_(product_ids)).with_for_update().all()
    }
    for item in order.items:
        product = products.get(item.product_id)
        if product:
            product.stock_quantity += item.quantity
