import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.config import DEFAULT_PAGE_LIMIT
from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import Order, OrderStatus
from buildsetu.policy import Actor
from buildsetu.pricing import LineRequest
from buildsetu.responses import ok, paginated, iso, money
from buildsetu.services import orders as ledger

router = APIRouter(prefix="/orders", tags=["orders"])


# =====================================================
# PYDANTIC SCHEMAS
# =====================================================

class OrderItemInput(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(gt=0)


class CreateOrderPayload(BaseModel):
    items: List[OrderItemInput] = Field(min_length=1)
    address_id: uuid.UUID


class UpdateOrderStatusPayload(BaseModel):
    status: OrderStatus


# =====================================================
# HELPERS
# =====================================================

def _serialize_order(o: Order) -> dict:
    return {
        "id":           str(o.id),
        "user_id":      str(o.user_id),
        "address_id":   str(o.address_id),
        "status":       OrderStatus(o.status).value,
        "subtotal":     money(o.subtotal),
        "tax":          money(o.tax),
        "delivery_fee": money(o.delivery_fee),
        "total":        money(o.total),
        "items": [
            {
                "id":         str(i.id),
                "product_id": str(i.product_id),
                "quantity":   i.quantity,
                "unit_price": money(i.unit_price),
                "line_total": money(i.line_total),
            }
            for i in o.items
        ],
        "created_at":   iso(o.created_at),
        "updated_at":   iso(o.updated_at),
    }


# =====================================================
# LIST ORDERS (own orders; ADMIN sees all)
# =====================================================

@router.get("")
def list_orders(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page:  int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
):
    result = ledger.list_orders(db, actor, page=page, limit=limit, status=status_filter)
    return paginated(result, _serialize_order)


# =====================================================
# GET SINGLE ORDER
# =====================================================

@router.get("/{order_id}")
def get_order(
    order_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_order(ledger.get_order(db, actor, order_id)))


# =====================================================
# CREATE ORDER
# =====================================================

@router.post("", status_code=201)
def create_order(
    payload: CreateOrderPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    """
    Places an order. Only product ids and quantities are read from the
    request; prices are taken from the catalog server-side.
    """
    items = [LineRequest(product_id=i.product_id, quantity=i.quantity) for i in payload.items]
    order = ledger.create_order(db, actor, payload.address_id, items)
    return ok(_serialize_order(order))


# =====================================================
# SELLER / ADMIN: UPDATE STATUS
# =====================================================

@router.put("/{order_id}/status")
def update_order_status(
    order_id: uuid.UUID,
    payload: UpdateOrderStatusPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    order = ledger.update_order_status(db, actor, order_id, payload.status)
    return ok(_serialize_order(order))
