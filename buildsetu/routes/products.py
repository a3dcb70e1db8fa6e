import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.config import DEFAULT_PAGE_LIMIT
from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import Product
from buildsetu.policy import Actor
from buildsetu.responses import ok, paginated, iso, money
from buildsetu.services import catalog

router = APIRouter(prefix="/products", tags=["products"])


# =====================================================
# Pydantic Schemas
# =====================================================

class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    price: Decimal = Field(gt=0)
    unit: str = Field(min_length=1)
    category_id: uuid.UUID
    stock_quantity: int = Field(ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Decimal] = Field(default=None, gt=0)
    unit: Optional[str] = Field(default=None, min_length=1)
    category_id: Optional[uuid.UUID] = None
    stock_quantity: Optional[int] = Field(default=None, ge=0)


def _serialize_product(p: Product) -> dict:
    return {
        "id":             str(p.id),
        "name":           p.name,
        "slug":           p.slug,
        "description":    p.description,
        "price":          money(p.price),
        "unit":           p.unit,
        "category_id":    str(p.category_id),
        "seller_id":      str(p.seller_id),
        "stock_quantity": p.stock_quantity,
        "is_active":      p.is_active,
        "created_at":     iso(p.created_at),
        "updated_at":     iso(p.updated_at),
    }


# =====================================================
# PUBLIC: LIST / GET PRODUCTS
# =====================================================
@router.get("")
def list_products(
    db: Session = Depends(get_db),
    search: Optional[str] = None,
    category_slug: Optional[str] = None,
    page:  int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
):
    result = catalog.list_products(db, search=search, category_slug=category_slug, page=page, limit=limit)
    return paginated(result, _serialize_product)


# ⚠️ /mine must be registered before /{product_id}
@router.get("/mine")
def list_my_products(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    page:  int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1),
):
    result = catalog.list_seller_products(db, actor.id, page=page, limit=limit)
    return paginated(result, _serialize_product)


@router.get("/{product_id}")
def get_product(product_id: uuid.UUID, db: Session = Depends(get_db)):
    return ok(_serialize_product(catalog.get_product(db, product_id)))


# =====================================================
# SELLER / ADMIN: MANAGE PRODUCTS
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_product(catalog.create_product(db, actor, payload.model_dump())))


@router.put("/{product_id}")
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    product = catalog.update_product(db, actor, product_id, payload.model_dump(exclude_unset=True))
    return ok(_serialize_product(product))


@router.delete("/{product_id}")
def delete_product(
    product_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    catalog.delete_product(db, actor, product_id)
    return ok({"message": "Product deleted successfully"})
