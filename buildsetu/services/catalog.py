"""
Catalog: categories and products.

Sellers own their products and ADMIN overrides; categories are managed
by ADMIN only. Deleting a product only deactivates it so historical order
items keep a valid reference.
"""

import logging
import re
import time
from decimal import Decimal, InvalidOperation
from typing import Optional

from sqlalchemy.orm import Session

from buildsetu.database import transaction
from buildsetu.errors import ConflictError, NotFoundError, ValidationError
from buildsetu.models import Category, Product
from buildsetu.pagination import Page, paginate
from buildsetu.policy import Actor, require_catalog_manager, require_category_manager, require_owned
from buildsetu.pricing import to_money

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ("name", "description", "price", "unit", "category_id", "stock_quantity")


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


# =====================================================
# CATEGORIES
# =====================================================

def list_categories(db: Session) -> list:
    return db.query(Category).order_by(Category.name.asc()).all()


def get_category(db: Session, category_id) -> Category:
    category = db.get(Category, category_id)
    if not category:
        raise NotFoundError("Category")
    return category


def get_category_by_slug(db: Session, slug: str) -> Category:
    category = db.query(Category).filter(Category.slug == slug).first()
    if not category:
        raise NotFoundError("Category")
    return category


def _ensure_slug_free(db: Session, slug: str, exclude_id=None) -> None:
    query = db.query(Category.id).filter(Category.slug == slug)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(
            "Category with this name already exists",
            resource="Category",
            reason="duplicate_slug",
            details={"slug": slug},
        )


def create_category(db: Session, actor: Actor, name: str, description: Optional[str] = None) -> Category:
    require_category_manager(actor)
    slug = slugify(name)
    _ensure_slug_free(db, slug)

    with transaction(db):
        category = Category(name=name, slug=slug, description=description)
        db.add(category)

    db.refresh(category)
    logger.info("Category created | category_id=%s | slug=%s", category.id, slug)
    return category


def update_category(
    db: Session,
    actor: Actor,
    category_id,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Category:
    require_category_manager(actor)
    category = get_category(db, category_id)

    with transaction(db):
        if name and name != category.name:
            slug = slugify(name)
            _ensure_slug_free(db, slug, exclude_id=category.id)
            category.name = name
            category.slug = slug
        if description is not None:
            category.description = description

    db.refresh(category)
    return category


def delete_category(db: Session, actor: Actor, category_id) -> None:
    require_category_manager(actor)
    category = get_category(db, category_id)

    if db.query(Product.id).filter(Product.category_id == category.id).first() is not None:
        raise ConflictError(
            "Cannot delete category that still has products",
            resource="Category",
            reason="category_in_use",
        )

    with transaction(db):
        db.delete(category)

    logger.info("Category deleted | category_id=%s", category_id)


# =====================================================
# PRODUCTS
# =====================================================

def _clean_price(value) -> Decimal:
    try:
        price = to_money(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError("Price must be a positive number", resource="Product", reason="invalid_price")
    if price <= 0:
        raise ValidationError("Price must be a positive number", resource="Product", reason="invalid_price")
    return price


def _clean_stock(value) -> int:
    try:
        stock = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            "Stock quantity must be a non-negative number", resource="Product", reason="invalid_stock"
        )
    if stock < 0:
        raise ValidationError(
            "Stock quantity must be a non-negative number", resource="Product", reason="invalid_stock"
        )
    return stock


def _require_category(db: Session, category_id) -> None:
    if db.get(Category, category_id) is None:
        raise ValidationError(
            f"Category {category_id} does not exist",
            resource="Category",
            reason="unknown_category",
            details={"category_id": str(category_id)},
        )


def get_product(db: Session, product_id) -> Product:
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product")
    return product


def list_products(
    db: Session,
    search: Optional[str] = None,
    category_slug: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Page:
    query = db.query(Product).filter(Product.is_active == True)  # noqa: E712

    if search:
        query = query.filter(Product.name.ilike(f"%{search}%"))
    if category_slug:
        query = query.join(Category, Product.category_id == Category.id).filter(Category.slug == category_slug)

    query = query.order_by(Product.created_at.desc(), Product.id)
    return paginate(query, page, limit)


def list_seller_products(db: Session, seller_id, page: int = 1, limit: int = 10) -> Page:
    query = (
        db.query(Product)
        .filter(Product.seller_id == seller_id)
        .order_by(Product.created_at.desc(), Product.id)
    )
    return paginate(query, page, limit)


def create_product(db: Session, actor: Actor, fields: dict) -> Product:
    require_catalog_manager(actor)

    missing = [f for f in PRODUCT_FIELDS if fields.get(f) in (None, "") and f != "description"]
    if missing:
        raise ValidationError(
            "Missing required product fields",
            resource="Product",
            reason="missing_fields",
            details={"fields": missing},
        )

    price = _clean_price(fields["price"])
    stock = _clean_stock(fields["stock_quantity"])
    _require_category(db, fields["category_id"])

    with transaction(db):
        product = Product(
            seller_id=actor.id,
            category_id=fields["category_id"],
            name=fields["name"],
            slug=f"{slugify(fields['name'])}-{int(time.time() * 1000)}",
            description=fields.get("description") or "",
            unit=fields["unit"],
            price=price,
            stock_quantity=stock,
            is_active=True,
        )
        db.add(product)

    db.refresh(product)
    logger.info("Product created | product_id=%s | seller_id=%s | price=%s", product.id, actor.id, price)
    return product


def update_product(db: Session, actor: Actor, product_id, fields: dict) -> Product:
    require_catalog_manager(actor)
    product = get_product(db, product_id)
    require_owned(actor, product.seller_id, "Product")

    changes = {k: v for k, v in fields.items() if k in PRODUCT_FIELDS and v is not None}
    if "price" in changes:
        changes["price"] = _clean_price(changes["price"])
    if "stock_quantity" in changes:
        changes["stock_quantity"] = _clean_stock(changes["stock_quantity"])
    if "category_id" in changes:
        _require_category(db, changes["category_id"])

    with transaction(db):
        for field, value in changes.items():
            setattr(product, field, value)

    db.refresh(product)
    logger.info("Product updated | product_id=%s | fields=%s", product.id, sorted(changes))
    return product


def delete_product(db: Session, actor: Actor, product_id) -> None:
    require_catalog_manager(actor)
    product = get_product(db, product_id)
    require_owned(actor, product.seller_id, "Product")

    with transaction(db):
        product.is_active = False

    logger.info("Product deactivated | product_id=%s | actor_id=%s", product.id, actor.id)
