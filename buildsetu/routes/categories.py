import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import Category
from buildsetu.policy import Actor
from buildsetu.responses import ok, iso
from buildsetu.services import catalog

router = APIRouter(prefix="/categories", tags=["categories"])


class CategoryPayload(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None


def _serialize_category(c: Category) -> dict:
    return {
        "id":          str(c.id),
        "name":        c.name,
        "slug":        c.slug,
        "description": c.description,
        "created_at":  iso(c.created_at),
        "updated_at":  iso(c.updated_at),
    }


@router.get("")
def get_categories(db: Session = Depends(get_db)):
    return ok([_serialize_category(c) for c in catalog.list_categories(db)])


# ⚠️ Static path first so it is not captured by /{category_id}
@router.get("/slug/{slug}")
def get_category_by_slug(slug: str, db: Session = Depends(get_db)):
    return ok(_serialize_category(catalog.get_category_by_slug(db, slug)))


@router.get("/{category_id}")
def get_category(category_id: uuid.UUID, db: Session = Depends(get_db)):
    return ok(_serialize_category(catalog.get_category(db, category_id)))


# =====================================================
# ADMIN ONLY
# =====================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryPayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    category = catalog.create_category(db, actor, payload.name, payload.description)
    return ok(_serialize_category(category))


@router.put("/{category_id}")
def update_category(
    category_id: uuid.UUID,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    category = catalog.update_category(db, actor, category_id, payload.name, payload.description)
    return ok(_serialize_category(category))


@router.delete("/{category_id}")
def delete_category(
    category_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    catalog.delete_category(db, actor, category_id)
    return ok({"message": "Category deleted successfully"})
