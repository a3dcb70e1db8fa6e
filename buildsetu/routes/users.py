from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import Role, User
from buildsetu.policy import Actor
from buildsetu.responses import ok, iso
from buildsetu.services import users as profiles

router = APIRouter(prefix="/users", tags=["users"])


class UpdateProfilePayload(BaseModel):
    # No role field: roles are fixed at registration
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = Field(default=None, pattern=r"^\d{10}$")


def _serialize_user(u: User) -> dict:
    return {
        "id":         str(u.id),
        "name":       u.name,
        "email":      u.email,
        "phone":      u.phone,
        "role":       Role(u.role).value,
        "created_at": iso(u.created_at),
    }


@router.get("/me")
def get_me(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_user(profiles.get_profile(db, actor)))


@router.put("/me")
def update_me(
    payload: UpdateProfilePayload,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    user = profiles.update_profile(db, actor, name=payload.name, phone=payload.phone)
    return ok(_serialize_user(user))
