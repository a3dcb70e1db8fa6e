import uuid
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from buildsetu.database import get_db
from buildsetu.dependencies import get_current_actor
from buildsetu.models import Address
from buildsetu.policy import Actor
from buildsetu.responses import ok, iso
from buildsetu.services import addresses as address_book

router = APIRouter(prefix="/addresses", tags=["addresses"])


# =====================================================
# Pydantic Schemas
# =====================================================

class AddressCreate(BaseModel):
    label: str = Field(min_length=1)
    line1: str = Field(min_length=1)
    line2: Optional[str] = None
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    pincode: str = Field(pattern=r"^\d{6}$")
    is_default: bool = False


class AddressUpdate(BaseModel):
    label: Optional[str] = Field(default=None, min_length=1)
    line1: Optional[str] = Field(default=None, min_length=1)
    line2: Optional[str] = None
    city: Optional[str] = Field(default=None, min_length=1)
    state: Optional[str] = Field(default=None, min_length=1)
    pincode: Optional[str] = Field(default=None, pattern=r"^\d{6}$")
    is_default: Optional[bool] = None


def _serialize_address(addr: Address) -> dict:
    return {
        "id":         str(addr.id),
        "label":      addr.label,
        "line1":      addr.line1,
        "line2":      addr.line2,
        "city":       addr.city,
        "state":      addr.state,
        "pincode":    addr.pincode,
        "is_default": addr.is_default,
        "created_at": iso(addr.created_at),
        "updated_at": iso(addr.updated_at),
    }


# =====================================================
# USER: LIST MY ADDRESSES
# =====================================================
@router.get("", status_code=status.HTTP_200_OK)
def list_my_addresses(
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok([_serialize_address(a) for a in address_book.list_addresses(db, actor)])


# =====================================================
# USER: GET ONE ADDRESS
# =====================================================
@router.get("/{address_id}")
def get_address(
    address_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    return ok(_serialize_address(address_book.get_address(db, actor, address_id)))


# =====================================================
# USER: CREATE ADDRESS
# =====================================================
@router.post("", status_code=status.HTTP_201_CREATED)
def create_address(
    payload: AddressCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    address = address_book.create_address(db, actor, payload.model_dump())
    return ok(_serialize_address(address))


# =====================================================
# USER: UPDATE ADDRESS
# =====================================================
@router.put("/{address_id}")
def update_address(
    address_id: uuid.UUID,
    payload: AddressUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    address = address_book.update_address(db, actor, address_id, payload.model_dump(exclude_unset=True))
    return ok(_serialize_address(address))


# =====================================================
# USER: SET DEFAULT ADDRESS
# =====================================================
@router.post("/{address_id}/set-default")
def set_default_address(
    address_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    address = address_book.set_default_address(db, actor, address_id)
    return ok(_serialize_address(address))


# =====================================================
# USER: DELETE ADDRESS
# =====================================================
@router.delete("/{address_id}")
def delete_address(
    address_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    address_book.delete_address(db, actor, address_id)
    return ok({"message": "Address deleted successfully"})
