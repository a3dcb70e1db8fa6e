"""
Address book.

Addresses are private to their owner; not even ADMIN can read or change
someone else's. A user has at most one default address at any time: the
flag is cleared on every other address in the same transaction that sets
it, and a partial unique index backs the rule up at the database level.
"""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from buildsetu.database import transaction
from buildsetu.errors import ConflictError, NotFoundError, ValidationError
from buildsetu.models import Address, Order
from buildsetu.policy import Actor, require_address_owner

logger = logging.getLogger(__name__)

ADDRESS_FIELDS = ("label", "line1", "line2", "city", "state", "pincode")

DEFAULT_INDEX = "uq_addresses_one_default_per_user"


# =====================================================
# HELPERS
# =====================================================

def _get_owned(db: Session, actor: Actor, address_id) -> Address:
    address = db.get(Address, address_id)
    if not address:
        raise NotFoundError("Address")
    require_address_owner(actor, address.user_id)
    return address


def _clear_other_defaults(db: Session, user_id, keep_id=None) -> int:
    query = db.query(Address).filter(
        Address.user_id == user_id,
        Address.is_default == True,  # noqa: E712
    )
    if keep_id is not None:
        query = query.filter(Address.id != keep_id)
    return query.update({"is_default": False}, synchronize_session="fetch")


def _is_default_violation(exc: IntegrityError) -> bool:
    # PostgreSQL reports the index name, SQLite the indexed column
    message = str(exc.orig)
    return DEFAULT_INDEX in message or "UNIQUE constraint failed: addresses.user_id" in message


def _default_conflict() -> ConflictError:
    return ConflictError(
        "Another default address was set at the same time, please retry",
        resource="Address",
        reason="default_conflict",
    )


def _address_in_use() -> ConflictError:
    return ConflictError(
        "Cannot delete address that is used in orders",
        resource="Address",
        reason="address_in_use",
    )


def _commit_default_change(db: Session, work):
    """Run ``work`` in one transaction, mapping a lost default race to a conflict."""
    try:
        with transaction(db):
            return work()
    except IntegrityError as exc:
        if _is_default_violation(exc):
            raise _default_conflict()
        raise


# =====================================================
# READ
# =====================================================

def list_addresses(db: Session, actor: Actor) -> list:
    return (
        db.query(Address)
        .filter(Address.user_id == actor.id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
        .all()
    )


def get_address(db: Session, actor: Actor, address_id) -> Address:
    return _get_owned(db, actor, address_id)


# =====================================================
# WRITE
# =====================================================

def create_address(db: Session, actor: Actor, fields: dict) -> Address:
    """Create an address. The first address a user saves becomes the default."""
    data = {k: fields[k] for k in ADDRESS_FIELDS if k in fields}

    def work():
        has_any = db.query(Address.id).filter(Address.user_id == actor.id).first() is not None
        is_default = bool(fields.get("is_default")) or not has_any

        if is_default:
            _clear_other_defaults(db, actor.id)

        address = Address(user_id=actor.id, is_default=is_default, **data)
        db.add(address)
        db.flush()
        return address

    address = _commit_default_change(db, work)
    db.refresh(address)

    logger.info(
        "Address created | address_id=%s | user_id=%s | is_default=%s",
        address.id,
        actor.id,
        address.is_default,
    )
    return address


def update_address(db: Session, actor: Actor, address_id, fields: dict) -> Address:
    address = _get_owned(db, actor, address_id)

    # line2 is the only field that may be cleared
    changes = {
        k: v
        for k, v in fields.items()
        if (k in ADDRESS_FIELDS or k == "is_default") and (v is not None or k == "line2")
    }
    if not changes:
        raise ValidationError("No fields provided for update", resource="Address", reason="empty_update")

    def work():
        if changes.get("is_default") is True:
            _clear_other_defaults(db, actor.id, keep_id=address.id)

        for field, value in changes.items():
            setattr(address, field, value)
        db.flush()
        return address

    _commit_default_change(db, work)
    db.refresh(address)

    logger.info("Address updated | address_id=%s | fields=%s", address.id, sorted(changes))
    return address


def set_default_address(db: Session, actor: Actor, address_id) -> Address:
    return update_address(db, actor, address_id, {"is_default": True})


def delete_address(db: Session, actor: Actor, address_id) -> None:
    """
    Remove an address the actor owns.

    Fails with ConflictError while any order references it. If the removed
    address was the default, the most recently created remaining address
    takes over.
    """
    _get_owned(db, actor, address_id)

    try:
        with transaction(db):
            # create_order holds the same row lock while it writes the order
            address = (
                db.query(Address)
                .filter(Address.id == address_id)
                .with_for_update()
                .first()
            )
            if not address:
                raise NotFoundError("Address")
            if db.query(Order.id).filter(Order.address_id == address.id).first() is not None:
                raise _address_in_use()

            was_default = address.is_default
            db.delete(address)
            db.flush()

            if was_default:
                successor = (
                    db.query(Address)
                    .filter(Address.user_id == actor.id)
                    .order_by(Address.created_at.desc())
                    .first()
                )
                if successor:
                    successor.is_default = True
    except IntegrityError as exc:
        if _is_default_violation(exc):
            raise _default_conflict()
        # Foreign key from an order that committed first
        raise _address_in_use()

    logger.info("Address deleted | address_id=%s | user_id=%s", address_id, actor.id)
