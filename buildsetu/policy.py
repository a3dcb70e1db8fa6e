"""
Access policy: the single truth table for who may do what.

Predicates are pure and side-effect free. The ``require_*`` guards wrap
them and raise ``AuthorizationError`` so every service denies the same
way; no caller is allowed to turn a denial into an empty result.
"""

import logging
import uuid
from dataclasses import dataclass

from buildsetu.errors import AuthorizationError
from buildsetu.models import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Identity of the caller as resolved by the auth layer."""

    id: uuid.UUID
    role: Role

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(id=user.id, role=Role(user.role))

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


# =========================
# PREDICATES
# =========================

def can_access_owned(role: Role, actor_id, owner_id) -> bool:
    return role == Role.admin or actor_id == owner_id


def can_access_address(actor_id, owner_id) -> bool:
    # Addresses are strictly private: ADMIN does not override
    return actor_id == owner_id


def can_manage_catalog(role: Role) -> bool:
    return role in (Role.seller, Role.admin)


def can_manage_categories(role: Role) -> bool:
    return role == Role.admin


def can_set_order_status(role: Role) -> bool:
    return role in (Role.seller, Role.admin)


def can_set_ticket_status(role: Role) -> bool:
    return role == Role.admin


def can_list_all(role: Role) -> bool:
    return role == Role.admin


# =========================
# GUARDS
# =========================

def _deny(actor: Actor, resource: str, reason: str):
    logger.warning(
        "Access denied | actor_id=%s | role=%s | resource=%s | reason=%s",
        actor.id,
        actor.role.value,
        resource,
        reason,
    )
    raise AuthorizationError(resource=resource, reason=reason)


def require_owned(actor: Actor, owner_id, resource: str) -> None:
    if not can_access_owned(actor.role, actor.id, owner_id):
        _deny(actor, resource, "not_owner")


def require_address_owner(actor: Actor, owner_id) -> None:
    if not can_access_address(actor.id, owner_id):
        _deny(actor, "Address", "not_owner")


def require_catalog_manager(actor: Actor) -> None:
    if not can_manage_catalog(actor.role):
        _deny(actor, "Product", "role_forbidden")


def require_category_manager(actor: Actor) -> None:
    if not can_manage_categories(actor.role):
        _deny(actor, "Category", "role_forbidden")


def require_order_status_setter(actor: Actor) -> None:
    if not can_set_order_status(actor.role):
        _deny(actor, "Order", "role_forbidden")


def require_ticket_status_setter(actor: Actor) -> None:
    if not can_set_ticket_status(actor.role):
        _deny(actor, "Support ticket", "role_forbidden")
