from typing import Optional

from sqlalchemy.orm import Session

from buildsetu.database import transaction
from buildsetu.errors import NotFoundError
from buildsetu.models import User
from buildsetu.policy import Actor


def get_profile(db: Session, actor: Actor) -> User:
    user = db.get(User, actor.id)
    if not user:
        raise NotFoundError("User")
    return user


def update_profile(
    db: Session,
    actor: Actor,
    name: Optional[str] = None,
    phone: Optional[str] = None,
) -> User:
    """Update name/phone. Role is fixed at registration and not accepted here."""
    user = get_profile(db, actor)

    with transaction(db):
        if name:
            user.name = name
        if phone:
            user.phone = phone

    db.refresh(user)
    return user
