import uuid

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from buildsetu.database import get_db
from buildsetu.errors import AuthenticationError
from buildsetu.models import User
from buildsetu.policy import Actor
from buildsetu.security import decode_token, get_token_from_request


# =========================
# CURRENT USER (BEARER / COOKIE)
# =========================
def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    token = get_token_from_request(request)
    if not token:
        raise AuthenticationError("Not authenticated")

    payload = decode_token(token)
    if not payload:
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = uuid.UUID(payload.get("sub") or "")
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = db.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return user


# =========================
# ACTING IDENTITY
# =========================
def get_current_actor(user: User = Depends(get_current_user)) -> Actor:
    """(actor id, role) pair handed to every service call."""
    return Actor.from_user(user)
