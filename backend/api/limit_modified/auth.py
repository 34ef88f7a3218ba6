from __future__ import annotations

from sqlalchemy.engine import Engine

from limit_modified import repo
from limit_modified.models import User


EDIT_ANY_ROLES = {"admin", "editor"}


class AuthError(Exception):
    """Raised when the request carries no known user."""


def require_user(engine: Engine, x_user_id: str | None) -> User:
    """
    Resolve the acting user from the request header "X-User-Id".

    IMPORTANT:
    - This function MUST receive a plain string (or None).
    - Do NOT declare FastAPI Header() here because we call this directly from endpoints.
    """

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise AuthError("Missing X-User-Id header")

    row = repo.get_user(engine, user_id)
    if not row:
        raise AuthError(f"User not found for id '{user_id}'")

    return User(id=str(row["id"]), role=str(row["role"]))


def can_edit(engine: Engine, user: User | None, item_id: str) -> bool:
    if user is None:
        return False
    if user.role in EDIT_ANY_ROLES:
        return True
    if user.role != "author":
        return False

    try:
        item = repo.get_content(engine, item_id)
    except KeyError:
        return False
    return item.get("author_id") == user.id
