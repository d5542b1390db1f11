"""
Identity resolution and role guards.

There are no passwords: the first login with an unseen username creates
the account (role ``admin`` for the literal username "admin", ``public``
for everyone else). The session only carries the user id; the user row is
re-read from the store on every request.
"""

import logging
from typing import Iterable, Optional

from fastapi import Depends, Request

from .errors import Conflict, Forbidden, Unauthenticated, ValidationError
from .models import User
from .store import Store

logger = logging.getLogger(__name__)

SESSION_KEY = "user_id"


def role_for_username(username: str) -> str:
    return "admin" if username == "admin" else "public"


def resolve_identity(store: Store, session_identity: Optional[User],
                     supplied_username: Optional[str]) -> User:
    if session_identity is not None:
        return session_identity

    username = supplied_username or ""
    if not username.strip():
        raise ValidationError("Username is required")
    if username != username.strip():
        raise ValidationError("Username must not start or end with whitespace")

    user = store.get_user_by_username(username)
    if user is not None:
        return user

    try:
        user = store.create_user(username, role_for_username(username))
    except Conflict:
        # created concurrently by another request
        user = store.get_user_by_username(username)
        if user is None:
            raise
        return user
    logger.info("Created %s user '%s' (id=%s)", user.role, user.username, user.id)
    return user


def require_authenticated(identity: Optional[User]) -> User:
    if identity is None:
        raise Unauthenticated()
    return identity


def require_any_role(identity: Optional[User], roles: Iterable[str]) -> User:
    user = require_authenticated(identity)
    if user.role not in roles:
        logger.warning("User '%s' (%s) denied; needs one of %s", user.username, user.role, list(roles))
        raise Forbidden()
    return user


# -------------------------
# FastAPI dependencies
# -------------------------

def get_store(request: Request) -> Store:
    return request.app.state.store


def current_identity(request: Request, store: Store = Depends(get_store)) -> Optional[User]:
    user_id = request.session.get(SESSION_KEY)
    if user_id is None:
        return None
    user = store.get_user(user_id)
    if user is None:
        # stale cookie from a previous store
        request.session.clear()
    return user


def get_current_user(identity: Optional[User] = Depends(current_identity)) -> User:
    return require_authenticated(identity)


def bind_identity(request: Request, user: User) -> None:
    request.session[SESSION_KEY] = user.id


def logout(request: Request) -> None:
    request.session.clear()
