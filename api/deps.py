"""
Shared FastAPI dependencies: the per-request entity store and the
bearer-token guard.

Tokens are opaque strings handed out by `python -m db.seed create-user`;
only their sha256 digest is stored on the user row.  Every protected route
depends on get_current_user, which raises Unauthorized (401) before any
core logic runs.
"""

import hashlib
import secrets
from dataclasses import dataclass

from fastapi import Depends, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from db.models import User
from db.session import get_session
from db.store import EntityStore
from errors import Unauthorized

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str
    username: str


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token() -> str:
    return secrets.token_urlsafe(32)


def get_store(session: Session = Depends(get_session)) -> EntityStore:
    return EntityStore(session)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    store: EntityStore = Depends(get_store),
) -> CurrentUser:
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Access token required")
    user = store.find_one(
        User,
        User.api_token_hash == hash_token(credentials.credentials),
        User.is_active.is_(True),
    )
    if user is None:
        raise Unauthorized("Invalid or expired token")
    return CurrentUser(id=user.id, role=user.role, username=user.username)


def pagination(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> Pagination:
    return Pagination(page=page, limit=limit)
