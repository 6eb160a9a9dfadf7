"""Shared API dependencies: database, collaborators, caller identity."""
from dataclasses import dataclass
from enum import Enum

from fastapi import Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from forum.config import Settings
from forum.database import get_db
from forum.models.user import User
from forum.services.email import ResendMailer
from forum.services.identity import SupabaseAuthClient
from forum.services.permissions import ROLE_SUPER_ADMIN, is_admin_role
from forum.services.security import InvalidTokenError, decode_access_token
from forum.services.storage import StorageClient

bearer_scheme = HTTPBearer(auto_error=False)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class AccessLevel(str, Enum):
    AUTHENTICATED = "authenticated"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


@dataclass(frozen=True)
class Authorized:
    user: User


@dataclass(frozen=True)
class Denied:
    status_code: int
    message: str


AuthResult = Authorized | Denied


def authorize(db: Session, settings: Settings, token: str | None, level: AccessLevel) -> AuthResult:
    """Resolve a bearer token to a user and check it against an access level."""
    if not token:
        return Denied(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    try:
        claims = decode_access_token(
            token,
            settings.supabase_jwt_secret,
            settings.jwt_algorithm,
            settings.jwt_audience or None,
        )
    except InvalidTokenError:
        return Denied(status.HTTP_401_UNAUTHORIZED, "Unauthorized")

    user = db.query(User).filter(User.id == claims["sub"]).first()
    if user is None:
        return Denied(status.HTTP_401_UNAUTHORIZED, "Unauthorized")
    if not user.is_active:
        return Denied(status.HTTP_403_FORBIDDEN, "Account is inactive")

    if level is AccessLevel.ADMIN and not is_admin_role(user.role):
        return Denied(status.HTTP_403_FORBIDDEN, "Forbidden: admin access required")
    if level is AccessLevel.SUPER_ADMIN and user.role != ROLE_SUPER_ADMIN:
        return Denied(status.HTTP_403_FORBIDDEN, "Forbidden: super admin access required")

    return Authorized(user)


def _require(result: AuthResult) -> User:
    match result:
        case Authorized(user=user):
            return user
        case Denied(status_code=status_code, message=message):
            raise HTTPException(status_code=status_code, detail=message)


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_identity(request: Request) -> SupabaseAuthClient:
    return request.app.state.identity


def get_storage(request: Request) -> StorageClient:
    return request.app.state.storage


def get_mailer(request: Request) -> ResendMailer:
    return request.app.state.mailer


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Get the signed-in user from the bearer token."""
    token = credentials.credentials if credentials else None
    return _require(authorize(db, request.app.state.settings, token, AccessLevel.AUTHENTICATED))


def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    return _require(authorize(db, request.app.state.settings, token, AccessLevel.ADMIN))


def get_current_super_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials if credentials else None
    return _require(authorize(db, request.app.state.settings, token, AccessLevel.SUPER_ADMIN))


def get_client_ip(request: Request) -> str:
    """Best-effort client IP for audit rows."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.headers.get("x-real-ip") or "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("user-agent") or "unknown"


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int


def pagination_params(limit: int = Query(DEFAULT_PAGE_SIZE), offset: int = Query(0)) -> Page:
    """Clamp limit/offset: non-positive limit falls back to the default."""
    if limit <= 0:
        limit = DEFAULT_PAGE_SIZE
    return Page(limit=min(limit, MAX_PAGE_SIZE), offset=max(offset, 0))
