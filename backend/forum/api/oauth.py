"""Google sign-in through the hosted auth provider."""
from datetime import timedelta
import logging
from urllib.parse import urlsplit

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from forum.api.deps import get_client_ip, get_db, get_identity, get_settings_dep, get_user_agent
from forum.config import Settings
from forum.database import utc_now
from forum.models.auth import OAuthState
from forum.models.user import User
from forum.schemas.auth import OAuthStartResponse
from forum.services.audit import log_security_event
from forum.services.identity import IdentityProviderError, SupabaseAuthClient
from forum.services.security import generate_opaque_token
from forum.services.sessions import create_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/oauth", tags=["auth"])

PROVIDER = "google"

DEFAULT_PORTS = {"http": 80, "https": 443}


def request_origin(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


def url_origin(url: str) -> tuple[str, str, int] | None:
    """(scheme, host, port) of an absolute http(s) URL, or None when it has none."""
    parts = urlsplit(url.strip())
    if parts.scheme not in DEFAULT_PORTS or not parts.hostname:
        return None
    try:
        port = parts.port
    except ValueError:
        return None
    return parts.scheme, parts.hostname, port or DEFAULT_PORTS[parts.scheme]


def is_allowed_redirect(redirect_url: str, allowlist: list[str]) -> bool:
    """The redirect must live on exactly one of the allowlisted origins."""
    origin = url_origin(redirect_url)
    if origin is None:
        return False
    return any(origin == url_origin(allowed) for allowed in allowlist)


def profile_from_identity(identity_user: dict) -> dict:
    """Name, avatar and verification flag from the provider's user payload."""
    metadata = identity_user.get("user_metadata") or {}
    email = identity_user.get("email") or ""
    name = metadata.get("full_name") or metadata.get("name") or (email.split("@")[0] if email else "") or "User"
    return {
        "name": name,
        "email": email,
        "avatar": metadata.get("avatar_url") or metadata.get("picture") or "",
        "is_verified": bool(identity_user.get("email_confirmed_at")),
    }


@router.get("/google", response_model=OAuthStartResponse)
def start_google_oauth(
    request: Request,
    redirect_url: str | None = Query(None),
    db: Session = Depends(get_db),
    identity: SupabaseAuthClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Mint a CSRF state and return the provider's authorize URL."""
    origin = request_origin(request)
    redirect_url = redirect_url or origin
    allowlist = settings.oauth_redirect_allowlist or [origin]
    if not is_allowed_redirect(redirect_url, allowlist):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid redirect URL",
        )

    now = utc_now()
    state = generate_opaque_token()
    db.merge(OAuthState(
        state=state,
        provider=PROVIDER,
        redirect_url=redirect_url,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.oauth_state_ttl_minutes),
    ))
    db.commit()

    callback_url = f"{origin}{request.url.path.rstrip('/')}/callback"
    return OAuthStartResponse(auth_url=identity.authorize_url(PROVIDER, callback_url, state), state=state)


@router.get("/google/callback")
def google_oauth_callback(
    request: Request,
    code: str | None = Query(None),
    state: str | None = Query(None),
    code_verifier: str = Query(""),
    db: Session = Depends(get_db),
    identity: SupabaseAuthClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Exchange the code, upsert the profile and redirect with the token in the fragment."""
    if not code or not state:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing code or state",
        )

    oauth_state = db.query(OAuthState).filter(OAuthState.state == state).first()
    if oauth_state is None:
        logger.warning("OAuth callback with an unknown state")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired state",
        )

    expired = oauth_state.expires_at < utc_now()
    redirect_url = oauth_state.redirect_url or request_origin(request)
    db.delete(oauth_state)
    db.commit()
    if expired:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="OAuth state expired",
        )

    try:
        auth_data = identity.exchange_code(code, code_verifier)
    except IdentityProviderError as exc:
        logger.warning(f"OAuth code exchange failed: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to exchange authorization code",
        )

    access_token = auth_data.get("access_token")
    identity_user = auth_data.get("user") or {}
    user_id = identity_user.get("id")
    if not user_id or not access_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to authenticate with Google",
        )

    profile = profile_from_identity(identity_user)
    user = db.query(User).filter(User.id == user_id).first()
    is_new_user = user is None
    if is_new_user:
        user = User(
            id=user_id,
            name=profile["name"],
            email=profile["email"],
            avatar=profile["avatar"],
            is_admin=False,
            is_verified=profile["is_verified"],
            is_active=True,
            role="user",
            provider=PROVIDER,
        )
        db.add(user)
    else:
        user.avatar = profile["avatar"] or user.avatar
        user.is_verified = True
    db.flush()

    ip_address = get_client_ip(request)
    user_agent = get_user_agent(request)
    create_session(db, user.id, access_token, ip_address, user_agent, settings.session_ttl_hours)
    log_security_event(
        db,
        "oauth_login",
        True,
        user_id=user.id,
        ip_address=ip_address,
        user_agent=user_agent,
        details=PROVIDER,
    )
    db.commit()

    fragment = f"token={access_token}&isNewUser={'true' if is_new_user else 'false'}"
    return RedirectResponse(url=f"{redirect_url}#{fragment}", status_code=status.HTTP_302_FOUND)
