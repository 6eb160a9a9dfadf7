"""Authentication API endpoints."""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from forum.api.deps import (
    get_client_ip,
    get_current_user,
    get_db,
    get_identity,
    get_mailer,
    get_settings_dep,
    get_user_agent,
)
from forum.config import Settings
from forum.models.user import DEFAULT_AVATAR, User
from forum.schemas.auth import (
    AuthResponse,
    ChangePasswordRequest,
    EmailRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    ResetPasswordConfirm,
    SignupRequest,
    VerifyResponse,
)
from forum.schemas.common import MessageResponse
from forum.schemas.user import UserResponse
from forum.services.audit import log_security_event
from forum.services.email import ResendMailer
from forum.services.identity import IdentityProviderError, SupabaseAuthClient
from forum.services.lockout import clear_lockout, get_lockout, is_locked, record_failed_login
from forum.services.otp import OTP_TYPE_PASSWORD_RESET, OTPRejected, issue_otp, verify_otp
from forum.services.permissions import permissions_for
from forum.services.sessions import (
    create_session,
    deactivate_all_sessions,
    deactivate_session,
    get_active_session,
    is_expired,
    rotate_session,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def build_auth_response(user: User, token: str, session_id: str, settings: Settings) -> AuthResponse:
    """Shape the login/signup/refresh response."""
    return AuthResponse(
        token=token,
        refresh_token=session_id,
        expires_in=settings.session_ttl_hours * 3600,
        user=UserResponse.model_validate(user),
        roles=[user.role],
        permissions=permissions_for(user.role),
    )


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    request: Request,
    db: Session = Depends(get_db),
    identity: SupabaseAuthClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Register with the auth provider and create the local profile."""
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Unable to create account",
        )

    try:
        auth_data = identity.sign_up(payload.email, payload.password, payload.name)
    except IdentityProviderError as exc:
        raise HTTPException(
            status_code=exc.status_code or status.HTTP_400_BAD_REQUEST,
            detail=exc.message or "Signup failed",
        )

    user_id = (auth_data.get("user") or {}).get("id") or auth_data.get("id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create user",
        )

    # No token when the provider requires email confirmation; try signing in
    access_token = auth_data.get("access_token") or ""
    if not access_token:
        try:
            access_token = identity.sign_in_with_password(payload.email, payload.password).get("access_token") or ""
        except IdentityProviderError as exc:
            logger.info(f"Sign-in after signup failed for {user_id}: {exc.message}")

    user = User(
        id=user_id,
        name=payload.name,
        email=payload.email,
        avatar=DEFAULT_AVATAR,
        is_admin=False,
        is_verified=False,
        is_active=True,
        role="user",
        provider="email",
    )
    db.add(user)
    db.flush()

    ip_address = get_client_ip(request)
    user_agent = get_user_agent(request)
    session = create_session(db, user.id, access_token, ip_address, user_agent, settings.session_ttl_hours)
    log_security_event(db, "signup", True, user_id=user.id, ip_address=ip_address, user_agent=user_agent)
    db.commit()
    db.refresh(user)

    return build_auth_response(user, access_token, session.id, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    identity: SupabaseAuthClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Verify credentials with the auth provider and open a session."""
    ip_address = get_client_ip(request)
    user_agent = get_user_agent(request)

    try:
        auth_data = identity.sign_in_with_password(payload.email, payload.password)
    except IdentityProviderError as exc:
        user = db.query(User).filter(User.email == payload.email).first()
        if user:
            record_failed_login(db, user.id, settings.max_login_attempts, settings.lockout_minutes)
        log_security_event(
            db,
            "login_attempt",
            False,
            user_id=user.id if user else None,
            ip_address=ip_address,
            user_agent=user_agent,
            details="invalid_credentials",
        )
        db.commit()
        logger.info(f"Login rejected by auth provider (status {exc.status_code})")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    if is_locked(get_lockout(db, user.id)):
        raise HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail="Account temporarily locked due to multiple failed login attempts",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive",
        )

    clear_lockout(db, user.id)
    access_token = auth_data.get("access_token") or ""
    session = create_session(db, user.id, access_token, ip_address, user_agent, settings.session_ttl_hours)
    log_security_event(db, "login", True, user_id=user.id, ip_address=ip_address, user_agent=user_agent)
    db.commit()
    db.refresh(user)

    return build_auth_response(user, access_token, session.id, settings)


@router.post("/refresh", response_model=AuthResponse)
def refresh_tokens(
    payload: RefreshRequest,
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    """Rotate the session; the bearer token is carried over unchanged."""
    session = get_active_session(db, payload.refresh_token)
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired refresh token",
        )
    if is_expired(session):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh token expired",
        )

    user = db.query(User).filter(User.id == session.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    new_session = rotate_session(
        db,
        session,
        get_client_ip(request),
        get_user_agent(request),
        settings.session_ttl_hours,
    )
    db.commit()
    db.refresh(user)

    return build_auth_response(user, new_session.token_id, new_session.id, settings)


@router.post("/logout", response_model=MessageResponse)
def logout(
    request: Request,
    payload: LogoutRequest | None = Body(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """End the named session, if it belongs to the caller."""
    if payload and payload.refresh_token:
        deactivate_session(db, payload.refresh_token, current_user.id)
    log_security_event(
        db,
        "logout",
        True,
        user_id=current_user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return MessageResponse(message="Logged out successfully")


@router.get("/verify", response_model=VerifyResponse)
def verify(current_user: User = Depends(get_current_user)):
    """Return the profile behind the bearer token."""
    return VerifyResponse(user=UserResponse.model_validate(current_user))


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    identity: SupabaseAuthClient = Depends(get_identity),
):
    """Set a new password and sign out every session."""
    try:
        identity.update_password(current_user.id, payload.new_password)
    except IdentityProviderError as exc:
        logger.error(f"Password update failed for {current_user.id}: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update password",
        )

    deactivate_all_sessions(db, current_user.id)
    log_security_event(
        db,
        "password_change",
        True,
        user_id=current_user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return MessageResponse(message="Password updated successfully")


@router.post("/reset-password", response_model=MessageResponse)
def request_password_reset(
    payload: EmailRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings_dep),
):
    """Email a reset code. The response never reveals whether the account exists."""
    user = db.query(User).filter(User.email == payload.email).first()
    if user:
        issue_otp(db, user, OTP_TYPE_PASSWORD_RESET, mailer, settings.otp_ttl_minutes)
    log_security_event(
        db,
        "password_reset_request",
        True,
        user_id=user.id if user else None,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return MessageResponse(message="If an account exists, a reset code has been sent")


@router.post("/reset-password/confirm", response_model=MessageResponse)
def confirm_password_reset(
    payload: ResetPasswordConfirm,
    request: Request,
    db: Session = Depends(get_db),
    identity: SupabaseAuthClient = Depends(get_identity),
    settings: Settings = Depends(get_settings_dep),
):
    """Check the reset code, set the new password and sign out every session."""
    try:
        verify_otp(db, OTP_TYPE_PASSWORD_RESET, payload.otp_code, payload.email, settings.otp_max_attempts)
    except OTPRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    db.commit()

    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    try:
        identity.update_password(user.id, payload.new_password)
    except IdentityProviderError as exc:
        logger.error(f"Password reset failed for {user.id}: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reset password",
        )

    deactivate_all_sessions(db, user.id)
    log_security_event(
        db,
        "password_reset_confirm",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
    )
    db.commit()
    return MessageResponse(message="Password reset successfully")
