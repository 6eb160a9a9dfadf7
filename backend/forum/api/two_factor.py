"""Two-factor authentication endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from forum.api.deps import get_current_user, get_db, get_mailer, get_settings_dep
from forum.config import Settings
from forum.database import utc_now
from forum.models.auth import TwoFactorSetting
from forum.models.user import User
from forum.schemas.auth import EmailRequest, VerifyOTPRequest
from forum.schemas.common import MessageResponse
from forum.services.email import ResendMailer
from forum.services.otp import OTP_TYPE_2FA, OTPRejected, issue_otp, verify_otp

router = APIRouter(prefix="/auth/2fa", tags=["auth"])


def set_two_factor(db: Session, user_id: str, enabled: bool) -> TwoFactorSetting:
    """Upsert the user's 2FA toggle."""
    setting = db.query(TwoFactorSetting).filter(TwoFactorSetting.user_id == user_id).first()
    if setting is None:
        setting = TwoFactorSetting(user_id=user_id, enabled=enabled)
        db.add(setting)
    else:
        setting.enabled = enabled
        setting.updated_at = utc_now()
    db.commit()
    return setting


@router.post("/send-otp", response_model=MessageResponse)
def send_otp(
    payload: EmailRequest,
    db: Session = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
    settings: Settings = Depends(get_settings_dep),
):
    """Email a login verification code."""
    user = db.query(User).filter(User.email == payload.email).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    issue_otp(db, user, OTP_TYPE_2FA, mailer, settings.otp_ttl_minutes)
    db.commit()
    return MessageResponse(message="OTP sent successfully")


@router.post("/verify", response_model=MessageResponse)
def verify_code(
    payload: VerifyOTPRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    """Consume a login verification code."""
    try:
        verify_otp(db, OTP_TYPE_2FA, payload.code, payload.email, settings.otp_max_attempts)
    except OTPRejected as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    db.commit()
    return MessageResponse(message="OTP verified successfully")


@router.post("/enable", response_model=MessageResponse)
def enable(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    set_two_factor(db, current_user.id, True)
    return MessageResponse(message="2FA enabled successfully")


@router.post("/disable", response_model=MessageResponse)
def disable(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    set_two_factor(db, current_user.id, False)
    return MessageResponse(message="2FA disabled successfully")
