"""One-time code issuance and verification for 2FA and password reset."""
from datetime import timedelta
import logging

from sqlalchemy.orm import Session

from forum.database import utc_now
from forum.models.auth import OTPCode
from forum.models.user import User
from forum.services.email import EmailDeliveryError, ResendMailer
from forum.services.security import generate_otp_code, hash_otp_code, verify_otp_code

logger = logging.getLogger(__name__)

OTP_TYPE_2FA = "2fa"
OTP_TYPE_PASSWORD_RESET = "password_reset"


class OTPRejected(Exception):
    """Submitted code was not accepted."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def issue_otp(
    db: Session,
    user: User,
    otp_type: str,
    mailer: ResendMailer,
    ttl_minutes: int = 10,
) -> str:
    """Store a hashed code for the user and email the plain code.

    Email delivery is best effort: failures are logged and the code stays valid.
    """
    code = generate_otp_code()
    now = utc_now()
    db.add(OTPCode(
        user_id=user.id,
        email=user.email,
        code=hash_otp_code(code),
        type=otp_type,
        expires_at=now + timedelta(minutes=ttl_minutes),
        used=False,
        attempts=0,
        created_at=now,
    ))
    db.flush()

    try:
        mailer.send_otp(user.email, code, otp_type, ttl_minutes)
    except EmailDeliveryError as exc:
        logger.error(f"Failed to send {otp_type} code to user {user.id}: {exc.message}")

    return code


def verify_otp(
    db: Session,
    otp_type: str,
    code: str,
    email: str | None = None,
    max_attempts: int = 5,
) -> OTPCode:
    """Consume the newest unused code of a type.

    Rejections commit their bookkeeping (used flag, attempt count) before
    raising OTPRejected so the caller can return an error response.
    """
    query = db.query(OTPCode).filter(OTPCode.type == otp_type, OTPCode.used.is_(False))
    if email:
        query = query.filter(OTPCode.email == email)
    otp = query.order_by(OTPCode.created_at.desc(), OTPCode.id.desc()).first()

    if otp is None:
        raise OTPRejected("Invalid or expired code")

    if otp.expires_at < utc_now():
        otp.used = True
        db.commit()
        raise OTPRejected("Code expired")

    if otp.attempts >= max_attempts:
        otp.used = True
        db.commit()
        raise OTPRejected("Too many attempts")

    if not verify_otp_code(code, otp.code):
        otp.attempts = (otp.attempts or 0) + 1
        db.commit()
        raise OTPRejected("Invalid code")

    otp.used = True
    db.flush()
    return otp
