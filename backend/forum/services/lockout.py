"""Failed-login tracking and temporary account locks."""
from datetime import timedelta
import logging

from sqlalchemy.orm import Session

from forum.database import utc_now
from forum.models.auth import AccountLockout

logger = logging.getLogger(__name__)


def get_lockout(db: Session, user_id: str) -> AccountLockout | None:
    return db.query(AccountLockout).filter(AccountLockout.user_id == user_id).first()


def is_locked(lockout: AccountLockout | None) -> bool:
    """True while a lock window is still in the future."""
    return bool(lockout and lockout.locked_until and lockout.locked_until > utc_now())


def record_failed_login(
    db: Session,
    user_id: str,
    max_attempts: int = 5,
    lockout_minutes: int = 15,
) -> AccountLockout:
    """Count a failed login and start a lock window once the threshold is hit."""
    lockout = get_lockout(db, user_id)
    if lockout is None:
        lockout = AccountLockout(user_id=user_id, failed_attempts=0)
        db.add(lockout)

    lockout.failed_attempts = (lockout.failed_attempts or 0) + 1
    if lockout.failed_attempts >= max_attempts:
        lockout.locked_until = utc_now() + timedelta(minutes=lockout_minutes)
        logger.warning(f"Locking user {user_id} for {lockout_minutes} minutes after {lockout.failed_attempts} failed logins")
    db.flush()
    return lockout


def clear_lockout(db: Session, user_id: str) -> None:
    db.query(AccountLockout).filter(AccountLockout.user_id == user_id).delete(synchronize_session=False)
