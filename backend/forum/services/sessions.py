"""Server-side session records used as refresh handles."""
from datetime import timedelta

from sqlalchemy.orm import Session

from forum.database import utc_now
from forum.models.auth import UserSession
from forum.services.security import generate_opaque_token


def create_session(
    db: Session,
    user_id: str,
    token: str,
    ip_address: str,
    user_agent: str,
    ttl_hours: int = 24,
) -> UserSession:
    """Persist a new active session pairing an opaque id with the bearer token."""
    now = utc_now()
    session = UserSession(
        id=generate_opaque_token(),
        user_id=user_id,
        token_id=token,
        ip_address=ip_address,
        user_agent=user_agent[:255],
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
        last_activity=now,
        is_active=True,
    )
    db.add(session)
    db.flush()
    return session


def get_active_session(db: Session, session_id: str) -> UserSession | None:
    return db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.is_active.is_(True),
    ).first()


def is_expired(session: UserSession) -> bool:
    return session.expires_at < utc_now()


def rotate_session(
    db: Session,
    session: UserSession,
    ip_address: str,
    user_agent: str,
    ttl_hours: int = 24,
) -> UserSession:
    """Replace a session with a new one carrying the same bearer token."""
    new_session = create_session(db, session.user_id, session.token_id, ip_address, user_agent, ttl_hours)
    session.is_active = False
    session.last_activity = utc_now()
    return new_session


def deactivate_session(db: Session, session_id: str, user_id: str) -> int:
    """Deactivate one session if it belongs to the user."""
    return db.query(UserSession).filter(
        UserSession.id == session_id,
        UserSession.user_id == user_id,
    ).update({"is_active": False}, synchronize_session=False)


def deactivate_all_sessions(db: Session, user_id: str) -> int:
    """Deactivate every session of a user."""
    return db.query(UserSession).filter(
        UserSession.user_id == user_id,
        UserSession.is_active.is_(True),
    ).update({"is_active": False}, synchronize_session=False)
