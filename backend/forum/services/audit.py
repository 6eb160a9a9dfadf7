"""Append-only security event log."""
import logging

from sqlalchemy.orm import Session

from forum.models.auth import SecurityEvent

logger = logging.getLogger(__name__)


def log_security_event(
    db: Session,
    event_type: str,
    success: bool,
    user_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    details: str | None = None,
) -> SecurityEvent:
    """Add an audit row to the current unit of work and mirror it to the log."""
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        ip_address=ip_address,
        user_agent=(user_agent or "")[:255] or None,
        success=success,
        details=details,
    )
    db.add(event)

    message = f"security event {event_type} user={user_id or '-'} ip={ip_address or '-'}"
    if details:
        message += f" details={details}"
    if success:
        logger.info(message)
    else:
        logger.warning(message)
    return event
