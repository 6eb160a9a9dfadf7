"""Moderation report model."""
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from forum.database import Base, utc_now


class Report(Base):
    """User report against a post or a comment."""

    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_status_created", "status", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    reporter_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="CASCADE"))
    comment_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"))
    reason = Column(Text, nullable=False)

    # pending, reviewed, resolved, dismissed, rejected
    status = Column(String(20), default="pending", nullable=False)

    reviewed_by = Column(String(36))
    reviewed_at = Column(DateTime)
    resolved_by = Column(String(36))
    resolved_at = Column(DateTime)
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    reporter = relationship("User", back_populates="reports", foreign_keys=[reporter_id])
