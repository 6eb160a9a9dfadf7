"""Uploaded media model."""
import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from forum.database import Base, utc_now


class Media(Base):
    """File stored in the hosted storage bucket."""

    __tablename__ = "media"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    post_id = Column(String(36), ForeignKey("posts.id", ondelete="SET NULL"), index=True)
    url = Column(String(1000), nullable=False)
    type = Column(String(10), nullable=False)  # image, video
    name = Column(String(255), nullable=False)
    size = Column(BigInteger, default=0, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False, index=True)

    user = relationship("User", back_populates="media")
    post = relationship("Post", back_populates="media")
