"""In-app notification model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Text

from app.database import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # booking_request | booking_accepted | outbid | ...
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    data = Column(Text, nullable=True)  # JSON string
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
