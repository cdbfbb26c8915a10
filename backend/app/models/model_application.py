"""Model application — submitted through model signup, reviewed by admins."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Date, DateTime, ForeignKey

from app.database import Base


class ModelApplication(Base):
    __tablename__ = "model_applications"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)
    display_name = Column(String(100), nullable=False)
    email = Column(String(254), nullable=False)
    instagram_username = Column(String(30), nullable=True, index=True)
    tiktok_username = Column(String(24), nullable=True)
    phone = Column(String(20), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    height = Column(String(10), nullable=True)
    status = Column(String(20), nullable=False, default="pending")  # pending | approved | rejected
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
