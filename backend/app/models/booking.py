"""Booking model.

``total_amount`` is frozen from the model's rate card when the request is
created. ``escrow_status`` tracks the coins taken from the client on
acceptance: none -> held -> released (paid to model) | refunded (to client).
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Float, Boolean, Date, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    booking_number = Column(String(20), unique=True, nullable=False)
    model_id = Column(String(36), ForeignKey("models.id"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)

    service_type = Column(String(50), nullable=False)
    service_description = Column(Text, nullable=True)
    event_date = Column(Date, nullable=False)
    start_time = Column(String(10), nullable=True)
    duration_hours = Column(Float, nullable=True)
    location_name = Column(String(255), nullable=True)
    location_address = Column(String(255), nullable=True)
    location_city = Column(String(100), nullable=True)
    location_state = Column(String(100), nullable=True)
    is_remote = Column(Boolean, nullable=False, default=False)
    client_notes = Column(Text, nullable=True)

    quoted_rate = Column(Integer, nullable=False, default=0)
    total_amount = Column(Integer, nullable=False, default=0)
    counter_amount = Column(Integer, nullable=True)
    counter_notes = Column(Text, nullable=True)
    model_response_notes = Column(Text, nullable=True)

    # pending | counter | accepted | declined | confirmed | cancelled | no_show | completed
    status = Column(String(20), nullable=False, default="pending", index=True)
    escrow_amount = Column(Integer, nullable=False, default=0)
    escrow_status = Column(String(20), nullable=False, default="none")  # none | held | released | refunded

    cancelled_by = Column(String(36), ForeignKey("actors.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    model = relationship("ModelProfile")
    client = relationship("Actor", foreign_keys=[client_id])
