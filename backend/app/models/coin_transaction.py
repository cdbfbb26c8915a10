"""Coin transaction model — immutable, append-only ledger entry."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base


class CoinTransaction(Base):
    __tablename__ = "coin_transactions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    actor_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)  # signed: credits > 0, debits < 0
    action = Column(String(50), nullable=False)  # signup_bonus | tip_sent | booking_escrow | ...
    # "metadata" is reserved on declarative classes, so the attribute is renamed
    meta = Column("metadata", Text, nullable=True)  # JSON string
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    actor = relationship("Actor", back_populates="transactions")
