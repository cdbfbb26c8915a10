"""Auction model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship

from app.database import Base


class Auction(Base):
    __tablename__ = "auctions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    model_id = Column(String(36), ForeignKey("models.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    deliverables = Column(Text, nullable=True)
    category = Column(String(30), nullable=False, default="other")
    starting_price = Column(Integer, nullable=False)
    reserve_price = Column(Integer, nullable=True)
    buy_now_price = Column(Integer, nullable=True)
    current_bid = Column(Integer, nullable=True)
    bid_count = Column(Integer, nullable=False, default=0)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    original_end_at = Column(DateTime(timezone=True), nullable=False)
    anti_snipe_minutes = Column(Integer, nullable=False, default=2)
    status = Column(String(20), nullable=False, default="draft", index=True)  # draft | active | ended | sold | no_sale | cancelled
    winner_id = Column(String(36), ForeignKey("actors.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    model = relationship("ModelProfile")
    bids = relationship("AuctionBid", back_populates="auction", order_by="AuctionBid.created_at.desc()")
