"""Auction bid model — escrow is taken when the bid is placed."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.database import Base


class AuctionBid(Base):
    __tablename__ = "auction_bids"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    auction_id = Column(String(36), ForeignKey("auctions.id"), nullable=False, index=True)
    bidder_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    escrow_amount = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active")  # active | winning | outbid | won | refunded
    is_buy_now = Column(Boolean, nullable=False, default=False)
    escrow_released_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    # Relationships
    auction = relationship("Auction", back_populates="bids")
    bidder = relationship("Actor")
