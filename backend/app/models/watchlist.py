"""Auction watchlist entry."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base


class AuctionWatchlist(Base):
    __tablename__ = "auction_watchlist"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    auction_id = Column(String(36), ForeignKey("auctions.id"), nullable=False)
    actor_id = Column(String(36), ForeignKey("actors.id"), nullable=False, index=True)
    notify_outbid = Column(Boolean, nullable=False, default=True)
    notify_ending = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("auction_id", "actor_id", name="uq_watchlist_auction_actor"),
    )

    auction = relationship("Auction")
