"""SQLAlchemy ORM models."""

from app.models.actor import Actor
from app.models.profile import ModelProfile, Fan, Brand
from app.models.coin_transaction import CoinTransaction
from app.models.booking import Booking
from app.models.auction import Auction
from app.models.auction_bid import AuctionBid
from app.models.watchlist import AuctionWatchlist
from app.models.notification import Notification
from app.models.model_application import ModelApplication

__all__ = [
    "Actor",
    "ModelProfile",
    "Fan",
    "Brand",
    "CoinTransaction",
    "Booking",
    "Auction",
    "AuctionBid",
    "AuctionWatchlist",
    "Notification",
    "ModelApplication",
]
