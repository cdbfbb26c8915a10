"""Auction, bid and watchlist schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.config import settings


class AuctionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    deliverables: Optional[str] = Field(None, max_length=2000)
    category: str = "other"
    starting_price: int = Field(ge=settings.MIN_AUCTION_PRICE)
    reserve_price: Optional[int] = Field(None, ge=settings.MIN_AUCTION_PRICE)
    buy_now_price: Optional[int] = Field(None, ge=settings.MIN_AUCTION_PRICE)
    ends_at: datetime
    anti_snipe_minutes: int = Field(settings.DEFAULT_ANTI_SNIPE_MINUTES, ge=0, le=settings.MAX_ANTI_SNIPE_MINUTES)


class AuctionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    deliverables: Optional[str] = Field(None, max_length=2000)
    category: Optional[str] = None
    starting_price: Optional[int] = Field(None, ge=settings.MIN_AUCTION_PRICE)
    reserve_price: Optional[int] = Field(None, ge=settings.MIN_AUCTION_PRICE)
    buy_now_price: Optional[int] = Field(None, ge=settings.MIN_AUCTION_PRICE)
    ends_at: Optional[datetime] = None
    anti_snipe_minutes: Optional[int] = Field(None, ge=0, le=settings.MAX_ANTI_SNIPE_MINUTES)


class PlaceBidRequest(BaseModel):
    amount: int = Field(ge=settings.MIN_AUCTION_PRICE)


class PlaceBidResponse(BaseModel):
    success: bool = True
    bid_id: str
    final_amount: int
    escrow_deducted: int
    new_balance: int
    is_winning: bool
    is_buy_now: bool = False
    auction_extended: bool
    new_end_time: Optional[str] = None


class BuyNowResponse(BaseModel):
    success: bool = True
    bid_id: str
    amount: int
    escrow_deducted: int
    new_balance: int


class BidResponse(BaseModel):
    id: str
    auction_id: str
    bidder_id: str
    amount: int
    escrow_amount: int
    status: str
    is_buy_now: bool
    created_at: str


class AuctionResponse(BaseModel):
    id: str
    model_id: str
    title: str
    description: Optional[str]
    deliverables: Optional[str]
    category: str
    starting_price: int
    reserve_price: Optional[int]
    buy_now_price: Optional[int]
    current_bid: Optional[int]
    bid_count: int
    ends_at: str
    original_end_at: str
    anti_snipe_minutes: int
    status: str
    winner_id: Optional[str]
    created_at: str
    updated_at: str


class AuctionDetailResponse(BaseModel):
    auction: AuctionResponse
    bids: list[BidResponse]
    watchlist_count: int
    is_watching: bool = False


class AuctionListResponse(BaseModel):
    auctions: list[AuctionResponse]
    total: int
    page: int
    page_size: int


class WatchlistAdd(BaseModel):
    auction_id: str
    notify_outbid: bool = True
    notify_ending: bool = True


class WatchlistEntryResponse(BaseModel):
    id: str
    auction_id: str
    notify_outbid: bool
    notify_ending: bool
    added_at: str
    auction: Optional[AuctionResponse] = None
