"""Auctions router — listings, bidding, buy-now, settlement and watchlist."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import NotFoundError, ServiceError, to_http_exception
from app.middleware.auth import get_current_actor, get_optional_actor, require_model
from app.models.actor import Actor
from app.models.auction import Auction
from app.models.auction_bid import AuctionBid
from app.models.watchlist import AuctionWatchlist
from app.schemas.auction import (
    AuctionCreate,
    AuctionUpdate,
    PlaceBidRequest,
    PlaceBidResponse,
    BuyNowResponse,
    BidResponse,
    AuctionResponse,
    AuctionDetailResponse,
    AuctionListResponse,
    WatchlistAdd,
    WatchlistEntryResponse,
)
from app.services import auction_service

router = APIRouter(prefix="/api/auctions", tags=["auctions"])

# Columns that cannot be cleared by an update
REQUIRED_FIELDS = {"title", "category", "starting_price", "ends_at", "anti_snipe_minutes"}


def _iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def auction_to_response(auction: Auction) -> AuctionResponse:
    return AuctionResponse(
        id=auction.id,
        model_id=auction.model_id,
        title=auction.title,
        description=auction.description,
        deliverables=auction.deliverables,
        category=auction.category,
        starting_price=auction.starting_price,
        reserve_price=auction.reserve_price,
        buy_now_price=auction.buy_now_price,
        current_bid=auction.current_bid,
        bid_count=auction.bid_count,
        ends_at=_iso(auction.ends_at),
        original_end_at=_iso(auction.original_end_at),
        anti_snipe_minutes=auction.anti_snipe_minutes,
        status=auction.status,
        winner_id=auction.winner_id,
        created_at=_iso(auction.created_at),
        updated_at=_iso(auction.updated_at),
    )


def bid_to_response(bid: AuctionBid) -> BidResponse:
    return BidResponse(
        id=bid.id,
        auction_id=bid.auction_id,
        bidder_id=bid.bidder_id,
        amount=bid.amount,
        escrow_amount=bid.escrow_amount,
        status=bid.status,
        is_buy_now=bid.is_buy_now,
        created_at=_iso(bid.created_at),
    )


def _watch_to_response(entry: AuctionWatchlist) -> WatchlistEntryResponse:
    return WatchlistEntryResponse(
        id=entry.id,
        auction_id=entry.auction_id,
        notify_outbid=entry.notify_outbid,
        notify_ending=entry.notify_ending,
        added_at=_iso(entry.created_at),
        auction=auction_to_response(entry.auction) if entry.auction else None,
    )


@router.get("", response_model=AuctionListResponse)
def list_auctions(
    status: str = Query("active"),
    model_id: Optional[str] = Query(None),
    has_buy_now: bool = Query(False),
    sort: str = Query("ending_soon"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Browse auctions. Drafts are never listed."""
    auctions, total = auction_service.list_auctions(
        db,
        status=status,
        model_id=model_id,
        has_buy_now=has_buy_now,
        sort=sort,
        page=page,
        page_size=page_size,
    )
    return AuctionListResponse(
        auctions=[auction_to_response(a) for a in auctions],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("", response_model=AuctionResponse, status_code=201)
def create_auction(
    req: AuctionCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(require_model),
):
    """Create a draft auction (approved models only)."""
    try:
        auction = auction_service.create_auction(db, current_actor, **req.model_dump())
    except ServiceError as e:
        raise to_http_exception(e)
    return auction_to_response(auction)


@router.get("/watchlist", response_model=list[WatchlistEntryResponse])
def my_watchlist(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    return [_watch_to_response(w) for w in auction_service.list_watchlist(db, current_actor)]


@router.post("/watchlist", response_model=WatchlistEntryResponse, status_code=201)
def add_to_watchlist(
    req: WatchlistAdd,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        entry = auction_service.add_to_watchlist(
            db,
            current_actor,
            req.auction_id,
            notify_outbid=req.notify_outbid,
            notify_ending=req.notify_ending,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return _watch_to_response(entry)


@router.delete("/watchlist/{auction_id}")
def remove_from_watchlist(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        auction_service.remove_from_watchlist(db, current_actor, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"success": True}


@router.get("/my-bids", response_model=list[BidResponse])
def my_bids(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Every bid the current actor has placed, newest first."""
    return [bid_to_response(b) for b in auction_service.list_bids_for_bidder(db, current_actor.id)]


@router.get("/{auction_id}", response_model=AuctionDetailResponse)
def get_auction(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Optional[Actor] = Depends(get_optional_actor),
):
    """Auction detail with bid history and watcher count."""
    try:
        auction = auction_service.get_auction(db, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)

    can_see_draft = current_actor is not None and (
        current_actor.id == auction.model_id or current_actor.type == "admin"
    )
    if auction.status == "draft" and not can_see_draft:
        raise to_http_exception(NotFoundError("Auction not found"))

    is_watching = False
    if current_actor is not None:
        is_watching = any(
            w.auction_id == auction.id for w in auction_service.list_watchlist(db, current_actor)
        )
    return AuctionDetailResponse(
        auction=auction_to_response(auction),
        bids=[bid_to_response(b) for b in auction_service.list_bids(db, auction.id, limit=20)],
        watchlist_count=auction_service.watchlist_count(db, auction.id),
        is_watching=is_watching,
    )


@router.patch("/{auction_id}", response_model=AuctionResponse)
def update_auction(
    auction_id: str,
    req: AuctionUpdate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Edit a draft auction."""
    changes = req.model_dump(exclude_unset=True)
    changes = {k: v for k, v in changes.items() if v is not None or k not in REQUIRED_FIELDS}
    try:
        auction = auction_service.update_auction(db, current_actor, auction_id, **changes)
    except ServiceError as e:
        raise to_http_exception(e)
    return auction_to_response(auction)


@router.delete("/{auction_id}")
def delete_auction(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        auction_service.delete_auction(db, current_actor, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"success": True}


@router.post("/{auction_id}/publish", response_model=AuctionResponse)
def publish_auction(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        auction = auction_service.publish_auction(db, current_actor, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return auction_to_response(auction)


@router.post("/{auction_id}/bid", response_model=PlaceBidResponse)
def place_bid(
    auction_id: str,
    req: PlaceBidRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Bid on an active auction. The full amount is held in escrow."""
    try:
        result = auction_service.place_bid(db, current_actor, auction_id, req.amount)
    except ServiceError as e:
        raise to_http_exception(e)
    result["new_end_time"] = _iso(result["new_end_time"])
    return PlaceBidResponse(**result)


@router.post("/{auction_id}/buy-now", response_model=BuyNowResponse)
def buy_now(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        result = auction_service.buy_now(db, current_actor, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return BuyNowResponse(**result)


@router.get("/{auction_id}/bids", response_model=list[BidResponse])
def list_bids(
    auction_id: str,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    try:
        auction_service.get_auction(db, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return [bid_to_response(b) for b in auction_service.list_bids(db, auction_id, limit=limit)]


@router.post("/{auction_id}/close", response_model=AuctionResponse)
def close_auction(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Settle an expired auction now instead of waiting for the sweep."""
    try:
        auction = auction_service.close_auction(db, auction_id, actor=current_actor)
    except ServiceError as e:
        raise to_http_exception(e)
    return auction_to_response(auction)


@router.post("/{auction_id}/cancel", response_model=AuctionResponse)
def cancel_auction(
    auction_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        auction = auction_service.cancel_auction(db, current_actor, auction_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return auction_to_response(auction)
