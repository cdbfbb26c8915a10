"""Auction service — listing lifecycle, bidding with escrow, and settlement.

Bidding takes the full bid amount from the bidder into escrow. When a higher
bid lands, the previous winning bid becomes ``outbid`` and its escrow is
refunded in the same transaction. ``current_bid`` only moves through a
conditional update, so two racing bids cannot both win the same price step.

At close (after ``ends_at``):
    no bids                      -> ended
    bids, reserve not met        -> no_sale  (winning escrow refunded)
    bids, reserve met or unset   -> sold     (winning escrow paid to the model)
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.config import settings
from app.exceptions import (
    BidRejectedError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
)
from app.models.actor import Actor
from app.models.auction import Auction
from app.models.auction_bid import AuctionBid
from app.models.profile import ModelProfile
from app.models.watchlist import AuctionWatchlist
from app.services import ledger, notifications, reservations

logger = logging.getLogger(__name__)

CATEGORIES = ("video_call", "custom_content", "meet_greet", "shoutout", "experience", "other")
SORT_OPTIONS = ("ending_soon", "newest", "most_bids", "price_low", "price_high")
LIST_STATUSES = ("all", "active", "ending_soon", "new")
EDITABLE_FIELDS = (
    "title", "description", "deliverables", "category", "starting_price",
    "reserve_price", "buy_now_price", "ends_at", "anti_snipe_minutes",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; they are stored as UTC."""
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _validate_terms(
    starting_price: int,
    reserve_price: Optional[int],
    buy_now_price: Optional[int],
    anti_snipe_minutes: int,
    category: str,
) -> None:
    if starting_price < settings.MIN_AUCTION_PRICE:
        raise InvalidStateError(f"Starting price must be at least {settings.MIN_AUCTION_PRICE}")
    if buy_now_price is not None and buy_now_price <= starting_price:
        raise InvalidStateError("Buy now price must be greater than starting price")
    if reserve_price is not None and reserve_price <= starting_price:
        raise InvalidStateError("Reserve price must be greater than starting price")
    if not 0 <= anti_snipe_minutes <= settings.MAX_ANTI_SNIPE_MINUTES:
        raise InvalidStateError(f"Anti-snipe window must be 0-{settings.MAX_ANTI_SNIPE_MINUTES} minutes")
    if category not in CATEGORIES:
        raise InvalidStateError(f"Invalid category '{category}'")


def _get_owned(db: Session, actor: Actor, auction_id: str, for_update: bool = False) -> Auction:
    query = db.query(Auction).filter(Auction.id == auction_id)
    if for_update:
        query = query.with_for_update()
    auction = query.first()
    if not auction:
        raise NotFoundError("Auction not found")
    if auction.model_id != actor.id and actor.type != "admin":
        raise PermissionDeniedError("Not your auction")
    return auction


def _winning_bid(db: Session, auction_id: str) -> Optional[AuctionBid]:
    return (
        db.query(AuctionBid)
        .filter(AuctionBid.auction_id == auction_id, AuctionBid.status == "winning")
        .first()
    )


def _refund_bid(db: Session, bid: AuctionBid, new_status: str, now: datetime) -> None:
    """Return a bid's escrow to its bidder."""
    if bid.escrow_amount > 0 and bid.escrow_released_at is None:
        ledger.post_transaction(db, bid.bidder_id, bid.escrow_amount, "auction_refund", {
            "auction_id": bid.auction_id,
            "bid_id": bid.id,
        })
    bid.status = new_status
    bid.escrow_released_at = now


def _pay_model(db: Session, auction: Auction, bid: AuctionBid, now: datetime) -> None:
    """Release a winning bid's escrow to the auction's model."""
    ledger.post_transaction(db, auction.model_id, bid.escrow_amount, "auction_payout", {
        "auction_id": auction.id,
        "bid_id": bid.id,
        "winner_id": bid.bidder_id,
    })
    bid.status = "won"
    bid.escrow_released_at = now


# ── Listing lifecycle ────────────────────────────────────────────────────────

def create_auction(
    db: Session,
    actor: Actor,
    title: str,
    starting_price: int,
    ends_at: datetime,
    description: Optional[str] = None,
    deliverables: Optional[str] = None,
    category: str = "other",
    reserve_price: Optional[int] = None,
    buy_now_price: Optional[int] = None,
    anti_snipe_minutes: Optional[int] = None,
    now: Optional[datetime] = None,
) -> Auction:
    """Create an auction in draft status for an approved model."""
    model = db.query(ModelProfile).filter(ModelProfile.id == actor.id).first()
    if not model:
        raise NotFoundError("Model profile not found")
    if not model.is_approved:
        raise PermissionDeniedError("Your profile must be approved to create auctions")

    now = now or _utcnow()
    ends_at = _aware(ends_at)
    if ends_at <= now:
        raise InvalidStateError("Auction end time must be in the future")

    if anti_snipe_minutes is None:
        anti_snipe_minutes = settings.DEFAULT_ANTI_SNIPE_MINUTES
    _validate_terms(starting_price, reserve_price, buy_now_price, anti_snipe_minutes, category)

    auction = Auction(
        model_id=model.id,
        title=title,
        description=description,
        deliverables=deliverables,
        category=category,
        starting_price=starting_price,
        reserve_price=reserve_price,
        buy_now_price=buy_now_price,
        ends_at=ends_at,
        original_end_at=ends_at,
        anti_snipe_minutes=anti_snipe_minutes,
        status="draft",
    )
    db.add(auction)
    db.commit()
    db.refresh(auction)
    return auction


def update_auction(db: Session, actor: Actor, auction_id: str, now: Optional[datetime] = None, **changes) -> Auction:
    """Edit a draft auction. Only fields in EDITABLE_FIELDS are applied."""
    auction = _get_owned(db, actor, auction_id)
    if auction.status != "draft":
        raise InvalidStateError("Can only edit draft auctions")

    now = now or _utcnow()
    try:
        for field, value in changes.items():
            if field not in EDITABLE_FIELDS:
                continue
            if field == "ends_at":
                value = _aware(value)
                if value <= now:
                    raise InvalidStateError("Auction end time must be in the future")
                auction.original_end_at = value
            setattr(auction, field, value)

        _validate_terms(
            auction.starting_price,
            auction.reserve_price,
            auction.buy_now_price,
            auction.anti_snipe_minutes,
            auction.category,
        )
    except ServiceError:
        db.rollback()
        raise
    auction.updated_at = now
    db.commit()
    db.refresh(auction)
    return auction


def delete_auction(db: Session, actor: Actor, auction_id: str) -> None:
    auction = _get_owned(db, actor, auction_id)
    if auction.status != "draft":
        raise InvalidStateError("Can only delete draft auctions")
    db.query(AuctionWatchlist).filter(AuctionWatchlist.auction_id == auction.id).delete()
    db.delete(auction)
    db.commit()


def publish_auction(db: Session, actor: Actor, auction_id: str, now: Optional[datetime] = None) -> Auction:
    """Open a draft auction for bidding."""
    auction = _get_owned(db, actor, auction_id)
    if auction.status != "draft":
        raise InvalidStateError("Only draft auctions can be published")
    now = now or _utcnow()
    if _aware(auction.ends_at) <= now:
        raise InvalidStateError("Auction end time must be in the future")
    auction.status = "active"
    auction.updated_at = now
    db.commit()
    db.refresh(auction)
    logger.info("auction %s published by %s", auction.id, actor.id)
    return auction


def get_auction(db: Session, auction_id: str) -> Auction:
    auction = db.query(Auction).filter(Auction.id == auction_id).first()
    if not auction:
        raise NotFoundError("Auction not found")
    return auction


def list_auctions(
    db: Session,
    status: str = "active",
    model_id: Optional[str] = None,
    has_buy_now: bool = False,
    sort: str = "ending_soon",
    page: int = 1,
    page_size: int = 20,
    now: Optional[datetime] = None,
) -> tuple[list[Auction], int]:
    """List auctions with filters, sorting and pagination. Returns (page, total)."""
    now = now or _utcnow()
    page = max(page, 1)
    page_size = max(min(page_size, 100), 1)

    query = db.query(Auction)
    if status == "all":
        query = query.filter(Auction.status != "draft")
    elif status == "ending_soon":
        query = query.filter(Auction.status == "active", Auction.ends_at < now + timedelta(hours=24))
    elif status == "new":
        query = query.filter(Auction.status == "active", Auction.created_at > now - timedelta(hours=24))
    else:
        query = query.filter(Auction.status == "active")

    if model_id:
        query = query.filter(Auction.model_id == model_id)
    if has_buy_now:
        query = query.filter(Auction.buy_now_price.isnot(None))

    if sort == "newest":
        query = query.order_by(Auction.created_at.desc())
    elif sort == "most_bids":
        query = query.order_by(Auction.bid_count.desc())
    elif sort == "price_low":
        query = query.order_by(Auction.current_bid.asc().nulls_first())
    elif sort == "price_high":
        query = query.order_by(Auction.current_bid.desc().nulls_last())
    else:
        query = query.order_by(Auction.ends_at.asc())

    total = query.count()
    auctions = query.offset((page - 1) * page_size).limit(page_size).all()
    return auctions, total


def list_bids(db: Session, auction_id: str, limit: int = 100) -> list[AuctionBid]:
    return (
        db.query(AuctionBid)
        .filter(AuctionBid.auction_id == auction_id)
        .order_by(AuctionBid.created_at.desc())
        .limit(limit)
        .all()
    )


def list_bids_for_bidder(db: Session, bidder_id: str, limit: int = 100) -> list[AuctionBid]:
    return (
        db.query(AuctionBid)
        .filter(AuctionBid.bidder_id == bidder_id)
        .order_by(AuctionBid.created_at.desc())
        .limit(limit)
        .all()
    )


# ── Bidding ──────────────────────────────────────────────────────────────────

def _lock_biddable(db: Session, bidder: Actor, auction_id: str, now: datetime) -> Auction:
    auction = db.query(Auction).filter(Auction.id == auction_id).with_for_update().first()
    if not auction:
        raise NotFoundError("Auction not found")
    if auction.status != "active":
        raise InvalidStateError("This auction is not active")
    if _aware(auction.ends_at) <= now:
        raise InvalidStateError("This auction has ended")
    if auction.model_id == bidder.id:
        raise InvalidStateError("Cannot bid on your own auction")
    return auction


def place_bid(db: Session, bidder: Actor, auction_id: str, amount: int, now: Optional[datetime] = None) -> dict:
    """Place a bid, escrowing its amount and releasing the previous winner.

    A bid at or above the buy-now price settles the auction immediately at
    the buy-now price.
    """
    now = now or _utcnow()
    auction = _lock_biddable(db, bidder, auction_id, now)

    if auction.buy_now_price is not None and amount >= auction.buy_now_price:
        result = buy_now(db, bidder, auction_id, now=now)
        return {
            "bid_id": result["bid_id"],
            "final_amount": result["amount"],
            "escrow_deducted": result["escrow_deducted"],
            "new_balance": result["new_balance"],
            "is_winning": True,
            "is_buy_now": True,
            "auction_extended": False,
            "new_end_time": None,
        }

    if auction.current_bid is None:
        if amount < auction.starting_price:
            raise BidRejectedError("Bid must be at least the starting price")
    elif amount <= auction.current_bid:
        raise BidRejectedError("Bid must be higher than current bid")

    previous = _winning_bid(db, auction.id)
    own_escrow = previous.escrow_amount if previous and previous.bidder_id == bidder.id else 0
    escrow_deducted = amount - own_escrow

    try:
        reservations.ensure_available(db, bidder.id, escrow_deducted)

        advanced = (
            db.query(Auction)
            .filter(
                Auction.id == auction.id,
                Auction.status == "active",
                or_(Auction.current_bid.is_(None), Auction.current_bid < amount),
            )
            .update(
                {
                    Auction.current_bid: amount,
                    Auction.bid_count: Auction.bid_count + 1,
                    Auction.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        if advanced != 1:
            raise BidRejectedError("Bid must be higher than current bid")
        db.expire(auction)

        if previous:
            _refund_bid(db, previous, "outbid", now)

        bid = AuctionBid(
            auction_id=auction.id,
            bidder_id=bidder.id,
            amount=amount,
            escrow_amount=amount,
            status="winning",
        )
        db.add(bid)
        db.flush()
        ledger.post_transaction(db, bidder.id, -amount, "auction_escrow", {
            "auction_id": auction.id,
            "bid_id": bid.id,
        })

        extended = False
        ends_at = _aware(auction.ends_at)
        window = timedelta(minutes=auction.anti_snipe_minutes)
        if window and ends_at - now <= window:
            auction.ends_at = ends_at + window
            extended = True

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    db.refresh(auction)
    logger.info("auction %s bid %d by %s (extended=%s)", auction.id, amount, bidder.id, extended)

    if previous and previous.bidder_id != bidder.id:
        notifications.notify(
            db, previous.bidder_id, "auction_outbid", "You've been outbid",
            f"Someone bid {amount} coins on \"{auction.title}\"",
            {"auction_id": auction.id, "current_bid": amount},
        )

    return {
        "bid_id": bid.id,
        "final_amount": amount,
        "escrow_deducted": escrow_deducted,
        "new_balance": ledger.get_balance(db, bidder.id),
        "is_winning": True,
        "is_buy_now": False,
        "auction_extended": extended,
        "new_end_time": _aware(auction.ends_at) if extended else None,
    }


def buy_now(db: Session, buyer: Actor, auction_id: str, now: Optional[datetime] = None) -> dict:
    """Buy an auction outright at its buy-now price and settle it."""
    now = now or _utcnow()
    auction = _lock_biddable(db, buyer, auction_id, now)
    if auction.buy_now_price is None:
        raise InvalidStateError("This auction has no buy now price")

    price = auction.buy_now_price
    previous = _winning_bid(db, auction.id)
    own_escrow = previous.escrow_amount if previous and previous.bidder_id == buyer.id else 0

    try:
        reservations.ensure_available(db, buyer.id, price - own_escrow)

        claimed = (
            db.query(Auction)
            .filter(Auction.id == auction.id, Auction.status == "active")
            .update(
                {
                    Auction.status: "sold",
                    Auction.current_bid: price,
                    Auction.bid_count: Auction.bid_count + 1,
                    Auction.winner_id: buyer.id,
                    Auction.updated_at: now,
                },
                synchronize_session=False,
            )
        )
        if claimed != 1:
            raise BidRejectedError("This auction is no longer available")
        db.expire(auction)

        if previous:
            _refund_bid(db, previous, "outbid", now)

        bid = AuctionBid(
            auction_id=auction.id,
            bidder_id=buyer.id,
            amount=price,
            escrow_amount=price,
            status="winning",
            is_buy_now=True,
        )
        db.add(bid)
        db.flush()
        ledger.post_transaction(db, buyer.id, -price, "auction_escrow", {
            "auction_id": auction.id,
            "bid_id": bid.id,
            "buy_now": True,
        })
        _pay_model(db, auction, bid, now)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(bid)
    logger.info("auction %s bought now for %d by %s", auction.id, price, buyer.id)

    if previous and previous.bidder_id != buyer.id:
        notifications.notify(
            db, previous.bidder_id, "auction_outbid", "Auction sold",
            f"\"{auction.title}\" was bought now; your bid was refunded",
            {"auction_id": auction.id},
        )
    notifications.notify(
        db, auction.model_id, "auction_sold", "Auction sold!",
        f"\"{auction.title}\" sold for {price} coins",
        {"auction_id": auction.id, "amount": price},
    )

    return {
        "bid_id": bid.id,
        "amount": price,
        "escrow_deducted": price - own_escrow,
        "new_balance": ledger.get_balance(db, buyer.id),
    }


# ── Settlement ───────────────────────────────────────────────────────────────

def close_auction(
    db: Session,
    auction_id: str,
    now: Optional[datetime] = None,
    actor: Optional[Actor] = None,
) -> Auction:
    """Settle an active auction whose end time has passed."""
    now = now or _utcnow()
    if actor is not None:
        auction = _get_owned(db, actor, auction_id, for_update=True)
    else:
        auction = db.query(Auction).filter(Auction.id == auction_id).with_for_update().first()
        if not auction:
            raise NotFoundError("Auction not found")
    if auction.status != "active":
        raise InvalidStateError(f"Auction is not active (status: {auction.status})")
    if _aware(auction.ends_at) > now:
        raise InvalidStateError("Auction has not ended yet")

    winning = _winning_bid(db, auction.id)
    try:
        if winning is None:
            auction.status = "ended"
        elif auction.reserve_price is not None and auction.current_bid < auction.reserve_price:
            _refund_bid(db, winning, "refunded", now)
            auction.status = "no_sale"
        else:
            _pay_model(db, auction, winning, now)
            auction.status = "sold"
            auction.winner_id = winning.bidder_id
        auction.updated_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(auction)
    logger.info("auction %s closed -> %s", auction.id, auction.status)

    if auction.status == "sold":
        notifications.notify(
            db, winning.bidder_id, "auction_won", "You won!",
            f"You won \"{auction.title}\" for {auction.current_bid} coins",
            {"auction_id": auction.id, "amount": auction.current_bid},
        )
        notifications.notify(
            db, auction.model_id, "auction_sold", "Auction sold!",
            f"\"{auction.title}\" sold for {auction.current_bid} coins",
            {"auction_id": auction.id, "amount": auction.current_bid},
        )
    elif auction.status == "no_sale":
        notifications.notify(
            db, winning.bidder_id, "auction_no_sale", "Reserve not met",
            f"\"{auction.title}\" ended below its reserve; your bid was refunded",
            {"auction_id": auction.id},
        )
    return auction


def close_expired_auctions(db: Session, now: Optional[datetime] = None) -> list[str]:
    """Close every active auction past its end time. Returns the closed ids."""
    now = now or _utcnow()
    expired = (
        db.query(Auction.id)
        .filter(Auction.status == "active", Auction.ends_at <= now)
        .all()
    )
    closed = []
    for (auction_id,) in expired:
        try:
            close_auction(db, auction_id, now=now)
        except ServiceError as e:
            # Another worker may have settled or extended it meanwhile
            logger.warning("Skipping auction %s: %s", auction_id, e)
            continue
        closed.append(auction_id)
    return closed


def cancel_auction(db: Session, actor: Actor, auction_id: str, now: Optional[datetime] = None) -> Auction:
    """Cancel a draft or active auction, refunding the winning escrow."""
    now = now or _utcnow()
    auction = _get_owned(db, actor, auction_id, for_update=True)
    if auction.status not in ("draft", "active"):
        raise InvalidStateError(f"Cannot cancel auction in status '{auction.status}'")

    winning = _winning_bid(db, auction.id)
    try:
        if winning:
            _refund_bid(db, winning, "refunded", now)
        auction.status = "cancelled"
        auction.updated_at = now
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(auction)

    if winning:
        notifications.notify(
            db, winning.bidder_id, "auction_cancelled", "Auction cancelled",
            f"\"{auction.title}\" was cancelled; your bid was refunded",
            {"auction_id": auction.id},
        )
    return auction


# ── Watchlist ────────────────────────────────────────────────────────────────

def add_to_watchlist(
    db: Session,
    actor: Actor,
    auction_id: str,
    notify_outbid: bool = True,
    notify_ending: bool = True,
) -> AuctionWatchlist:
    get_auction(db, auction_id)
    existing = (
        db.query(AuctionWatchlist)
        .filter(AuctionWatchlist.auction_id == auction_id, AuctionWatchlist.actor_id == actor.id)
        .first()
    )
    if existing:
        raise InvalidStateError("Already in watchlist")
    entry = AuctionWatchlist(
        auction_id=auction_id,
        actor_id=actor.id,
        notify_outbid=notify_outbid,
        notify_ending=notify_ending,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def remove_from_watchlist(db: Session, actor: Actor, auction_id: str) -> None:
    removed = (
        db.query(AuctionWatchlist)
        .filter(AuctionWatchlist.auction_id == auction_id, AuctionWatchlist.actor_id == actor.id)
        .delete()
    )
    if not removed:
        raise NotFoundError("Not in watchlist")
    db.commit()


def list_watchlist(db: Session, actor: Actor) -> list[AuctionWatchlist]:
    return (
        db.query(AuctionWatchlist)
        .filter(AuctionWatchlist.actor_id == actor.id)
        .order_by(AuctionWatchlist.created_at.desc())
        .all()
    )


def watchlist_count(db: Session, auction_id: str) -> int:
    return db.query(AuctionWatchlist).filter(AuctionWatchlist.auction_id == auction_id).count()
