"""Ledger service — the only write path for coin balances.

Every balance change is a ``CoinTransaction`` row written in the same unit of
work as the ``coin_balance`` update on the holder's profile, with the holder
row locked. For every actor ``coin_balance == sum(coin_transactions.amount)``.
"""

import json
import logging
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import InsufficientFundsError, InvalidStateError, NotFoundError
from app.models.actor import Actor
from app.models.coin_transaction import CoinTransaction
from app.models.profile import ModelProfile, Fan, Brand

logger = logging.getLogger(__name__)

HOLDER_MODELS = {
    "model": ModelProfile,
    "fan": Fan,
    "brand": Brand,
}

EARNING_ACTIONS = ("booking_payout", "auction_payout", "tip_received")


def _holder(db: Session, actor_id: str, for_update: bool = False):
    """Load the balance-holding profile row for an actor."""
    actor = db.query(Actor).filter(Actor.id == actor_id).first()
    if not actor:
        raise NotFoundError("Actor not found")
    holder_cls = HOLDER_MODELS.get(actor.type)
    if holder_cls is None:
        raise NotFoundError(f"Actor type '{actor.type}' holds no coin balance")

    query = db.query(holder_cls).filter(holder_cls.id == actor_id)
    if for_update:
        query = query.with_for_update()
    holder = query.first()
    if not holder:
        raise NotFoundError("Balance profile not found")
    return holder


def lock_holder(db: Session, actor_id: str):
    """Lock an actor's balance row for the rest of the transaction."""
    return _holder(db, actor_id, for_update=True)


def get_balance(db: Session, actor_id: str) -> int:
    """Get an actor's current coin balance."""
    return _holder(db, actor_id).coin_balance


def post_transaction(
    db: Session,
    actor_id: str,
    amount: int,
    action: str,
    metadata: Optional[dict] = None,
) -> CoinTransaction:
    """Apply a signed amount to an actor's balance and record it.

    Flushes but does not commit; callers commit once their whole unit of work
    (booking transition, bid, transfer) is staged.
    """
    if amount == 0:
        raise InvalidStateError("Transaction amount must be non-zero")

    holder = lock_holder(db, actor_id)
    new_balance = holder.coin_balance + amount
    if new_balance < 0:
        raise InsufficientFundsError(required=-amount, balance=holder.coin_balance)

    holder.coin_balance = new_balance
    entry = CoinTransaction(
        actor_id=actor_id,
        amount=amount,
        action=action,
        meta=json.dumps(metadata or {}),
    )
    db.add(entry)
    db.flush()
    logger.info("ledger %s %+d actor=%s balance=%d", action, amount, actor_id, new_balance)
    return entry


def award_coins(db: Session, actor_id: str, amount: int, reason: str, action: str = "admin_grant") -> int:
    """Credit coins to an actor (signup bonus, admin grant)."""
    if amount <= 0:
        raise InvalidStateError("Award amount must be positive")
    post_transaction(db, actor_id, amount, action, {"reason": reason})
    db.commit()
    return get_balance(db, actor_id)


def send_tip(db: Session, sender_id: str, recipient_username: str, amount: int) -> dict:
    """Move coins from any balance holder to a model, in one commit."""
    if amount < 1:
        raise InvalidStateError("Invalid tip amount")

    recipient = db.query(ModelProfile).filter(ModelProfile.username == recipient_username).first()
    if not recipient:
        raise NotFoundError("Recipient not found")
    if recipient.id == sender_id:
        raise InvalidStateError("Cannot tip yourself")

    try:
        post_transaction(db, sender_id, -amount, "tip_sent", {
            "recipient_username": recipient_username,
            "recipient_model_id": recipient.id,
        })
        post_transaction(db, recipient.id, amount, "tip_received", {"sender_actor_id": sender_id})
    except Exception:
        db.rollback()
        raise
    db.commit()

    return {
        "amount": amount,
        "recipient_username": recipient_username,
        "new_balance": get_balance(db, sender_id),
    }


def list_transactions(db: Session, actor_id: str, limit: int = 50) -> list[CoinTransaction]:
    """Get recent ledger entries for an actor."""
    return (
        db.query(CoinTransaction)
        .filter(CoinTransaction.actor_id == actor_id)
        .order_by(CoinTransaction.created_at.desc())
        .limit(limit)
        .all()
    )


def get_earnings(db: Session, actor_id: str) -> dict:
    """Sum payouts and tips received by an actor, per action."""
    rows = (
        db.query(CoinTransaction.action, func.coalesce(func.sum(CoinTransaction.amount), 0))
        .filter(
            CoinTransaction.actor_id == actor_id,
            CoinTransaction.action.in_(EARNING_ACTIONS),
            CoinTransaction.amount > 0,
        )
        .group_by(CoinTransaction.action)
        .all()
    )
    by_action = {action: int(total) for action, total in rows}
    return {
        "total": sum(by_action.values()),
        "by_action": {a: by_action.get(a, 0) for a in EARNING_ACTIONS},
    }


def ledger_total(db: Session, actor_id: str) -> int:
    """Sum of every ledger entry for an actor; equals the balance."""
    total = (
        db.query(func.coalesce(func.sum(CoinTransaction.amount), 0))
        .filter(CoinTransaction.actor_id == actor_id)
        .scalar()
    )
    return int(total)
