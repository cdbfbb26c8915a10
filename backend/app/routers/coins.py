"""Coins router — balance, ledger history, earnings, tips and notifications."""

import json

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.exceptions import ServiceError, to_http_exception
from app.middleware.auth import get_current_actor
from app.models.actor import Actor
from app.schemas.coins import (
    BalanceResponse,
    TransactionResponse,
    EarningsResponse,
    TipRequest,
    TipResponse,
    NotificationResponse,
)
from app.services import ledger, notifications, reservations

router = APIRouter(prefix="/api", tags=["coins"])


@router.get("/coins/balance", response_model=BalanceResponse)
def my_balance(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Balance, open booking reservations and spendable coins."""
    try:
        return BalanceResponse(**reservations.get_availability(db, current_actor.id))
    except ServiceError as e:
        raise to_http_exception(e)


@router.get("/coins/transactions", response_model=list[TransactionResponse])
def my_transactions(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Ledger history, newest first."""
    return [
        TransactionResponse(
            id=t.id,
            amount=t.amount,
            action=t.action,
            metadata=json.loads(t.meta) if t.meta else {},
            created_at=t.created_at.isoformat(),
        )
        for t in ledger.list_transactions(db, current_actor.id, limit=limit)
    ]


@router.get("/coins/earnings", response_model=EarningsResponse)
def my_earnings(
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    return EarningsResponse(**ledger.get_earnings(db, current_actor.id))


@router.post("/coins/tips", response_model=TipResponse)
def send_tip(
    req: TipRequest,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Tip a model from your balance."""
    try:
        result = ledger.send_tip(db, current_actor.id, req.recipient_username, req.amount)
    except ServiceError as e:
        raise to_http_exception(e)
    return TipResponse(**result)


@router.get("/notifications", response_model=list[NotificationResponse])
def my_notifications(
    unread: bool = Query(False),
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    return [
        NotificationResponse(
            id=n.id,
            type=n.type,
            title=n.title,
            body=n.body,
            data=json.loads(n.data) if n.data else {},
            is_read=n.is_read,
            created_at=n.created_at.isoformat(),
        )
        for n in notifications.list_notifications(db, current_actor.id, unread_only=unread)
    ]
