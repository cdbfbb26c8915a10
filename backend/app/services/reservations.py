"""Reservation calculator — spendable balance for booking clients.

    available = balance - sum(total_amount of open bookings not yet escrowed)

Open bookings are those in RESERVING_STATUSES. Once a booking is accepted its
coins leave the balance into escrow, so it stops counting as a reservation.
"""

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import InsufficientFundsError
from app.models.booking import Booking
from app.services import ledger

RESERVING_STATUSES = ("pending", "counter", "accepted")


def reserved_amount(db: Session, client_id: str) -> int:
    """Sum of the client's open booking totals that are not in escrow yet."""
    total = (
        db.query(func.coalesce(func.sum(Booking.total_amount), 0))
        .filter(
            Booking.client_id == client_id,
            Booking.status.in_(RESERVING_STATUSES),
            Booking.escrow_status != "held",
        )
        .scalar()
    )
    return int(total)


def get_availability(db: Session, client_id: str, exclude_booking_id: str = None) -> dict:
    """Return {balance, pending, available} for a client.

    ``exclude_booking_id`` leaves one booking out of the reservation sum, used
    when that booking itself is about to be funded.
    """
    balance = ledger.get_balance(db, client_id)
    pending = reserved_amount(db, client_id)
    if exclude_booking_id:
        excluded = (
            db.query(Booking)
            .filter(
                Booking.id == exclude_booking_id,
                Booking.status.in_(RESERVING_STATUSES),
                Booking.escrow_status != "held",
            )
            .first()
        )
        if excluded:
            pending -= excluded.total_amount
    return {
        "balance": balance,
        "pending": pending,
        "available": balance - pending,
    }


def ensure_available(db: Session, client_id: str, required: int, exclude_booking_id: str = None) -> dict:
    """Raise InsufficientFundsError unless the client can cover ``required``.

    Locks the client's balance row first so the check and whatever the caller
    writes next happen in one transaction.
    """
    ledger.lock_holder(db, client_id)
    availability = get_availability(db, client_id, exclude_booking_id=exclude_booking_id)
    if availability["available"] < required:
        raise InsufficientFundsError(
            required=required,
            balance=availability["balance"],
            available=availability["available"],
            pending=availability["pending"],
        )
    return availability
