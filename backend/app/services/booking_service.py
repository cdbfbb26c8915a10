"""Booking service — requests, responses and escrow settlement.

Lifecycle:
    pending -> accepted | declined | counter
    counter -> accepted (accept / accept_counter) | declined
    accepted -> confirmed
    confirmed -> completed | no_show
    pending | counter | accepted | confirmed -> cancelled

Coins move only at acceptance (client -> escrow) and at the terminal states
that follow it: completed/no_show pay the model, cancelled refunds the client.
``escrow_status`` guards each movement so it happens at most once.
"""

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app import rate_card
from app.exceptions import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from app.models.actor import Actor
from app.models.booking import Booking
from app.models.profile import ModelProfile
from app.services import ledger, notifications, reservations

logger = logging.getLogger(__name__)

PENDING_STATUSES = ("pending", "counter")
UPCOMING_STATUSES = ("accepted", "confirmed")
PAST_STATUSES = ("completed", "cancelled", "no_show", "declined")
CANCELLABLE_STATUSES = ("pending", "counter", "accepted", "confirmed")

ACTIONS = ("accept", "decline", "counter", "accept_counter", "confirm", "cancel", "complete", "no_show")


def _new_booking_number() -> str:
    return f"BK-{uuid.uuid4().hex[:8].upper()}"


def _model_name(model: ModelProfile) -> str:
    return model.first_name or model.username


def create_booking(
    db: Session,
    client: Actor,
    model_id: str,
    service_type: str,
    event_date: date,
    duration_hours: Optional[float] = None,
    **details,
) -> Booking:
    """Create a pending booking request priced from the model's rate card.

    No coins move here. The request is rejected when the client's available
    balance (balance minus open reservations) cannot cover the total.
    """
    model = (
        db.query(ModelProfile)
        .filter(ModelProfile.id == model_id, ModelProfile.is_approved.is_(True))
        .first()
    )
    if not model:
        raise NotFoundError("Model not found")
    if model.id == client.id:
        raise InvalidStateError("You cannot book yourself")

    try:
        quoted, total = rate_card.price_booking(model, service_type, duration_hours)
    except ValueError as e:
        raise InvalidStateError(str(e))

    try:
        reservations.ensure_available(db, client.id, total)

        booking = Booking(
            booking_number=_new_booking_number(),
            model_id=model.id,
            client_id=client.id,
            service_type=service_type,
            event_date=event_date,
            duration_hours=duration_hours,
            quoted_rate=quoted,
            total_amount=total,
            status="pending",
            **details,
        )
        db.add(booking)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(booking)
    logger.info("booking %s created client=%s model=%s total=%d", booking.booking_number, client.id, model.id, total)

    notifications.notify(
        db,
        model.id,
        "booking_request",
        "New Booking Request",
        f"You have a new {rate_card.SERVICE_LABELS.get(service_type, service_type)} booking request "
        f"for {event_date.isoformat()}",
        {
            "booking_id": booking.id,
            "booking_number": booking.booking_number,
            "service_type": service_type,
            "event_date": event_date.isoformat(),
        },
    )
    return booking


def list_bookings(
    db: Session,
    actor: Actor,
    role: Optional[str] = None,
    status: Optional[str] = None,
    today: Optional[date] = None,
) -> list[Booking]:
    """List bookings where the actor is the model or the client."""
    query = db.query(Booking)
    if actor.type == "admin" and role is None:
        pass
    elif role == "model" or (role is None and actor.type == "model"):
        query = query.filter(Booking.model_id == actor.id)
    else:
        query = query.filter(Booking.client_id == actor.id)

    if status == "pending":
        query = query.filter(Booking.status.in_(PENDING_STATUSES))
    elif status == "upcoming":
        today = today or datetime.now(timezone.utc).date()
        query = query.filter(Booking.status.in_(UPCOMING_STATUSES), Booking.event_date >= today)
    elif status == "past":
        query = query.filter(Booking.status.in_(PAST_STATUSES))
    elif status:
        query = query.filter(Booking.status == status)

    return query.order_by(Booking.created_at.desc()).all()


def get_booking(db: Session, actor: Actor, booking_id: str) -> Booking:
    """Get a booking visible to one of its participants or an admin."""
    booking = db.query(Booking).filter(Booking.id == booking_id).first()
    if not booking:
        raise NotFoundError("Booking not found")
    if actor.type != "admin" and actor.id not in (booking.model_id, booking.client_id):
        raise PermissionDeniedError("Forbidden")
    return booking


def _hold_escrow(db: Session, booking: Booking) -> None:
    """Move the booking total from the client's balance into escrow."""
    if booking.escrow_status != "none":
        raise InvalidStateError(f"Escrow already {booking.escrow_status}")

    ledger.lock_holder(db, booking.client_id)
    availability = reservations.get_availability(db, booking.client_id, exclude_booking_id=booking.id)
    if availability["balance"] < booking.total_amount:
        raise InsufficientFundsError(
            required=booking.total_amount,
            balance=availability["balance"],
            available=availability["available"],
            pending=availability["pending"],
        )

    # Zero-priced bookings hold nothing; the ledger rejects zero postings
    if booking.total_amount > 0:
        ledger.post_transaction(db, booking.client_id, -booking.total_amount, "booking_escrow", {
            "booking_id": booking.id,
            "booking_number": booking.booking_number,
        })
    booking.escrow_amount = booking.total_amount
    booking.escrow_status = "held"


def _release_escrow(db: Session, booking: Booking, to_model: bool) -> None:
    """Resolve held escrow to a model payout or a client refund."""
    if booking.escrow_status != "held":
        return
    meta = {"booking_id": booking.id, "booking_number": booking.booking_number}
    if to_model:
        if booking.escrow_amount > 0:
            ledger.post_transaction(db, booking.model_id, booking.escrow_amount, "booking_payout", meta)
        booking.escrow_status = "released"
    else:
        if booking.escrow_amount > 0:
            ledger.post_transaction(db, booking.client_id, booking.escrow_amount, "booking_refund", meta)
        booking.escrow_status = "refunded"


def apply_action(
    db: Session,
    actor: Actor,
    booking_id: str,
    action: str,
    response_notes: Optional[str] = None,
    counter_amount: Optional[int] = None,
    counter_notes: Optional[str] = None,
    cancellation_reason: Optional[str] = None,
) -> Booking:
    """Apply a lifecycle action to a booking, settling escrow as needed."""
    booking = (
        db.query(Booking)
        .filter(Booking.id == booking_id)
        .with_for_update()
        .first()
    )
    if not booking:
        raise NotFoundError("Booking not found")

    is_model = booking.model_id == actor.id
    is_client = booking.client_id == actor.id
    is_admin = actor.type == "admin"
    if not (is_model or is_client or is_admin):
        raise PermissionDeniedError("Forbidden")

    now = datetime.now(timezone.utc)
    model_name = _model_name(booking.model)
    ref = {"booking_id": booking.id, "booking_number": booking.booking_number}
    notice = None  # (actor_id, type, title, body, data)

    try:
        if action == "accept":
            if not (is_model or is_admin):
                raise PermissionDeniedError("Only model can accept")
            if booking.status not in PENDING_STATUSES:
                raise InvalidStateError("Can only accept pending bookings")
            _hold_escrow(db, booking)
            booking.status = "accepted"
            booking.model_response_notes = response_notes
            booking.responded_at = now
            notice = (booking.client_id, "booking_accepted", "Booking Accepted!",
                      f"{model_name} accepted your booking request for {booking.event_date.isoformat()}", ref)

        elif action == "decline":
            if not (is_model or is_admin):
                raise PermissionDeniedError("Only model can decline")
            if booking.status not in PENDING_STATUSES:
                raise InvalidStateError("Can only decline pending bookings")
            booking.status = "declined"
            booking.model_response_notes = response_notes
            booking.responded_at = now
            notice = (booking.client_id, "booking_declined", "Booking Declined",
                      f"{model_name} declined your booking request", ref)

        elif action == "counter":
            if not (is_model or is_admin):
                raise PermissionDeniedError("Only model can counter")
            if booking.status != "pending":
                raise InvalidStateError("Can only counter pending bookings")
            if not counter_amount or counter_amount <= 0:
                raise InvalidStateError("Counter amount required")
            booking.status = "counter"
            booking.counter_amount = counter_amount
            booking.counter_notes = counter_notes
            booking.model_response_notes = response_notes
            booking.responded_at = now
            notice = (booking.client_id, "booking_counter", "Counter Offer Received",
                      f"{model_name} sent a counter offer of {counter_amount} coins",
                      {**ref, "counter_amount": counter_amount})

        elif action == "accept_counter":
            if not (is_client or is_admin):
                raise PermissionDeniedError("Only client can accept counter")
            if booking.status != "counter":
                raise InvalidStateError("No counter offer to accept")
            booking.total_amount = booking.counter_amount
            _hold_escrow(db, booking)
            booking.status = "accepted"
            notice = (booking.model_id, "counter_accepted", "Counter Offer Accepted",
                      f"Your counter offer of {booking.counter_amount} coins was accepted", ref)

        elif action == "confirm":
            if booking.status != "accepted":
                raise InvalidStateError("Can only confirm accepted bookings")
            booking.status = "confirmed"
            booking.confirmed_at = now
            other = booking.client_id if is_model else booking.model_id
            notice = (other, "booking_confirmed", "Booking Confirmed",
                      f"Booking {booking.booking_number} is confirmed", ref)

        elif action == "cancel":
            if booking.status not in CANCELLABLE_STATUSES:
                raise InvalidStateError("Cannot cancel this booking")
            _release_escrow(db, booking, to_model=False)
            booking.status = "cancelled"
            booking.cancelled_by = actor.id
            booking.cancellation_reason = cancellation_reason
            booking.cancelled_at = now
            if is_client:
                notice = (booking.model_id, "booking_cancelled", "Booking Cancelled",
                          f"Booking {booking.booking_number} has been cancelled", ref)
            else:
                notice = (booking.client_id, "booking_cancelled", "Booking Cancelled",
                          f"{model_name} cancelled the booking", ref)

        elif action in ("complete", "no_show"):
            if not (is_model or is_admin):
                raise PermissionDeniedError(
                    "Only model can mark complete" if action == "complete" else "Only model can mark no-show"
                )
            if booking.status != "confirmed":
                raise InvalidStateError(
                    "Can only complete confirmed bookings" if action == "complete"
                    else "Can only mark confirmed bookings as no-show"
                )
            _release_escrow(db, booking, to_model=True)
            booking.status = "completed" if action == "complete" else "no_show"
            booking.completed_at = now
            notice = (booking.client_id, f"booking_{booking.status}",
                      "Booking Completed" if action == "complete" else "Marked as No-Show",
                      f"Booking {booking.booking_number} was marked {booking.status.replace('_', '-')}", ref)

        else:
            raise InvalidStateError("Invalid action")

        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    logger.info("booking %s %s by %s -> %s (escrow %s)",
                booking.booking_number, action, actor.id, booking.status, booking.escrow_status)

    if notice:
        notifications.notify(db, *notice)
    return booking
