"""Bookings router — requests, listing and lifecycle actions."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app import rate_card
from app.database import get_db
from app.exceptions import ServiceError, to_http_exception
from app.middleware.auth import get_current_actor
from app.models.actor import Actor
from app.models.booking import Booking
from app.schemas.booking import (
    BookingCreate,
    BookingAction,
    BookingResponse,
    BookingListResponse,
    BookingMutationResponse,
)
from app.services import booking_service

router = APIRouter(prefix="/api/bookings", tags=["bookings"])

ACTION_MESSAGES = {
    "accept": "accepted",
    "decline": "declined",
    "counter": "countered",
    "accept_counter": "accepted",
    "confirm": "confirmed",
    "cancel": "cancelled",
    "complete": "completed",
    "no_show": "marked as no-show",
}


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def booking_to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        booking_number=booking.booking_number,
        model_id=booking.model_id,
        client_id=booking.client_id,
        service_type=booking.service_type,
        service_label=rate_card.SERVICE_LABELS.get(booking.service_type, booking.service_type),
        service_description=booking.service_description,
        event_date=booking.event_date.isoformat(),
        start_time=booking.start_time,
        duration_hours=booking.duration_hours,
        location_name=booking.location_name,
        location_city=booking.location_city,
        location_state=booking.location_state,
        is_remote=booking.is_remote,
        quoted_rate=booking.quoted_rate,
        total_amount=booking.total_amount,
        counter_amount=booking.counter_amount,
        counter_notes=booking.counter_notes,
        client_notes=booking.client_notes,
        model_response_notes=booking.model_response_notes,
        status=booking.status,
        escrow_amount=booking.escrow_amount,
        escrow_status=booking.escrow_status,
        created_at=booking.created_at.isoformat(),
        responded_at=_iso(booking.responded_at),
        confirmed_at=_iso(booking.confirmed_at),
        cancelled_at=_iso(booking.cancelled_at),
        completed_at=_iso(booking.completed_at),
    )


@router.get("", response_model=BookingListResponse)
def list_bookings(
    status: Optional[str] = Query(None),
    role: Optional[str] = Query(None),  # model | client
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """List the current actor's bookings, as model or as client."""
    bookings = booking_service.list_bookings(db, current_actor, role=role, status=status)
    return BookingListResponse(
        bookings=[booking_to_response(b) for b in bookings],
        service_labels=rate_card.SERVICE_LABELS,
    )


@router.post("", response_model=BookingMutationResponse, status_code=201)
def create_booking(
    req: BookingCreate,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Request a booking. Fails with 402 when available coins are short."""
    details = req.model_dump(exclude={"model_id", "service_type", "event_date", "duration_hours"})
    try:
        booking = booking_service.create_booking(
            db,
            current_actor,
            model_id=req.model_id,
            service_type=req.service_type,
            event_date=req.event_date,
            duration_hours=req.duration_hours,
            **details,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return BookingMutationResponse(
        booking=booking_to_response(booking),
        message="Booking request sent successfully",
    )


@router.get("/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    try:
        booking = booking_service.get_booking(db, current_actor, booking_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return booking_to_response(booking)


@router.patch("/{booking_id}", response_model=BookingMutationResponse)
def update_booking(
    booking_id: str,
    req: BookingAction,
    db: Session = Depends(get_db),
    current_actor: Actor = Depends(get_current_actor),
):
    """Accept, decline, counter, confirm, cancel, complete or mark no-show."""
    try:
        booking = booking_service.apply_action(
            db,
            current_actor,
            booking_id,
            req.action,
            response_notes=req.response_notes,
            counter_amount=req.counter_amount,
            counter_notes=req.counter_notes,
            cancellation_reason=req.cancellation_reason,
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return BookingMutationResponse(
        booking=booking_to_response(booking),
        message=f"Booking {ACTION_MESSAGES.get(req.action, req.action)} successfully",
    )
