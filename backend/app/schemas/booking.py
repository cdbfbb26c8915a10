"""Booking request/response schemas."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class BookingCreate(BaseModel):
    model_id: str
    service_type: str
    event_date: date
    service_description: Optional[str] = None
    start_time: Optional[str] = None
    duration_hours: Optional[float] = Field(None, gt=0, le=24)
    location_name: Optional[str] = None
    location_address: Optional[str] = None
    location_city: Optional[str] = None
    location_state: Optional[str] = None
    is_remote: bool = False
    client_notes: Optional[str] = None


class BookingAction(BaseModel):
    action: str  # accept | decline | counter | accept_counter | confirm | cancel | complete | no_show
    response_notes: Optional[str] = None
    counter_amount: Optional[int] = Field(None, gt=0)
    counter_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    booking_number: str
    model_id: str
    client_id: str
    service_type: str
    service_label: str
    service_description: Optional[str]
    event_date: str
    start_time: Optional[str]
    duration_hours: Optional[float]
    location_name: Optional[str]
    location_city: Optional[str]
    location_state: Optional[str]
    is_remote: bool
    quoted_rate: int
    total_amount: int
    counter_amount: Optional[int]
    counter_notes: Optional[str]
    client_notes: Optional[str]
    model_response_notes: Optional[str]
    status: str
    escrow_amount: int
    escrow_status: str
    created_at: str
    responded_at: Optional[str]
    confirmed_at: Optional[str]
    cancelled_at: Optional[str]
    completed_at: Optional[str]


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    service_labels: dict[str, str]


class BookingMutationResponse(BaseModel):
    success: bool = True
    booking: BookingResponse
    message: str
