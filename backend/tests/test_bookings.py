"""Tests for the booking lifecycle and its escrow settlement."""

from datetime import date

import pytest

from conftest import make_admin, make_brand, make_fan, make_model
from app.exceptions import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
)
from app.models.notification import Notification
from app.models.profile import ModelProfile
from app.services import booking_service, ledger, reservations

EVENT_DATE = date(2030, 6, 1)


def _book(db, client, model, service_type="photoshoot_hourly", duration_hours=2, **details):
    return booking_service.create_booking(
        db, client, model.id, service_type, EVENT_DATE, duration_hours=duration_hours, **details
    )


def _assert_ledger_consistent(db, *actors):
    for actor in actors:
        assert ledger.get_balance(db, actor.id) == ledger.ledger_total(db, actor.id)
        assert ledger.get_balance(db, actor.id) >= 0


class TestCreateBooking:
    """Test booking requests."""

    def test_priced_from_rate_card(self, db):
        """Photoshoot at 50/hour for 2 hours totals 100."""
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        assert booking.status == "pending"
        assert booking.quoted_rate == 50
        assert booking.total_amount == 100
        assert booking.escrow_status == "none"
        assert booking.booking_number.startswith("BK-")

    def test_no_coins_move_on_request(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        _book(db, fan, model)
        assert ledger.get_balance(db, fan.id) == 200
        assert reservations.get_availability(db, fan.id)["available"] == 100

    def test_rejected_when_reservations_exhaust_balance(self, db):
        """Balance 100 with 80 pending cannot request 30 more."""
        fan = make_fan(db, balance=100)
        model = make_model(db, meet_greet_rate=80, promo_hourly_rate=30)
        _book(db, fan, model, service_type="meet_greet", duration_hours=None)
        with pytest.raises(InsufficientFundsError) as exc:
            _book(db, fan, model, service_type="promo", duration_hours=1)
        assert exc.value.available == 20
        assert exc.value.required == 30
        assert exc.value.pending == 80

    def test_unapproved_model_not_bookable(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db, approved=False, meet_greet_rate=10)
        with pytest.raises(NotFoundError):
            _book(db, fan, model, service_type="meet_greet", duration_hours=None)

    def test_unknown_service_type(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db)
        with pytest.raises(InvalidStateError):
            _book(db, fan, model, service_type="yacht_party")

    def test_cannot_book_yourself(self, db):
        model = make_model(db, balance=100, meet_greet_rate=10)
        with pytest.raises(InvalidStateError):
            _book(db, model, model, service_type="meet_greet", duration_hours=None)

    def test_model_is_notified(self, db):
        brand = make_brand(db, balance=500)
        model = make_model(db, brand_ambassador_daily_rate=300)
        _book(db, brand, model, service_type="brand_ambassador", duration_hours=None)
        notice = db.query(Notification).filter(Notification.actor_id == model.id).one()
        assert notice.type == "booking_request"


class TestBookingActions:
    """Test transitions and escrow movements."""

    def _accepted(self, db, balance=200):
        fan = make_fan(db, balance=balance)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        booking = booking_service.apply_action(db, model, booking.id, "accept")
        return fan, model, booking

    def test_accept_takes_escrow(self, db):
        fan, model, booking = self._accepted(db)
        assert booking.status == "accepted"
        assert booking.escrow_status == "held"
        assert booking.escrow_amount == 100
        assert ledger.get_balance(db, fan.id) == 100
        # Escrowed bookings no longer count as reservations
        assert reservations.get_availability(db, fan.id) == {"balance": 100, "pending": 0, "available": 100}
        _assert_ledger_consistent(db, fan, model)

    def test_full_happy_path_pays_model(self, db):
        fan, model, booking = self._accepted(db)
        booking_service.apply_action(db, fan, booking.id, "confirm")
        booking = booking_service.apply_action(db, model, booking.id, "complete")
        assert booking.status == "completed"
        assert booking.escrow_status == "released"
        assert ledger.get_balance(db, model.id) == 100
        assert ledger.get_earnings(db, model.id)["by_action"]["booking_payout"] == 100
        _assert_ledger_consistent(db, fan, model)

    def test_no_show_pays_model(self, db):
        fan, model, booking = self._accepted(db)
        booking_service.apply_action(db, model, booking.id, "confirm")
        booking = booking_service.apply_action(db, model, booking.id, "no_show")
        assert booking.status == "no_show"
        assert ledger.get_balance(db, model.id) == 100

    def test_cancel_after_accept_refunds_client(self, db):
        fan, model, booking = self._accepted(db)
        booking = booking_service.apply_action(db, fan, booking.id, "cancel", cancellation_reason="sick")
        assert booking.status == "cancelled"
        assert booking.escrow_status == "refunded"
        assert booking.cancelled_by == fan.id
        assert ledger.get_balance(db, fan.id) == 200
        _assert_ledger_consistent(db, fan, model)

    def test_cancel_pending_moves_nothing(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        booking = booking_service.apply_action(db, fan, booking.id, "cancel")
        assert booking.escrow_status == "none"
        assert ledger.get_balance(db, fan.id) == 200
        assert reservations.reserved_amount(db, fan.id) == 0

    def test_accept_fails_when_balance_was_spent(self, db):
        """A client who spent the reserved coins elsewhere cannot be charged."""
        fan = make_fan(db, balance=100)
        model = make_model(db, username="ava", photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        ledger.send_tip(db, fan.id, "ava", 50)
        with pytest.raises(InsufficientFundsError):
            booking_service.apply_action(db, model, booking.id, "accept")
        db.refresh(booking)
        assert booking.status == "pending"
        assert booking.escrow_status == "none"
        _assert_ledger_consistent(db, fan, model)

    def test_counter_then_accept_counter(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        booking = booking_service.apply_action(db, model, booking.id, "counter", counter_amount=150)
        assert booking.status == "counter"
        booking = booking_service.apply_action(db, fan, booking.id, "accept_counter")
        assert booking.status == "accepted"
        assert booking.total_amount == 150
        assert booking.escrow_amount == 150
        assert ledger.get_balance(db, fan.id) == 50

    def test_counter_requires_amount(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        with pytest.raises(InvalidStateError):
            booking_service.apply_action(db, model, booking.id, "counter")

    def test_client_cannot_accept(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        with pytest.raises(PermissionDeniedError):
            booking_service.apply_action(db, fan, booking.id, "accept")

    def test_outsider_forbidden(self, db):
        fan = make_fan(db, balance=200)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)
        outsider = make_fan(db)
        with pytest.raises(PermissionDeniedError):
            booking_service.get_booking(db, outsider, booking.id)

    def test_admin_can_complete(self, db):
        fan, model, booking = self._accepted(db)
        admin = make_admin(db)
        booking_service.apply_action(db, admin, booking.id, "confirm")
        booking = booking_service.apply_action(db, admin, booking.id, "complete")
        assert booking.escrow_status == "released"

    def test_cannot_complete_unconfirmed(self, db):
        fan, model, booking = self._accepted(db)
        with pytest.raises(InvalidStateError):
            booking_service.apply_action(db, model, booking.id, "complete")

    def test_cannot_cancel_completed(self, db):
        fan, model, booking = self._accepted(db)
        booking_service.apply_action(db, model, booking.id, "confirm")
        booking_service.apply_action(db, model, booking.id, "complete")
        with pytest.raises(InvalidStateError):
            booking_service.apply_action(db, fan, booking.id, "cancel")
        assert ledger.get_balance(db, model.id) == 100

    def test_invalid_action(self, db):
        fan, model, booking = self._accepted(db)
        with pytest.raises(InvalidStateError):
            booking_service.apply_action(db, model, booking.id, "teleport")

    def test_zero_priced_booking_completes(self, db):
        """A model with no rates quotes 'other' at 0; the lifecycle still runs."""
        fan = make_fan(db)
        model = make_model(db)
        booking = _book(db, fan, model, service_type="other", duration_hours=None)
        assert booking.total_amount == 0

        booking = booking_service.apply_action(db, model, booking.id, "accept")
        assert booking.status == "accepted"
        assert booking.escrow_status == "held"
        assert booking.escrow_amount == 0

        booking_service.apply_action(db, fan, booking.id, "confirm")
        booking = booking_service.apply_action(db, model, booking.id, "complete")
        assert booking.status == "completed"
        assert booking.escrow_status == "released"
        assert ledger.list_transactions(db, fan.id) == []
        assert ledger.list_transactions(db, model.id) == []
        _assert_ledger_consistent(db, fan, model)

    def test_zero_priced_booking_cancel(self, db):
        fan = make_fan(db)
        model = make_model(db)
        booking = _book(db, fan, model, service_type="other", duration_hours=None)
        booking_service.apply_action(db, model, booking.id, "accept")
        booking = booking_service.apply_action(db, fan, booking.id, "cancel")
        assert booking.escrow_status == "refunded"
        assert ledger.get_balance(db, fan.id) == 0

    def test_total_frozen_at_creation(self, db):
        """Rate card changes after the request do not reprice the booking."""
        fan = make_fan(db, balance=500)
        model = make_model(db, photoshoot_hourly_rate=50)
        booking = _book(db, fan, model)

        profile = db.query(ModelProfile).filter(ModelProfile.id == model.id).one()
        profile.photoshoot_hourly_rate = 120
        db.commit()

        booking = booking_service.apply_action(db, model, booking.id, "accept")
        booking = booking_service.apply_action(db, fan, booking.id, "confirm")
        assert booking.quoted_rate == 50
        assert booking.total_amount == 100
        assert booking.escrow_amount == 100
        assert ledger.get_balance(db, fan.id) == 400


class TestListBookings:
    """Test listing filters."""

    def test_role_and_status_filters(self, db):
        fan = make_fan(db, balance=500)
        model = make_model(db, photoshoot_hourly_rate=50)
        first = _book(db, fan, model)
        _book(db, fan, model)
        booking_service.apply_action(db, model, first.id, "decline")

        assert len(booking_service.list_bookings(db, fan)) == 2
        assert len(booking_service.list_bookings(db, model)) == 2
        assert len(booking_service.list_bookings(db, fan, status="pending")) == 1
        past = booking_service.list_bookings(db, model, status="past")
        assert [b.id for b in past] == [first.id]

    def test_upcoming_excludes_past_dates(self, db):
        fan, model, booking = TestBookingActions()._accepted(db)
        assert len(booking_service.list_bookings(db, fan, status="upcoming", today=date(2030, 1, 1))) == 1
        assert booking_service.list_bookings(db, fan, status="upcoming", today=date(2031, 1, 1)) == []
