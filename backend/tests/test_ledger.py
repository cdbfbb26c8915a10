"""Tests for the balance ledger, reservations and tips."""

import os
from datetime import date

import pytest

from conftest import make_admin, make_brand, make_fan, make_model
from app.exceptions import InsufficientFundsError, InvalidStateError, NotFoundError
from app.models.booking import Booking
from app.services import ledger, reservations


class TestPostTransaction:
    """Test the single balance write path."""

    def test_credit_and_debit_keep_ledger_in_sync(self, db):
        fan = make_fan(db)
        ledger.post_transaction(db, fan.id, 100, "admin_grant")
        ledger.post_transaction(db, fan.id, -40, "tip_sent")
        db.commit()
        assert ledger.get_balance(db, fan.id) == 60
        assert ledger.ledger_total(db, fan.id) == 60

    def test_overdraw_rejected(self, db):
        """A debit that would go negative is refused and nothing is written."""
        fan = make_fan(db, balance=30)
        with pytest.raises(InsufficientFundsError) as exc:
            ledger.post_transaction(db, fan.id, -50, "tip_sent")
        db.rollback()
        assert exc.value.required == 50
        assert exc.value.balance == 30
        assert ledger.get_balance(db, fan.id) == 30
        assert ledger.ledger_total(db, fan.id) == 30

    def test_zero_amount_rejected(self, db):
        fan = make_fan(db)
        with pytest.raises(InvalidStateError):
            ledger.post_transaction(db, fan.id, 0, "admin_grant")

    def test_admin_has_no_balance(self, db):
        admin = make_admin(db)
        with pytest.raises(NotFoundError):
            ledger.get_balance(db, admin.id)

    def test_metadata_is_stored_as_json(self, db):
        brand = make_brand(db)
        entry = ledger.post_transaction(db, brand.id, 5, "admin_grant", {"reason": "welcome"})
        db.commit()
        assert '"reason": "welcome"' in entry.meta


class TestAwardAndTip:
    """Test grants and tips."""

    def test_award_coins(self, db):
        fan = make_fan(db)
        assert ledger.award_coins(db, fan.id, 25, "promo") == 25
        history = ledger.list_transactions(db, fan.id)
        assert [t.action for t in history] == ["admin_grant"]

    def test_award_must_be_positive(self, db):
        fan = make_fan(db)
        with pytest.raises(InvalidStateError):
            ledger.award_coins(db, fan.id, 0, "nothing")

    def test_tip_moves_coins(self, db):
        fan = make_fan(db, balance=50)
        model = make_model(db, username="ava")
        result = ledger.send_tip(db, fan.id, "ava", 20)
        assert result["new_balance"] == 30
        assert ledger.get_balance(db, model.id) == 20
        assert ledger.get_earnings(db, model.id)["by_action"]["tip_received"] == 20

    def test_tip_insufficient_funds(self, db):
        fan = make_fan(db, balance=5)
        make_model(db, username="ava")
        with pytest.raises(InsufficientFundsError):
            ledger.send_tip(db, fan.id, "ava", 20)
        assert ledger.get_balance(db, fan.id) == 5

    def test_tip_unknown_recipient(self, db):
        fan = make_fan(db, balance=50)
        with pytest.raises(NotFoundError):
            ledger.send_tip(db, fan.id, "nobody", 5)

    def test_cannot_tip_yourself(self, db):
        model = make_model(db, username="ava", balance=50)
        with pytest.raises(InvalidStateError):
            ledger.send_tip(db, model.id, "ava", 5)


class TestReservations:
    """Test available = balance - open booking totals."""

    def _booking(self, db, client, model, total, status="pending", escrow_status="none"):
        booking = Booking(
            booking_number=f"BK-{os.urandom(4).hex().upper()}",
            model_id=model.id,
            client_id=client.id,
            service_type="meet_greet",
            event_date=date(2030, 1, 1),
            quoted_rate=total,
            total_amount=total,
            status=status,
            escrow_status=escrow_status,
        )
        db.add(booking)
        db.commit()
        return booking

    def test_pending_bookings_reserve_coins(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db)
        self._booking(db, fan, model, 50)
        self._booking(db, fan, model, 30, status="counter")
        assert reservations.get_availability(db, fan.id) == {"balance": 100, "pending": 80, "available": 20}

    def test_closed_and_escrowed_bookings_do_not_reserve(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db)
        self._booking(db, fan, model, 50, status="declined")
        self._booking(db, fan, model, 40, status="accepted", escrow_status="held")
        assert reservations.reserved_amount(db, fan.id) == 0

    def test_ensure_available_reports_shortfall(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db)
        self._booking(db, fan, model, 80)
        with pytest.raises(InsufficientFundsError) as exc:
            reservations.ensure_available(db, fan.id, 30)
        assert exc.value.to_detail() == {
            "error": "Insufficient coin balance",
            "required": 30,
            "balance": 100,
            "available": 20,
            "pending": 80,
        }

    def test_exclude_booking(self, db):
        fan = make_fan(db, balance=100)
        model = make_model(db)
        booking = self._booking(db, fan, model, 80)
        availability = reservations.get_availability(db, fan.id, exclude_booking_id=booking.id)
        assert availability["pending"] == 0
