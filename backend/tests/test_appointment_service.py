"""
Tests for AppointmentService - bookings and their status lifecycle.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from booking_core.repositories import AppointmentRepository
from shared.utils.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)

START = datetime(2030, 1, 7, 10, 0, tzinfo=timezone.utc)


def naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None)


@pytest.fixture
def appointments(db_session, factory):
    return factory.appointments(db_session)


@pytest.fixture
def booking(seed_business, seed_client, seed_staff, seed_service):
    return {
        "business_id": seed_business.id,
        "client_id": seed_client.id,
        "staff_id": seed_staff.id,
        "service_id": seed_service.id,
        "start_time": START,
    }


@pytest.fixture
def appointment(appointments, booking, actor_id):
    return appointments.create(booking, actor_id)


class TestCreate:

    def test_derives_end_time_price_and_currency(self, appointment):
        assert naive(appointment.end_time) == naive(START + timedelta(minutes=45))
        assert appointment.duration_minutes == 45
        assert appointment.total_price == Decimal("25.00")
        assert appointment.currency == "EUR"
        assert appointment.status == "scheduled"

    def test_explicit_values_win(self, appointments, booking, actor_id):
        booking.update(
            end_time=START + timedelta(minutes=90),
            total_price="40.00",
            currency="usd",
        )

        created = appointments.create(booking, actor_id)

        assert created.duration_minutes == 90
        assert created.total_price == Decimal("40.00")
        assert created.currency == "USD"

    def test_end_time_required_without_service(self, appointments, booking, actor_id):
        del booking["service_id"]

        with pytest.raises(ValidationError) as exc_info:
            appointments.create(booking, actor_id)

        assert "end_time" in exc_info.value.fields

    def test_end_before_start(self, appointments, booking, actor_id):
        booking["end_time"] = START - timedelta(minutes=5)

        with pytest.raises(ValidationError) as exc_info:
            appointments.create(booking, actor_id)

        assert exc_info.value.fields == ["end_time"]

    def test_unknown_client(self, appointments, booking, actor_id):
        booking["client_id"] = uuid.uuid4()

        with pytest.raises(NotFoundError) as exc_info:
            appointments.create(booking, actor_id)
        assert exc_info.value.entity == "Client"

    def test_staff_of_other_business(self, db_session, factory, appointments, booking, seed_employee, actor_id):
        other = factory.businesses(db_session).create(
            {"user_id": seed_employee.id, "name": "Elsewhere"}, actor_id
        )
        foreign_staff = factory.users(db_session).list_positions(seed_employee.id)
        booking["staff_id"] = next(s.id for s in foreign_staff if s.business_id == other.id)

        with pytest.raises(ValidationError) as exc_info:
            appointments.create(booking, actor_id)
        assert exc_info.value.errors[0].rule == "business_mismatch"

    def test_ended_staff(self, db_session, factory, appointments, booking, seed_staff, actor_id):
        factory.staff(db_session).deactivate(seed_staff.id, actor_id)

        with pytest.raises(ConflictError) as exc_info:
            appointments.create(booking, actor_id)
        assert exc_info.value.rule == "staff_ended"

    def test_inactive_service(self, db_session, factory, appointments, booking, seed_service, actor_id):
        factory.catalog(db_session).update(seed_service.id, {"is_active": False}, actor_id)

        with pytest.raises(ConflictError) as exc_info:
            appointments.create(booking, actor_id)
        assert exc_info.value.rule == "service_inactive"


class TestTransitions:

    def test_happy_path(self, appointments, appointment, actor_id):
        confirmed = appointments.confirm(appointment.id, actor_id)
        assert confirmed.status == "confirmed"
        assert confirmed.confirmed_at is not None

        assert appointments.start(appointment.id, actor_id).status == "in_progress"

        completed = appointments.complete(appointment.id, actor_id)
        assert completed.status == "completed"
        assert completed.completed_at is not None
        assert completed.updated_by == actor_id

    def test_cancel_records_reason(self, appointments, appointment, actor_id):
        cancelled = appointments.cancel(appointment.id, actor_id, reason="Client request")

        assert cancelled.status == "cancelled"
        assert cancelled.cancellation_reason == "Client request"
        assert cancelled.cancelled_at is not None

    def test_no_show_from_confirmed(self, appointments, appointment, actor_id):
        appointments.confirm(appointment.id, actor_id)
        assert appointments.mark_no_show(appointment.id, actor_id).status == "no_show"

    @pytest.mark.parametrize("action", ["complete", "start"])
    def test_cannot_skip_states(self, appointments, appointment, actor_id, action):
        with pytest.raises(InvalidTransitionError):
            getattr(appointments, action)(appointment.id, actor_id)

        assert appointments.get(appointment.id).status == "scheduled"

    def test_terminal_states_are_final(self, appointments, appointment, actor_id):
        appointments.cancel(appointment.id, actor_id)

        for action in (appointments.confirm, appointments.cancel, appointments.mark_no_show):
            with pytest.raises(InvalidTransitionError):
                action(appointment.id, actor_id)

    def test_cancelled_appointment_is_read_only(self, appointments, appointment, actor_id):
        appointments.cancel(appointment.id, actor_id)

        with pytest.raises(ConflictError) as exc_info:
            appointments.update(appointment.id, {"notes": "late change"}, actor_id)
        assert exc_info.value.rule == "appointment_closed"

    def test_update_open_appointment(self, appointments, appointment, actor_id):
        updated = appointments.update(appointment.id, {"notes": "Bring photos"}, actor_id)
        assert updated.notes == "Bring photos"

    @pytest.mark.parametrize("changes", [{"status": "completed"}, {"completed_at": START}, {"cancellation_reason": "x"}])
    def test_status_only_moves_through_transitions(self, db_session, appointment, actor_id, changes):
        repo = AppointmentRepository(db_session)

        with pytest.raises(ValidationError) as exc_info:
            repo.update(appointment.id, changes, actor_id)

        assert exc_info.value.errors[0].rule == "immutable"
        assert repo.get_by_id(appointment.id).status == "scheduled"


class TestQueries:

    def test_list_by_business_with_filters(self, appointments, booking, appointment, actor_id):
        booking["start_time"] = START + timedelta(days=1)
        later = appointments.create(booking, actor_id)
        appointments.confirm(later.id, actor_id)
        business_id = booking["business_id"]

        assert appointments.list_by_business(business_id).total == 2
        assert [a.id for a in appointments.list_by_business(business_id, status="confirmed").items] == [later.id]
        window = appointments.list_by_business(
            business_id,
            start_from=START + timedelta(hours=12),
            start_until=START + timedelta(days=2),
        )
        assert [a.id for a in window.items] == [later.id]

    def test_unknown_status_filter(self, appointments, booking, appointment):
        with pytest.raises(ValidationError):
            appointments.list_by_business(booking["business_id"], status="lost")

    def test_lists_and_counts(self, appointments, appointment, booking, actor_id):
        appointments.cancel(appointment.id, actor_id)
        appointments.create(booking, actor_id)

        assert len(appointments.list_for_staff(booking["staff_id"])) == 2
        assert len(appointments.list_for_client(booking["client_id"])) == 2
        assert appointments.count_by_status(booking["business_id"]) == {"cancelled": 1, "scheduled": 1}
