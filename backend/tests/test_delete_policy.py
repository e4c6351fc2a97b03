"""
Tests for cascading soft delete and delete policies.
"""

from datetime import datetime, timezone

import pytest

from booking_core.models import (
    Appointment,
    Business,
    Client,
    Service,
    ServiceAssignment,
    ServiceCategory,
    Staff,
    User,
)
from booking_core.repositories import BaseRepository
from booking_core.services import CascadeDeleteService, DeletePolicy, relationships_for
from shared.utils.exceptions import ConflictError, NotFoundError


@pytest.fixture
def booked(db_session, factory, seed_business, seed_client, seed_staff, seed_service, actor_id):
    """An open appointment plus the assignment behind it."""
    assignment = factory.assignments(db_session).assign(
        {"staff_id": seed_staff.id, "service_id": seed_service.id}, actor_id
    )
    appointment = factory.appointments(db_session).create(
        {
            "business_id": seed_business.id,
            "client_id": seed_client.id,
            "staff_id": seed_staff.id,
            "service_id": seed_service.id,
            "start_time": datetime(2030, 3, 1, 9, 0, tzinfo=timezone.utc),
        },
        actor_id,
    )
    return {"assignment": assignment, "appointment": appointment}


def live(db_session, model, **criteria):
    return BaseRepository(model, db_session).count(criteria or None)


class TestRelationshipOrder:

    def test_restrictions_come_first(self):
        policies = [r.policy for r in relationships_for(Staff)]
        assert policies[0] is DeletePolicy.RESTRICT

    def test_every_child_of_business_cascades(self):
        children = {r.child for r in relationships_for(Business)}
        assert children == {Appointment, ServiceAssignment, Staff, Service, ServiceCategory, Client}
        assert all(r.policy is DeletePolicy.CASCADE for r in relationships_for(Business))


class TestCascade:

    def test_business_delete_removes_whole_tree(self, db_session, seed_business, seed_owner, booked, actor_id):
        affected = CascadeDeleteService(db_session).soft_delete(Business, seed_business.id, actor_id)

        # business, two staff, service, client, assignment, appointment
        assert affected == 7
        for model in (Business, Staff, Service, Client, ServiceAssignment, Appointment):
            assert live(db_session, model) == 0
        assert BaseRepository(User, db_session).exists(seed_owner.id)

    def test_cascaded_rows_carry_delete_stamps(self, db_session, seed_business, booked, actor_id):
        CascadeDeleteService(db_session).soft_delete(Business, seed_business.id, actor_id)

        appointment = db_session.get(Appointment, booked["appointment"].id)
        assert appointment.deleted_at is not None
        assert appointment.deleted_by == actor_id

    def test_second_delete_is_not_found(self, db_session, seed_business, actor_id):
        service = CascadeDeleteService(db_session)
        service.soft_delete(Business, seed_business.id, actor_id)

        with pytest.raises(NotFoundError):
            service.soft_delete(Business, seed_business.id, actor_id)

    def test_service_delete_ends_assignments(self, db_session, factory, seed_staff, seed_service, actor_id):
        factory.assignments(db_session).assign(
            {"staff_id": seed_staff.id, "service_id": seed_service.id}, actor_id
        )

        affected = factory.catalog(db_session).delete(seed_service.id, actor_id)

        assert affected == 2
        assert live(db_session, ServiceAssignment) == 0


class TestRestrict:

    def test_open_appointment_blocks_staff_delete(self, db_session, factory, seed_staff, booked, actor_id):
        with pytest.raises(ConflictError) as exc_info:
            factory.staff(db_session).delete(seed_staff.id, actor_id)

        assert exc_info.value.rule == "restrict_appointments"
        # Nothing below the staff record was touched
        assert live(db_session, ServiceAssignment) == 1
        assert factory.staff(db_session).exists(seed_staff.id)

    def test_closed_appointments_do_not_block(self, db_session, factory, seed_staff, booked, actor_id):
        factory.appointments(db_session).cancel(booked["appointment"].id, actor_id)

        affected = factory.staff(db_session).delete(seed_staff.id, actor_id)

        assert affected == 2
        assert live(db_session, ServiceAssignment) == 0
        # History stays attached to the deleted staff record
        assert live(db_session, Appointment) == 1

    def test_open_appointment_blocks_client_and_service(self, db_session, factory, seed_client, seed_service, booked, actor_id):
        with pytest.raises(ConflictError):
            factory.clients(db_session).delete(seed_client.id, actor_id)
        with pytest.raises(ConflictError):
            factory.catalog(db_session).delete(seed_service.id, actor_id)


class TestSetNull:

    def test_user_delete_unlinks_clients(self, db_session, factory, seed_business, seed_employee, seed_staff, actor_id):
        client = factory.clients(db_session).create(
            {
                "business_id": seed_business.id,
                "first_name": "Bruno",
                "last_name": "Costa",
                "user_id": seed_employee.id,
            },
            actor_id,
        )

        affected = factory.users(db_session).delete(seed_employee.id, actor_id)

        # user, staff record, unlinked client
        assert affected == 3
        unlinked = factory.clients(db_session).get(client.id)
        assert unlinked.user_id is None
        assert unlinked.updated_by == actor_id
        assert not factory.staff(db_session).exists(seed_staff.id)
