"""
Tests for entity models: field validation, audit stamps and partial indexes.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from booking_core.models import (
    Appointment,
    Base,
    Business,
    EntityMixin,
    Service,
    ServiceAssignment,
    Staff,
    User,
    utcnow,
)


class TestEntityValidation:
    """validate() reports every failing field at once."""

    def test_every_entity_defines_field_rules(self):
        for mapper in Base.registry.mappers:
            assert mapper.class_.validate is not EntityMixin.validate, mapper.class_.__name__

    def test_mixin_without_rules(self):
        class Bare(EntityMixin):
            pass

        with pytest.raises(NotImplementedError, match="Bare defines no field rules"):
            Bare().validate()

    def test_user_collects_all_errors(self):
        user = User(email="not-an-email", first_name="", last_name=None, phone="1" * 51)

        result = user.validate()

        assert not result.ok
        assert set(result.fields) == {"email", "first_name", "last_name", "phone"}

    def test_valid_user(self):
        user = User(email="ana@example.com", first_name="Ana", last_name="Silva")
        assert user.validate().ok

    def test_business_rejects_unknown_timezone_currency_and_tier(self):
        business = Business(
            user_id=uuid.uuid4(),
            name="Studio",
            country="Portugal",
            timezone="Mars/Olympus",
            currency="eur",
            subscription_tier="gold",
        )

        result = business.validate()

        assert set(result.fields) == {"timezone", "currency", "subscription_tier"}

    def test_staff_period_and_commission(self):
        now = utcnow()
        staff = Staff(
            business_id=uuid.uuid4(),
            user_id=uuid.uuid4(),
            role="boss",
            commission_rate=Decimal("150"),
            is_active=False,
            start_date=now,
            end_date=now - timedelta(days=1),
        )

        result = staff.validate()

        assert set(result.fields) == {"role", "commission_rate", "end_date"}

    def test_inactive_assignment_requires_end_date(self):
        assignment = ServiceAssignment(
            business_id=uuid.uuid4(),
            staff_id=uuid.uuid4(),
            service_id=uuid.uuid4(),
            is_active=False,
            start_date=utcnow(),
            end_date=None,
        )

        assert "end_date" in assignment.validate().fields

    def test_service_duration_must_be_positive(self):
        service = Service(
            business_id=uuid.uuid4(),
            name="Massage",
            duration_minutes=0,
            price=Decimal("200000"),
            currency="EUR",
            display_order=0,
        )

        assert set(service.validate().fields) == {"duration_minutes", "price"}

    def test_appointment_end_must_follow_start(self):
        start = datetime(2030, 1, 1, 10, 0, tzinfo=timezone.utc)
        appointment = Appointment(
            business_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            staff_id=uuid.uuid4(),
            start_time=start,
            end_time=start,
            status="unknown",
            total_price=Decimal("-1"),
            currency=None,
        )

        result = appointment.validate()

        assert set(result.fields) == {"end_time", "status", "total_price", "currency"}

    def test_naive_and_aware_times_compare(self):
        appointment = Appointment(
            business_id=uuid.uuid4(),
            client_id=uuid.uuid4(),
            staff_id=uuid.uuid4(),
            start_time=datetime(2030, 1, 1, 10, 0),
            end_time=datetime(2030, 1, 1, 10, 30, tzinfo=timezone.utc),
            status="scheduled",
            total_price=Decimal("10"),
            currency="EUR",
        )

        assert appointment.validate().ok
        assert appointment.duration_minutes == 30


class TestAuditStamps:

    def test_mark_created_sets_both_stamps(self):
        actor = uuid.uuid4()
        user = User(email="ana@example.com", first_name="Ana", last_name="Silva")

        user.mark_created(actor)

        assert user.id is not None
        assert user.created_by == actor
        assert user.updated_by == actor
        assert user.created_at == user.updated_at
        assert user.deleted_at is None
        assert not user.is_deleted

    def test_mark_deleted_twice_fails(self):
        actor = uuid.uuid4()
        user = User(email="ana@example.com", first_name="Ana", last_name="Silva")
        user.mark_created(actor)

        user.mark_deleted(actor)
        assert user.is_deleted
        assert user.deleted_by == actor

        with pytest.raises(ValueError):
            user.mark_deleted(actor)

    def test_table_identity(self):
        assert User.table_identity() == "users"
        assert ServiceAssignment.table_identity() == "service_assignments"


class TestScopedState:

    def test_state_follows_period(self):
        staff = Staff(is_active=True, start_date=utcnow(), end_date=None)
        assert staff.is_current
        assert staff.state == "active"

        staff.is_active = False
        staff.end_date = utcnow()
        assert not staff.is_current
        assert staff.state == "ended"

    def test_scope_and_subject(self):
        business_id, user_id = uuid.uuid4(), uuid.uuid4()
        staff = Staff(business_id=business_id, user_id=user_id)
        assert staff.scope_id == business_id
        assert staff.subject_id == user_id


class TestUniqueIndexes:
    """Every declared rule is backed by a partial unique index."""

    @pytest.mark.parametrize("model", [User, Business, Staff, Service, ServiceAssignment])
    def test_rules_have_indexes(self, model):
        indexes = {index.name: index for index in Base.metadata.tables[model.table_identity()].indexes}

        for rule in model.UNIQUE_RULES:
            index = indexes[rule.name]
            assert index.unique
            assert index.dialect_options["sqlite"]["where"] is not None
            assert index.dialect_options["postgresql"]["where"] is not None
            assert [c.name for c in index.columns] == list(rule.columns)
