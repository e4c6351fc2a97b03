"""
Tests for scoped uniqueness.

Tests cover:
- Duplicate live values and duplicate active assignments are rejected
- Soft delete and ending an assignment free the value again
- Index violations are mapped back to the rule that fired
- Assignment history cannot be rewritten through a generic update
- Concurrent writers: exactly one of N racing creates succeeds
"""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from booking_core.models import Staff, User, utcnow
from booking_core.repositories import (
    ScopedUniquenessEnforcer,
    ServiceAssignmentRepository,
    StaffRepository,
    UserRepository,
)
from booking_core.services import ServiceFactory
from shared.utils.exceptions import (
    ActiveAssignmentConflictError,
    ConflictError,
    DuplicateEntityError,
    ValidationError,
)


class TestLiveUniqueness:

    def test_duplicate_email_case_insensitive(self, db_session, factory, seed_owner):
        with pytest.raises(DuplicateEntityError) as exc_info:
            factory.users(db_session).create(
                {"email": "ANA.SILVA@example.com", "first_name": "Other", "last_name": "Person"}
            )

        assert exc_info.value.rule == "uq_users_email_live"
        assert exc_info.value.field == "email"

    def test_deleted_user_frees_email(self, db_session, factory, seed_employee, actor_id):
        users = factory.users(db_session)
        users.delete(seed_employee.id, actor_id)

        again = users.create(
            {"email": "bruno@example.com", "first_name": "Bruno", "last_name": "Novo"}, actor_id
        )

        assert again.id != seed_employee.id

    def test_update_into_taken_value(self, db_session, factory, seed_owner, seed_employee, actor_id):
        with pytest.raises(DuplicateEntityError):
            factory.users(db_session).update(seed_employee.id, {"email": "ana.silva@example.com"}, actor_id)

        stored = factory.users(db_session).get(seed_employee.id)
        assert stored.email == "bruno@example.com"

    def test_update_keeping_own_value(self, db_session, factory, seed_owner, actor_id):
        updated = factory.users(db_session).update(seed_owner.id, {"email": seed_owner.email}, actor_id)
        assert updated.email == seed_owner.email


class TestActiveAssignmentUniqueness:

    def test_second_active_staff_record_conflicts(self, db_session, factory, seed_staff, actor_id):
        with pytest.raises(ActiveAssignmentConflictError) as exc_info:
            factory.staff(db_session).assign(
                {"business_id": seed_staff.business_id, "user_id": seed_staff.user_id},
                actor_id,
            )

        assert exc_info.value.rule == "uq_staff_active_position"
        assert exc_info.value.scope_id == seed_staff.business_id
        assert exc_info.value.subject_id == seed_staff.user_id

    def test_ended_record_allows_new_assignment(self, db_session, factory, seed_staff, actor_id):
        staff = factory.staff(db_session)
        staff.deactivate(seed_staff.id, actor_id)

        again = staff.assign(
            {"business_id": seed_staff.business_id, "user_id": seed_staff.user_id},
            actor_id,
        )

        history = staff.history(seed_staff.business_id, seed_staff.user_id)
        assert [h.state for h in history] == ["ended", "active"]
        assert history[-1].id == again.id


class TestStorageLevelGuard:
    """The partial indexes catch what a pre-check cannot."""

    def test_index_rejects_duplicate_active_row(self, db_session, seed_staff, actor_id):
        duplicate = Staff(
            business_id=seed_staff.business_id,
            user_id=seed_staff.user_id,
            role="employee",
            permissions={},
            is_active=True,
            start_date=utcnow(),
        )
        duplicate.mark_created(actor_id)
        db_session.add(duplicate)

        with pytest.raises(IntegrityError) as exc_info:
            db_session.flush()
        db_session.rollback()

        error = StaffRepository(db_session).enforcer.translate(exc_info.value, duplicate)
        assert isinstance(error, ActiveAssignmentConflictError)
        assert error.rule == "uq_staff_active_position"

    def test_index_ignores_deleted_rows(self, db_session, actor_id):
        first = User(email="same@example.com", first_name="A", last_name="B", is_active=True)
        first.mark_created(actor_id)
        first.mark_deleted(actor_id)
        second = User(email="same@example.com", first_name="C", last_name="D", is_active=True)
        second.mark_created(actor_id)

        db_session.add_all([first, second])
        db_session.commit()

        assert UserRepository(db_session).find_by_email("same@example.com").id == second.id

    def test_not_null_violation_maps_to_validation(self, db_session, actor_id):
        user = User(email="x@example.com", first_name="X", last_name="Y", is_active=True)
        user.mark_created(actor_id)
        user.first_name = None
        db_session.add(user)

        with pytest.raises(IntegrityError) as exc_info:
            db_session.flush()
        db_session.rollback()

        error = ScopedUniquenessEnforcer(User).translate(exc_info.value, user)
        assert isinstance(error, ValidationError)

    def test_find_violations_empty_when_indexes_hold(self, db_session, seed_staff):
        for model in (User, Staff):
            assert ScopedUniquenessEnforcer(model).find_violations(db_session) == []


class TestAssignmentLifecycleGuards:
    """The pair and the lifecycle of an assignment change only through assign, end and reactivate."""

    def test_ended_staff_cannot_reopen_in_place(self, db_session, factory, seed_staff, actor_id):
        factory.staff(db_session).deactivate(seed_staff.id, actor_id)
        repo = StaffRepository(db_session)

        with pytest.raises(ValidationError) as exc_info:
            repo.update(seed_staff.id, {"is_active": True, "end_date": None}, actor_id)

        assert set(exc_info.value.fields) == {"is_active", "end_date"}
        assert {e.rule for e in exc_info.value.errors} == {"immutable"}
        assert not repo.get_by_id(seed_staff.id).is_current

    @pytest.mark.parametrize("field", ["user_id", "business_id"])
    def test_staff_pair_cannot_move(self, db_session, seed_staff, seed_owner, actor_id, field):
        repo = StaffRepository(db_session)

        with pytest.raises(ValidationError) as exc_info:
            repo.update(seed_staff.id, {field: seed_owner.id}, actor_id)

        assert exc_info.value.fields == [field]
        stored = repo.get_by_id(seed_staff.id)
        assert (stored.business_id, stored.user_id) == (seed_staff.business_id, seed_staff.user_id)

    @pytest.mark.parametrize("field", ["staff_id", "service_id", "business_id", "start_date"])
    def test_service_assignment_is_fixed(self, db_session, factory, seed_staff, seed_service, actor_id, field):
        assignment = factory.assignments(db_session).assign(
            {"staff_id": seed_staff.id, "service_id": seed_service.id}, actor_id
        )
        value = utcnow() if field == "start_date" else seed_staff.business_id

        with pytest.raises(ValidationError) as exc_info:
            ServiceAssignmentRepository(db_session).update(assignment.id, {field: value}, actor_id)

        assert exc_info.value.errors[0].rule == "immutable"

    def test_active_record_can_still_change_role(self, db_session, seed_staff, actor_id):
        updated = StaffRepository(db_session).update(seed_staff.id, {"role": "manager"}, actor_id)
        assert updated.role == "manager"
        assert updated.is_current


class TestConcurrentWriters:
    """Racing writers on separate connections; exactly one wins."""

    WORKERS = 6

    def _race(self, engine, attempt):
        Session = sessionmaker(bind=engine, autoflush=False)

        def run(_):
            session = Session()
            try:
                return attempt(session)
            except ConflictError as e:
                return e
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            return list(pool.map(run, range(self.WORKERS)))

    def test_racing_user_creates(self, file_engine, config):
        factory = ServiceFactory.from_settings(config)
        payload = {"email": "race@example.com", "first_name": "Race", "last_name": "Condition"}

        results = self._race(file_engine, lambda session: factory.users(session).create(payload))

        winners = [r for r in results if not isinstance(r, ConflictError)]
        losers = [r for r in results if isinstance(r, ConflictError)]
        assert len(winners) == 1
        assert len(losers) == self.WORKERS - 1
        assert all(isinstance(e, DuplicateEntityError) for e in losers)

        with sessionmaker(bind=file_engine)() as session:
            user_id = winners[0].id
            # The loser transactions left no orphan business or staff rows
            assert len(factory.users(session).list_businesses(user_id)) == 1
            assert factory.businesses(session).count() == 1

    def test_racing_staff_assignments(self, file_engine, config, actor_id):
        factory = ServiceFactory.from_settings(config)
        with sessionmaker(bind=file_engine)() as session:
            owner = factory.users(session).create(
                {"email": "owner@example.com", "first_name": "Olga", "last_name": "Owner"}
            )
            business = factory.users(session).list_businesses(owner.id)[0]
            employee = factory.users(session).create(
                {"email": "worker@example.com", "first_name": "Walter", "last_name": "Worker"}
            )
        payload = {"business_id": business.id, "user_id": employee.id}

        results = self._race(file_engine, lambda session: factory.staff(session).assign(payload, actor_id))

        losers = [r for r in results if isinstance(r, ConflictError)]
        assert len(losers) == self.WORKERS - 1
        assert all(isinstance(e, ActiveAssignmentConflictError) for e in losers)

        with sessionmaker(bind=file_engine)() as session:
            active = StaffRepository(session).find_active(business.id, employee.id)
            assert active is not None
            assert len(StaffRepository(session).history(business.id, employee.id)) == 1

    def test_racing_service_assignments(self, file_engine, config, actor_id):
        factory = ServiceFactory.from_settings(config)
        with sessionmaker(bind=file_engine)() as session:
            owner = factory.users(session).create(
                {"email": "stylist@example.com", "first_name": "Sara", "last_name": "Stylist"}
            )
            business = factory.users(session).list_businesses(owner.id)[0]
            staff = factory.staff(session).get_active(business.id, owner.id)
            service = factory.catalog(session).create(
                {"business_id": business.id, "name": "Fade", "duration_minutes": 30, "price": "18.00"},
                actor_id,
            )
        payload = {"staff_id": staff.id, "service_id": service.id}

        results = self._race(file_engine, lambda session: factory.assignments(session).assign(payload, actor_id))

        losers = [r for r in results if isinstance(r, ConflictError)]
        assert len(losers) == self.WORKERS - 1
        assert all(isinstance(e, ActiveAssignmentConflictError) for e in losers)

        with sessionmaker(bind=file_engine)() as session:
            repo = ServiceAssignmentRepository(session)
            assert repo.find_active(staff.id, service.id) is not None
            assert len(repo.history(staff.id, service.id)) == 1
