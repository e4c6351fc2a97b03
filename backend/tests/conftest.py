"""
Pytest configuration and fixtures for booking core tests.
"""

import uuid

import pytest
from sqlalchemy.orm import sessionmaker

from booking_core.models import Base
from booking_core.services import ServiceFactory
from shared.config.settings import Settings
from shared.infrastructure.db import build_engine


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite://"


@pytest.fixture(scope="function")
def engine():
    """Fresh in-memory database with every table and partial index."""
    engine = build_engine(SQLALCHEMY_DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def file_engine(tmp_path):
    """
    File-backed database for tests that use several connections at once.
    In-memory SQLite shares a single connection and cannot race.
    """
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def config():
    return Settings(database_url=SQLALCHEMY_DATABASE_URL, provision_default_business=True)


@pytest.fixture
def factory(config):
    return ServiceFactory.from_settings(config)


@pytest.fixture
def actor_id():
    """Acting principal for writes."""
    return uuid.uuid4()


@pytest.fixture
def seed_owner(db_session, factory):
    """A user with the default business and owner staff record."""
    return factory.users(db_session).create(
        {"email": "Ana.Silva@Example.com", "first_name": "Ana", "last_name": "Silva"}
    )


@pytest.fixture
def seed_business(db_session, factory, seed_owner):
    return factory.users(db_session).list_businesses(seed_owner.id)[0]


@pytest.fixture
def seed_employee(db_session, factory, actor_id):
    """A user without a business of their own."""
    config = factory.config.model_copy(update={"provision_default_business": False})
    users = ServiceFactory.from_settings(config).users(db_session)
    return users.create(
        {"email": "bruno@example.com", "first_name": "Bruno", "last_name": "Costa"},
        actor_id,
    )


@pytest.fixture
def seed_staff(db_session, factory, seed_business, seed_employee, actor_id):
    return factory.staff(db_session).assign(
        {"business_id": seed_business.id, "user_id": seed_employee.id, "role": "employee"},
        actor_id,
    )


@pytest.fixture
def seed_service(db_session, factory, seed_business, actor_id):
    return factory.catalog(db_session).create(
        {
            "business_id": seed_business.id,
            "name": "Haircut",
            "duration_minutes": 45,
            "price": "25.00",
        },
        actor_id,
    )


@pytest.fixture
def seed_client(db_session, factory, seed_business, actor_id):
    return factory.clients(db_session).create(
        {
            "business_id": seed_business.id,
            "first_name": "Carla",
            "last_name": "Dias",
            "email": "carla@example.com",
            "phone": "+351 912 345 678",
        },
        actor_id,
    )
