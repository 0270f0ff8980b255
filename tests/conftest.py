"""Shared test fixtures."""
import os

# Must be set before slotbook.config builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from slotbook.config.settings import Settings
from slotbook.models import Base
from slotbook.repositories.sqlalchemy_repository import SqlAlchemyAppointmentRepository
from slotbook.schemas.booking_rules import BookingRules

from tests.factories import make_business, make_service


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://")


@pytest.fixture
def business():
    return make_business()


@pytest.fixture
def service(business):
    return make_service(business)


@pytest.fixture
def rules(business, service, settings):
    return BookingRules.for_service(business, service, settings)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def repository(db_session):
    return SqlAlchemyAppointmentRepository(db_session)


@pytest.fixture
def stored_business(db_session):
    business = make_business()
    db_session.add(business)
    db_session.commit()
    return business


@pytest.fixture
def stored_service(db_session, stored_business):
    service = make_service(stored_business)
    db_session.add(service)
    db_session.commit()
    return service
