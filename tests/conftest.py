"""Test configuration and fixtures."""

from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from release_tracker.api import app
from release_tracker.db import audit_models, models  # noqa: F401
from release_tracker.db.base import Base, get_db
from release_tracker.releases.schemas import ReleaseCreate
from release_tracker.tickets.schemas import TicketDescription


@pytest.fixture
def engine():
    """A fresh in-memory database per test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory) -> Generator[TestClient, None, None]:
    """API client whose requests use the test database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_ticket(ticket_id: str, **overrides) -> TicketDescription:
    """Build a ticket description with sensible defaults."""
    data = {
        "ticket_id": ticket_id,
        "summary": f"Summary of {ticket_id}",
        "status": "Done",
        "created": "2024-03-01T10:00:00.000+0000",
        "updated": "2024-03-02T10:00:00.000+0000",
    }
    data.update(overrides)
    return TicketDescription(**data)


def make_release(version: str, tickets=(), **overrides) -> ReleaseCreate:
    """Build a release payload with sensible defaults."""
    data = {"version": version, "tickets": None if tickets is None else list(tickets)}
    data.update(overrides)
    return ReleaseCreate(**data)
