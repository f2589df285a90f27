from __future__ import annotations

from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.deps import get_current_member
from app.core.clock import get_now
from app.core.db import Base, get_db
from app.main import app
from app.models.event import Event
from app.models.member import Member
from app.models.organization import Organization

SQLALCHEMY_TEST_URL = "sqlite+pysqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)

NOW = datetime(2024, 9, 2, 10, 0, tzinfo=timezone.utc)


def override_get_db() -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    session = TestingSessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    app.dependency_overrides.clear()
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def authorize(client: TestClient):
    def _apply(member: Member):
        app.dependency_overrides[get_current_member] = lambda: member

    yield _apply
    app.dependency_overrides.pop(get_current_member, None)


@pytest.fixture()
def freeze_now(client: TestClient):
    def _apply(moment: datetime):
        app.dependency_overrides[get_now] = lambda: moment

    yield _apply
    app.dependency_overrides[get_now] = lambda: NOW


def _create_organization(session: Session, code: str, fine: str = "50.00") -> Organization:
    organization = Organization(name=f"{code} Society", code=code, attendance_fine=Decimal(fine))
    session.add(organization)
    session.commit()
    session.refresh(organization)
    return organization


def _create_member(session: Session, organization: Organization, student_id: str, **overrides) -> Member:
    values = {
        "first_name": "Student",
        "last_name": student_id,
        "email": f"{student_id.lower()}@campus.example.com",
        "is_officer": False,
        "organization_member": True,
        "can_scan": False,
        "is_active": True,
    }
    values.update(overrides)
    member = Member(organization_id=organization.id, student_id=student_id, **values)
    session.add(member)
    session.commit()
    session.refresh(member)
    return member


@pytest.fixture()
def make_member(db_session: Session):
    def _make(organization: Organization, student_id: str, **overrides) -> Member:
        return _create_member(db_session, organization, student_id, **overrides)

    return _make


@pytest.fixture()
def make_event(db_session: Session):
    def _make(
        organization: Organization,
        *,
        title: str = "General Assembly",
        start: datetime | None = None,
        end: datetime | None = None,
        is_active: bool = True,
    ) -> Event:
        event = Event(
            organization_id=organization.id,
            title=title,
            start_time=start or NOW - timedelta(hours=1),
            end_time=end or NOW + timedelta(hours=1),
            is_active=is_active,
        )
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make


@pytest.fixture()
def organization(db_session: Session) -> Organization:
    return _create_organization(db_session, "CSS")


@pytest.fixture()
def other_organization(db_session: Session) -> Organization:
    return _create_organization(db_session, "ENG", fine="25.00")


@pytest.fixture()
def officer(db_session: Session, organization: Organization) -> Member:
    return _create_member(
        db_session,
        organization,
        "2020-0001",
        first_name="Maria",
        last_name="Santos",
        is_officer=True,
        can_scan=True,
    )


@pytest.fixture()
def student(db_session: Session, organization: Organization) -> Member:
    return _create_member(db_session, organization, "2021-0100", first_name="Juan", last_name="Dela Cruz")


@pytest.fixture()
def active_event(make_event, organization: Organization) -> Event:
    return make_event(organization)


@pytest.fixture()
def ended_event(make_event, organization: Organization) -> Event:
    return make_event(
        organization,
        title="Orientation",
        start=NOW - timedelta(hours=3),
        end=NOW - timedelta(hours=1),
    )
