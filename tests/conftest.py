"""
Test configuration and fixtures.

Provides:
- File-backed SQLite database per test (WAL, so threads can share it)
- A business with one service and a 09:00-12:00 window on the booking day
- Recording fakes for the notifier, recovery dispatcher and metrics hook
- Services container and a TestClient wired to the same session factory
"""
import os
import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Generator, List, Tuple

import pytest
from sqlalchemy import event
from sqlalchemy.orm import Session, sessionmaker

# Keep module-level engines and Celery off real infrastructure
os.environ.setdefault("DATABASE_URL", "sqlite:///./booking-import.db")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from app.config.database import build_engine, get_db
from app.config.settings import Settings
from app.models import AvailabilityWindow, Base, Business, Service
from app.schemas.appointment import AppointmentCreate
from app.services.container import Services, build_services


# =============================================================================
# Time
# =============================================================================

# Monday 2030-01-07 08:00 UTC; bookings go on Wednesday 2030-01-09
NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)
BOOKING_DAY = date(2030, 1, 9)


class FakeClock:
    """Callable clock the tests can move forward"""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def booking_day() -> date:
    return BOOKING_DAY


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'booking.db'}")

    @event.listens_for(engine, "connect")
    def set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Tenant data
# =============================================================================

@pytest.fixture
def business(db: Session) -> Business:
    business = Business(
        id=uuid.uuid4(),
        name="Happy Paws",
        phone_number="+5511999990000",
        timezone="UTC",
        booking_settings={},
        is_active=True,
    )
    db.add(business)
    db.commit()
    return business


@pytest.fixture
def service(db: Session, business: Business) -> Service:
    service = Service(
        id=uuid.uuid4(),
        business_id=business.id,
        name="Bath",
        duration=60,
        capacity_per_window=1,
        price=Decimal("50.00"),
        is_active=True,
    )
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def window(db: Session, business: Business) -> AvailabilityWindow:
    window = AvailabilityWindow(
        business_id=business.id,
        day_of_week=BOOKING_DAY.weekday(),
        start_time=time(9, 0),
        end_time=time(12, 0),
        capacity=1,
        is_active=True,
    )
    db.add(window)
    db.commit()
    return window


# =============================================================================
# Collaborator fakes
# =============================================================================

class FakeNotifier:
    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def send(self, recipient, message):
        if self.fail:
            raise RuntimeError("provider down")
        self.sent.append((recipient, message))
        return f"SM{len(self.sent)}"


class FakeDispatcher:
    def __init__(self):
        self.dispatched: List[Tuple[uuid.UUID, datetime]] = []

    def dispatch(self, attempt_id, scheduled_for):
        self.dispatched.append((attempt_id, scheduled_for))


class FakeMetrics:
    def __init__(self):
        self.calls: List[Tuple[uuid.UUID, str]] = []

    def recompute_customer_metrics(self, business_id, customer_ref):
        self.calls.append((business_id, customer_ref))


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def dispatcher() -> FakeDispatcher:
    return FakeDispatcher()


@pytest.fixture
def metrics() -> FakeMetrics:
    return FakeMetrics()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        SLOT_STEP_MINUTES=30,
        SUGGESTION_DAYS=7,
        SUGGESTION_LIMIT=3,
        BOOKING_LOCK_TIMEOUT_SECONDS=10.0,
        RECOVERY_NUDGE_DELAY_HOURS=24,
    )


@pytest.fixture
def services(settings, notifier, dispatcher, metrics, clock) -> Services:
    return build_services(
        settings,
        notifier=notifier,
        recovery_dispatcher=dispatcher,
        metrics=metrics,
        clock=clock,
    )


# =============================================================================
# Helpers
# =============================================================================

@pytest.fixture
def make_request(service):
    def _make(at: time = time(10, 0), day: date = BOOKING_DAY, **overrides) -> AppointmentCreate:
        data = {
            "service_id": service.id,
            "customer_ref": "cust-1",
            "customer_name": "Ana",
            "customer_phone": "+5511988887777",
            "pet_name": "Rex",
            "pet_size": "medium",
            "scheduled_date": day,
            "scheduled_time": at,
        }
        data.update(overrides)
        return AppointmentCreate(**data)

    return _make


@pytest.fixture
def booked(db, services, business, service, window, make_request):
    """A pending appointment at 10:00 on the booking day"""
    return services.appointments.create(db, business.id, make_request())


# =============================================================================
# HTTP client
# =============================================================================

@pytest.fixture
def client(services, session_factory):
    from fastapi.testclient import TestClient
    from app.main import create_app

    app = create_app(services)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def headers(business):
    return {"X-Business-ID": str(business.id)}
