"""Pytest fixtures for fire dispatch backend tests."""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import fireops.models  # noqa: F401
from fireops.database import Base, get_db
from fireops.dependencies import get_publisher
from fireops.limiter import limiter
from fireops.main import app
from fireops.models import Department, EmergencyAlert, FirePersonnel, Incident, Station, Unit, User
from fireops.models.station import IN_COMMISSION
from fireops.notifications import NotificationFanout
from fireops.services import AlertLifecycle, IncidentLifecycle, UnitScheduler

# In-memory SQLite shared across the session's connections
TEST_DATABASE_URL = "sqlite+aiosqlite://"


class FrozenClock:
    """Controllable clock injected into the services."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingPublisher:
    """Publisher that keeps every event instead of delivering it."""

    def __init__(self):
        self.published: list[tuple[str, dict[str, Any], str | None]] = []

    async def publish(self, event: str, payload: dict[str, Any], room: str | None = None) -> None:
        self.published.append((event, payload, room))

    def events(self, name: str | None = None) -> list[tuple[str, dict[str, Any], str | None]]:
        return [p for p in self.published if name is None or p[0] == name]

    def names(self) -> list[str]:
        return [p[0] for p in self.published]

    def rooms(self, name: str) -> list[str | None]:
        return [room for event, _, room in self.published if event == name]


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 1, 18, 10, 0, 0, tzinfo=UTC))


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def fanout(publisher) -> NotificationFanout:
    return NotificationFanout(publisher)


@pytest.fixture
def incidents(db_session, fanout, clock) -> IncidentLifecycle:
    return IncidentLifecycle(db_session, fanout, clock=clock)


@pytest.fixture
def alerts(db_session, fanout, incidents, clock) -> AlertLifecycle:
    return AlertLifecycle(db_session, fanout, incidents, clock=clock)


@pytest.fixture
def units(db_session, clock) -> UnitScheduler:
    return UnitScheduler(db_session, clock=clock, tz="UTC", manual_hour=7, auto_hour=8)


@pytest_asyncio.fixture
async def client(db_session: AsyncSession, publisher) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and publisher overrides."""

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_publisher] = lambda: publisher
    limiter_enabled = limiter.enabled
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()
    limiter.enabled = limiter_enabled


async def _add(db: AsyncSession, obj):
    db.add(obj)
    await db.commit()
    return obj


@pytest_asyncio.fixture
async def station(db_session) -> Station:
    """An in-commission station with no alerts or incidents."""
    return await _add(
        db_session,
        Station(
            name="Accra Central Fire Station",
            call_sign="ACC-01",
            location="Accra Central",
            lat=5.5502,
            lng=-0.2174,
            phone_number="+233 30 000 0000",
            place_id="place-accra-central",
            status=IN_COMMISSION,
        ),
    )


@pytest_asyncio.fixture
async def other_station(db_session) -> Station:
    return await _add(
        db_session,
        Station(
            name="Tema Fire Station",
            call_sign="TEM-01",
            location="Tema",
            lat=5.6698,
            lng=-0.0166,
            place_id="place-tema",
            status=IN_COMMISSION,
        ),
    )


@pytest_asyncio.fixture
async def operations(db_session, station) -> Department:
    return await _add(db_session, Department(name="Operations", station_id=station.id))


@pytest_asyncio.fixture
async def administration(db_session, station) -> Department:
    return await _add(db_session, Department(name="Administration", station_id=station.id))


@pytest_asyncio.fixture
async def red_watch(db_session, operations) -> Unit:
    return await _add(db_session, Unit(name="Red Watch", color="#d32f2f", department_id=operations.id))


@pytest_asyncio.fixture
async def blue_watch(db_session, operations) -> Unit:
    return await _add(db_session, Unit(name="Blue Watch", color="#1976d2", department_id=operations.id))


@pytest_asyncio.fixture
async def on_duty(db_session, red_watch, clock) -> Unit:
    """Red Watch, on duty since the start of the test clock."""
    red_watch.is_active = True
    red_watch.activated_at = clock()
    await db_session.commit()
    return red_watch


@pytest_asyncio.fixture
async def reporter(db_session) -> User:
    return await _add(db_session, User(name="Ama Mensah", email="ama@example.com", phone="+233 20 111 2222"))


@pytest_asyncio.fixture
async def personnel(db_session, station) -> FirePersonnel:
    return await _add(
        db_session,
        FirePersonnel(name="Kofi Boateng", email="kofi@example.com", rank="Sub Officer", station_id=station.id),
    )


@pytest.fixture
def alert_body() -> Callable[..., dict[str, Any]]:
    """Build a camelCase create-alert request body."""

    def build(station: Any, user: Any, /, **overrides) -> dict[str, Any]:
        body = {
            "incidentType": "fire",
            "incidentName": "Market fire",
            "location": {
                "locationName": "Makola Market",
                "locationUrl": "https://maps.example.com/makola",
                "coordinates": {"latitude": 5.5481, "longitude": -0.2107},
            },
            "station": str(station.id) if hasattr(station, "id") else station,
            "userId": str(user.id) if hasattr(user, "id") else user,
            "priority": "high",
        }
        body.update(overrides)
        return body

    return build


@pytest.fixture
def make_alert(db_session, reporter, clock) -> Callable[..., Awaitable[EmergencyAlert]]:
    """Insert an alert directly, bypassing the guard."""

    async def create(station: Station, **fields) -> EmergencyAlert:
        values = {
            "incident_type": "fire",
            "incident_name": "Warehouse fire",
            "latitude": 5.55,
            "longitude": -0.21,
            "station_id": station.id,
            "reporter_id": reporter.id,
            "reporter_type": "User",
            "status": "active",
            "reported_at": clock(),
            "created_at": clock(),
            "updated_at": clock(),
        }
        values.update(fields)
        return await _add(db_session, EmergencyAlert(**values))

    return create


@pytest.fixture
def make_incident(db_session, clock) -> Callable[..., Awaitable[Incident]]:
    """Insert an incident directly with the given status."""

    async def create(alert: EmergencyAlert, department: Department, unit: Unit, **fields) -> Incident:
        values = {
            "alert_id": alert.id,
            "station_id": alert.station_id,
            "department_id": department.id,
            "unit_id": unit.id,
            "status": "pending",
            "created_at": clock(),
            "updated_at": clock(),
        }
        values.update(fields)
        return await _add(db_session, Incident(**values))

    return create
