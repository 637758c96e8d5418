# Imports for testing tools
import datetime
import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from unittest.mock import MagicMock

# Import your application code
from rentng.config import Settings
from rentng.main import create_app
from rentng.database import Base, get_db, get_redis_client
from rentng import models

# --- Test Database Setup ---
# File-backed so that sessions on different threads share one database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_rentng.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

test_settings = Settings(
    _env_file=None,
    DATABASE_URL=SQLALCHEMY_DATABASE_URL,
    SECRET_KEY="test-secret-key",
    ALGORITHM="HS256",
    RATE_LIMIT_ENABLED=False,
    CREATE_TABLES=False,
    SCHEDULER_ENABLED=False,
)

TENANT_ID = 1
OTHER_TENANT_ID = 2
LANDLORD_ID = 10


# --- Helpers ---
def create_test_token(user_id: int = TENANT_ID) -> str:
    """Creates a bearer token the service will accept."""
    payload = {"sub": str(user_id)}
    token = jwt.encode(payload, test_settings.SECRET_KEY, algorithm=test_settings.ALGORITHM)
    return f"Bearer {token}"


def auth_for(user_id: int) -> dict:
    return {"Authorization": create_test_token(user_id)}


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None, microsecond=0)


def days_from_now(days: int) -> str:
    """ISO timestamp `days` ahead of now, at noon to stay clear of the clock."""
    moment = (utc_now() + datetime.timedelta(days=days)).replace(hour=12, minute=0, second=0)
    return moment.isoformat()


# --- Database Management Fixtures ---
@pytest.fixture(scope="function", autouse=True)
def setup_db():
    """Creates fresh tables for every test and drops them afterwards."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def session_factory():
    return TestingSessionLocal


@pytest.fixture(scope="function")
def db_session():
    """Provides a database session for arranging and inspecting test data."""
    session = TestingSessionLocal()
    yield session
    session.close()


# --- Data Fixtures ---
@pytest.fixture
def property_(db_session):
    db_property = models.Property(
        landlord_id=LANDLORD_ID,
        name="Lekki Gardens",
        description="Serviced apartments close to the beach.",
        address="12 Admiralty Way",
        city="Lekki",
        state="Lagos",
    )
    db_session.add(db_property)
    db_session.commit()
    db_session.refresh(db_property)
    return db_property


@pytest.fixture
def unit(db_session, property_):
    db_unit = models.Unit(
        property_id=property_.id,
        unit_number="A1",
        bedroom_count=2,
        bathroom_count=2,
        size=120,
        price_per_month=300000,
    )
    db_session.add(db_unit)
    db_session.commit()
    db_session.refresh(db_unit)
    return db_unit


@pytest.fixture
def make_booking(db_session):
    """Inserts a booking directly, bypassing every lifecycle check."""
    def _make_booking(unit, check_in, check_out, status=models.BookingStatus.PENDING,
                      tenant_id=TENANT_ID):
        booking = models.Booking(
            tenant_id=tenant_id,
            unit_id=unit.id,
            property_id=unit.property_id,
            check_in_date=check_in,
            check_out_date=check_out,
            status=status,
        )
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking

    return _make_booking


# --- Mocking External Services ---
@pytest.fixture(scope="function")
def redis_mock():
    """A Redis stand-in with an empty cache."""
    client = MagicMock()
    client.get.return_value = None
    return client


# --- API Test Client Fixture ---
@pytest.fixture(scope="function")
def client(redis_mock):
    """Provides a TestClient for the booking service."""
    app = create_app(test_settings)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis_client] = lambda: redis_mock

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
