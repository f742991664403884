"""Shared test fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("EXCHANGE_RATE_WARM_ON_STARTUP", "false")

import pytest
import httpx
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from decimal import Decimal
import uuid

from app.database import Base, get_db as database_get_db
from app.dependencies import get_db as dependencies_get_db, get_rate_cache, get_mailer
from app.main import app
from app.models.user import User, Role
from app.models.expense import Expense, ExpenseKind
from app.services.exchange_rate_service import ExchangeRateCache
from app.services.mailer import Mailer
from app.services.security import hash_password

PRIMARY_URL = "https://rates.test/primary/vnd.json"
FALLBACK_URL = "https://rates.test/fallback/vnd.json"

# 1 VND = 0.00004 USD -> 1 USD = 25000 VND; 1 VND = 0.00003703... EUR -> 1 EUR = 27000 VND
RATE_PAYLOAD = {"date": "2024-01-31", "vnd": {"usd": 0.00004, "eur": 1 / 27000, "jpy": 0.006}}


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer(Mailer):
    """Keeps sent messages for assertions."""

    def __init__(self):
        self.sent = []

    def send(self, to: str, subject: str, html: str) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html})


def make_rate_cache(handler, clock=None, **kwargs) -> ExchangeRateCache:
    """Rate cache whose HTTP calls are answered by handler(request)."""
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return ExchangeRateCache(
        primary_url=PRIMARY_URL,
        fallback_url=FALLBACK_URL,
        client=client,
        clock=clock or FakeClock(),
        **kwargs
    )


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database for each test using in-memory SQLite."""
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Create all tables
    Base.metadata.create_all(bind=engine)

    # Create session
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def rate_requests():
    """URLs hit by the rate cache fixture, in order."""
    return []


@pytest.fixture
def rate_cache(rate_requests):
    """Rate cache served by a mocked primary endpoint."""
    def handler(request: httpx.Request) -> httpx.Response:
        rate_requests.append(str(request.url))
        return httpx.Response(200, json=RATE_PAYLOAD)

    cache = make_rate_cache(handler)
    yield cache
    cache.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture(scope="function")
def client(db_session, rate_cache, mailer):
    """Create a test client with database, rate cache and mailer overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    # Override both get_db functions (app.database and app.dependencies)
    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[dependencies_get_db] = override_get_db
    app.dependency_overrides[get_rate_cache] = lambda: rate_cache
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, username: str, role: Role = Role.user) -> User:
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password("secret123"),
        role=role,
        is_email_verified=True,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def sample_user(db_session):
    """Create a regular user."""
    return _make_user(db_session, "alice")


@pytest.fixture
def other_user(db_session):
    """Create a second regular user."""
    return _make_user(db_session, "bob")


@pytest.fixture
def admin_user(db_session):
    """Create an admin user."""
    return _make_user(db_session, "root", Role.admin)


@pytest.fixture
def auth_headers(sample_user):
    return {"X-User-Id": sample_user.id}


@pytest.fixture
def admin_headers(admin_user):
    return {"X-User-Id": admin_user.id}


def add_expense(db_session, user, amount, kind, currency="VND", type="food", date="2024-01-15", resource="CASH"):
    expense = Expense(
        id=str(uuid.uuid4()),
        user_id=user.id,
        amount=Decimal(str(amount)),
        currency=currency,
        kind=kind,
        type=type,
        resource=resource,
        description=None,
        date=date,
    )
    db_session.add(expense)
    db_session.commit()
    db_session.refresh(expense)
    return expense


@pytest.fixture
def sample_expenses(db_session, sample_user):
    """A salary in USD, two VND food expenses and a EUR travel expense across months."""
    return [
        add_expense(db_session, sample_user, 100, ExpenseKind.income, "USD", "salary", "2024-01-15"),
        add_expense(db_session, sample_user, -500000, ExpenseKind.expense, "VND", "food", "2024-01-20"),
        add_expense(db_session, sample_user, -200000, ExpenseKind.expense, "VND", "food", "2024-02-03"),
        add_expense(db_session, sample_user, -10, ExpenseKind.expense, "EUR", "travel", "2024-02-05"),
    ]
