import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from main import app
from database import Base, get_db
from dependencies import get_notification_service, get_session_factory
from models import User
from auth import get_password_hash, create_access_token
from utils.notifications import NotificationService

# Setup in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Every test runs "now" in the middle of March 2026
FROZEN_NOW = datetime(2026, 3, 15, 12, 0, 0)
THIS_MONTH = "2026-03"


class FrozenClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)

@pytest.fixture
def clock():
    return FrozenClock(FROZEN_NOW)

@pytest.fixture
def notification_service(clock):
    return NotificationService(app.state.connections, cooldown_minutes=60, clock=clock)

@pytest.fixture(scope="function")
def client(db_session, notification_service):
    """Create a FastAPI TestClient with overridden database and notification dependencies."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_service] = lambda: notification_service
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.pop(get_db, None)
    app.dependency_overrides.pop(get_notification_service, None)
    app.dependency_overrides.pop(get_session_factory, None)

@pytest.fixture
def make_user(db_session):
    """Factory that inserts a user and returns it."""
    def _make_user(email, full_name, upi_id=None):
        user = User(
            email=email,
            hashed_password=get_password_hash("password123"),
            full_name=full_name,
            upi_id=upi_id,
            is_active=True
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user

@pytest.fixture
def test_user(make_user):
    """Create a test user and return the user object."""
    return make_user("test@example.com", "Test User")

@pytest.fixture
def other_user(make_user):
    return make_user("other@example.com", "Other User")

@pytest.fixture
def third_user(make_user):
    return make_user("third@example.com", "Third User")

def headers_for(user):
    access_token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {access_token}"}

@pytest.fixture
def auth_headers(test_user):
    """Return authorization headers for the test user."""
    return headers_for(test_user)

@pytest.fixture
def other_headers(other_user):
    return headers_for(other_user)

@pytest.fixture
def third_headers(third_user):
    return headers_for(third_user)

@pytest.fixture
def group_of_three(client, auth_headers, test_user, other_user, third_user):
    """Group created by test_user with other_user and third_user added, in that order."""
    group_id = client.post("/groups", headers=auth_headers, json={"name": "Goa Trip"}).json()["id"]
    for user in (other_user, third_user):
        resp = client.post(f"/groups/{group_id}/members", headers=auth_headers, json={"email": user.email})
        assert resp.status_code == 200
    return group_id
