import os
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["JWT_ALGORITHM"] = "HS256"
os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "60"

from runsync.core.enums import ActivitySource, UserRole  # noqa: E402
from runsync.core.security import get_password_hash  # noqa: E402
from runsync.database import Base, get_db  # noqa: E402
from runsync.main import app  # noqa: E402
from runsync.models.activity import Activity  # noqa: E402
from runsync.models.user import User  # noqa: E402

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def reset_database() -> None:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture(autouse=True)
def _prepare_db():
    reset_database()


@pytest.fixture()
def client():
    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def make_user(db_session):
    def _make_user(email: str, role: UserRole = UserRole.ATHLETE) -> User:
        user = User(name=email.split("@")[0], email=email, role=role, password_hash=PASSWORD_HASH)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def make_activity(db_session):
    """Insert an activity row; ``source=None`` writes an untagged legacy row."""

    def _make_activity(
        user: User,
        start: datetime,
        distance: float,
        source: ActivitySource | None = ActivitySource.DEVICE_HEALTH,
        device_health_uuid: str | None = None,
        fitness_network_id: int | None = None,
        minutes: float = 30,
    ) -> Activity:
        activity = Activity(
            user_id=user.id,
            start_date=start,
            end_date=start + timedelta(minutes=minutes),
            duration=minutes,
            distance=distance,
            source=source,
            device_health_uuid=device_health_uuid,
            fitness_network_id=fitness_network_id,
        )
        db_session.add(activity)
        db_session.commit()
        return activity

    return _make_activity


@pytest.fixture()
def auth_headers(client):
    def _auth_headers(email: str, password: str = PASSWORD) -> dict[str, str]:
        response = client.post("/auth/login", params={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _auth_headers
