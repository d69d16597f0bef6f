"""Pytest fixtures shared by unit and integration tests.

Provides:
- SQLite in-memory database session (tables created per test)
- Users for every role
- An in-memory ObjectStoragePort
- Authenticated TestClients per role

Usage:
    def test_admin_endpoint(admin_client, submitted_application):
        response = admin_client.get(f"/api/applications/{submitted_application.id}")
        assert response.status_code == 200
"""

import os

# Set environment variables BEFORE any imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("MINIO_ROOT_USER", "minioadmin")
os.environ.setdefault("MINIO_ROOT_PASSWORD", "minioadmin")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("REQUIRE_STATUS_NOTE", "true")

import hashlib
import io
from datetime import datetime, timezone
from typing import Dict, Generator
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from imiiza.applications.service import ApplicationService
from imiiza.auth.jwt import create_access_token
from imiiza.auth.password import hash_password
from imiiza.config import get_settings
from imiiza.database import get_db as database_get_db
from imiiza.dependencies import get_storage
from imiiza.domain.documents.ports.object_storage_port import ObjectStoragePort, StoredFile
from imiiza.models import Base
from imiiza.models.user import User


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

DEFAULT_PASSWORD = "visa2024pass"


class InMemoryStorage(ObjectStoragePort):
    """ObjectStoragePort keeping objects in a dict."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.mime_types: Dict[str, str] = {}

    async def store_file(self, file, prefix, filename, mime_type):
        content = file.read()
        if not content:
            raise ValueError("Cannot store empty file")
        ext = os.path.splitext(filename)[1].lower()
        key = f"{prefix.strip('/')}/{uuid4()}{ext}"
        self.objects[key] = content
        self.mime_types[key] = mime_type
        return StoredFile(
            storage_key=key,
            url=f"memory://{key}",
            sha256=hashlib.sha256(content).hexdigest(),
            size_bytes=len(content),
            mime_type=mime_type,
        )

    async def retrieve_file(self, storage_key):
        if storage_key not in self.objects:
            raise FileNotFoundError(storage_key)
        return io.BytesIO(self.objects[storage_key])

    async def delete_file(self, storage_key):
        self.mime_types.pop(storage_key, None)
        return self.objects.pop(storage_key, None) is not None

    async def file_exists(self, storage_key):
        return storage_key in self.objects

    async def generate_presigned_url(self, storage_key, expires_in_seconds=3600):
        if storage_key not in self.objects:
            raise FileNotFoundError(storage_key)
        return f"memory://{storage_key}?expires={expires_in_seconds}"


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh database for each test: tables created before, dropped after."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


def _make_user(db_session: Session, role: str, email: str, username: str) -> User:
    user = User(
        email=email,
        username=username,
        role=role,
        password_hash=hash_password(DEFAULT_PASSWORD),
        status="ACTIVE",
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def applicant(db_session: Session) -> User:
    return _make_user(db_session, "user", "applicant@example.com", "Asha Applicant")


@pytest.fixture
def other_applicant(db_session: Session) -> User:
    return _make_user(db_session, "user", "other@example.com", "Other Applicant")


@pytest.fixture
def admin_user(db_session: Session) -> User:
    return _make_user(db_session, "admin", "admin@example.com", "Admin User")


@pytest.fixture
def agent_user(db_session: Session) -> User:
    return _make_user(db_session, "agent", "agent@example.com", "Agent One")


@pytest.fixture
def second_agent(db_session: Session) -> User:
    return _make_user(db_session, "agent", "agent2@example.com", "Agent Two")


@pytest.fixture
def sales_user(db_session: Session) -> User:
    return _make_user(db_session, "sales", "sales@example.com", "Sales User")


@pytest.fixture
def employee_user(db_session: Session) -> User:
    return _make_user(db_session, "employee", "employee@example.com", "Employee User")


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def service(db_session: Session) -> ApplicationService:
    return ApplicationService(db_session, get_settings())


@pytest.fixture
def submitted_application(service: ApplicationService, applicant: User):
    """Application in 'Document Submitted' owned by ``applicant``."""
    return service.create_application(
        user_id=applicant.id,
        name="Asha Applicant",
        email="applicant@example.com",
        destination_id="ca",
        destination_name="Canada",
        visa_type="Student Visa",
        documents=[{"type": "Application Form", "url": "memory://form.pdf"}],
        now=datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def app(db_session: Session, storage: InMemoryStorage):
    """FastAPI app wired to the test database and in-memory storage."""
    from imiiza.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    yield app
    app.dependency_overrides.clear()


def _client_for(app, user: User = None) -> TestClient:
    client = TestClient(app)
    if user is not None:
        token = create_access_token(user_id=user.id, role=user.role, email=user.email)
        client.headers.update({"Authorization": f"Bearer {token}"})
    return client


@pytest.fixture
def client(app):
    """Unauthenticated test client."""
    return _client_for(app)


@pytest.fixture
def applicant_client(app, applicant):
    return _client_for(app, applicant)


@pytest.fixture
def other_applicant_client(app, other_applicant):
    return _client_for(app, other_applicant)


@pytest.fixture
def admin_client(app, admin_user):
    return _client_for(app, admin_user)


@pytest.fixture
def agent_client(app, agent_user):
    return _client_for(app, agent_user)


@pytest.fixture
def second_agent_client(app, second_agent):
    return _client_for(app, second_agent)


@pytest.fixture
def sales_client(app, sales_user):
    return _client_for(app, sales_user)


@pytest.fixture
def employee_client(app, employee_user):
    return _client_for(app, employee_user)
