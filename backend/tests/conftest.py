"""
DevCamper Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Settings are steered through environment variables BEFORE any
       devcamper import; every test gets empty tables in a throwaway SQLite
       file and a freshly built app (fresh rate-limit window).

Fixture Hierarchy:
    db_schema            create_all before the test, drop_all after
    ├── db_session       AsyncSession for direct service-level tests
    ├── create_user      factory committing a User with a known password
    └── client           httpx AsyncClient over ASGITransport(create_app())
    geocode_mock         patches geocoder_service.geocode with a fixed location
    upload_dir           temporary photo directory for file_service
"""

import os
import tempfile
from typing import Dict
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

_TEST_DIR = tempfile.mkdtemp(prefix="devcamper_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["FILE_UPLOAD_PATH"] = os.path.join(_TEST_DIR, "uploads")
os.environ["RATE_LIMIT_REQUESTS"] = "100000"
os.environ["RETRY_MAX_ATTEMPTS"] = "1"
os.environ["RETRY_MIN_WAIT"] = "0"
os.environ["CB_FAILURE_THRESHOLD"] = "3"
os.environ["LOG_LEVEL"] = "WARNING"

from devcamper.auth.security import hash_password, issue_token  # noqa: E402
from devcamper.database import Base, async_session_factory, engine  # noqa: E402
from devcamper.models import User  # noqa: E402
from devcamper.services.geocoder_service import GeoLocation, geocoder_service  # noqa: E402

PASSWORD = "secret123"

BOSTON = GeoLocation(
    latitude=42.3601,
    longitude=-71.0589,
    formatted_address="233 Bay State Rd, Boston, MA 02215, US",
    street="233 Bay State Rd",
    city="Boston",
    state="MA",
    zipcode="02215",
    country="US",
)


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user.id)}"}


def bootcamp_payload(**overrides) -> dict:
    payload = {
        "name": f"Devworks Bootcamp {uuid4().hex[:6]}",
        "description": "Devworks is a full stack JavaScript Bootcamp",
        "website": "https://devworks.com",
        "phone": "(111) 111-1111",
        "email": "enroll@devworks.com",
        "address": "233 Bay State Rd Boston MA 02215",
        "careers": ["Web Development", "UI/UX", "Business"],
        "housing": True,
        "job_assistance": True,
    }
    payload.update(overrides)
    return payload


def course_payload(**overrides) -> dict:
    payload = {
        "title": "Front End Web Development",
        "description": "HTML, CSS and JavaScript fundamentals",
        "weeks": 8,
        "tuition": 8000,
        "minimum_skill": "beginner",
        "scholarship_available": True,
    }
    payload.update(overrides)
    return payload


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_schema):
    async with async_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def create_user(db_schema):
    """
    Factory: `await create_user(role="publisher")` commits and returns a User
    whose password is PASSWORD.
    """

    async def _create(role: str = "user", name: str = None, email: str = None) -> User:
        async with async_session_factory() as session:
            user = User(
                name=name or f"{role.title()} {uuid4().hex[:6]}",
                email=email or f"{role}-{uuid4().hex[:8]}@example.com",
                role=role,
                password_hash=hash_password(PASSWORD),
            )
            session.add(user)
            await session.commit()
            return user

    return _create


# ══════════════════════════════════════════════════════════════════════════
# HTTP / Collaborator Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def client(db_schema):
    """HTTPX AsyncClient wired straight into a fresh app instance."""
    from devcamper.main import create_app

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def geocode_mock():
    """Every geocode() call resolves to BOSTON."""
    with patch.object(geocoder_service, "geocode", new=AsyncMock(return_value=BOSTON)) as mock:
        yield mock


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    with patch("devcamper.services.file_service.settings.file_upload_path", str(path)):
        yield path
