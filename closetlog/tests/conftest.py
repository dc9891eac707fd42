"""Shared pytest fixtures and configurations for the Closetlog application.

This module provides test fixtures and configurations used across all test files,
including:
- Database session management on a throwaway SQLite file
- Fake vision and image storage services
- Test data fixtures
- Test client setup
- Authentication fixtures
"""

import os

# Settings are cached on first import; set test values before the app loads
os.environ.setdefault("SECRET_KEY", "closetlog-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./closetlog-test.db")
os.environ.setdefault("ENABLE_VISION_ANALYSIS", "true")

import base64
import io
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

import httpx
import pytest
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.main import app
from app.api.dependencies import get_image_service, get_vision_service
from app.core.exceptions import AppException
from app.core.security import create_access_token
from app.database.repositories.garments import GarmentRepository
from app.database.session import SessionManager, get_session
from app.models.database.garment import Garment
from app.models.domain.analysis import DetectedGarmentDescription

USER_ID = "user-alice"
OTHER_USER_ID = "user-bob"


class FakeVisionService:
    """Returns canned detections or raises a canned error."""

    status = "configured"

    def __init__(self):
        self.detections: List[DetectedGarmentDescription] = []
        self.error: Optional[Exception] = None
        self.calls = 0

    async def detect_garments(self, image_base64=None, image_url=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.detections)

    async def close(self):
        pass


class FakeImageStore:
    """Records uploads in memory; folders listed in ``fail_folders`` fail."""

    status = "configured"

    def __init__(self):
        self.uploads = []
        self.deleted = []
        self.fail_folders = set()

    async def upload(self, data: bytes, folder: str) -> str:
        if folder in self.fail_folders:
            raise AppException("Failed to upload image", status_code=502)
        key = f"{folder}/fake-{len(self.uploads) + 1}.png"
        self.uploads.append((folder, data, key))
        return key

    async def delete(self, key: str) -> None:
        if key:
            self.deleted.append(key)

    def public_url(self, key: str) -> str:
        return f"https://blob.test/{key}"

    async def close(self):
        pass


# Database fixtures
@pytest.fixture
async def session_manager(tmp_path) -> AsyncGenerator[SessionManager, None]:
    """Session manager bound to a fresh SQLite file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'closetlog.db'}")
    manager = SessionManager(engine=engine)
    await manager.create_all()
    yield manager
    await manager.dispose()

@pytest.fixture
async def db_session(session_manager: SessionManager) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for testing."""
    async with session_manager.session() as session:
        yield session

# Fake service fixtures
@pytest.fixture
def fake_vision() -> FakeVisionService:
    return FakeVisionService()

@pytest.fixture
def fake_images() -> FakeImageStore:
    return FakeImageStore()

# HTTP client fixtures
@pytest.fixture
async def async_client(
    db_session: AsyncSession,
    fake_vision: FakeVisionService,
    fake_images: FakeImageStore
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client with database and services overridden."""
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_vision_service] = lambda: fake_vision
    app.dependency_overrides[get_image_service] = lambda: fake_images

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()

# Authentication fixtures
@pytest.fixture
def user_id() -> str:
    return USER_ID

@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID

@pytest.fixture
def auth_headers() -> dict:
    """Get authentication headers."""
    return {"Authorization": f"Bearer {create_access_token({'sub': USER_ID})}"}

@pytest.fixture
def other_auth_headers() -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': OTHER_USER_ID})}"}

# Test data fixtures
@pytest.fixture
def png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(30, 60, 90)).save(buffer, format="PNG")
    return buffer.getvalue()

@pytest.fixture
def test_image(png_bytes: bytes) -> str:
    """Get base64 encoded test image."""
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode()

@pytest.fixture
def garment_repo(db_session: AsyncSession) -> GarmentRepository:
    return GarmentRepository(db_session)

@pytest.fixture
def make_garment(db_session: AsyncSession, garment_repo: GarmentRepository):
    """Factory inserting a committed garment."""
    async def factory(
        name: str,
        category: str = "tops",
        season: str = "all-season",
        owner: str = USER_ID,
        use_count: int = 0,
        created_at: Optional[datetime] = None
    ) -> Garment:
        attrs = {}
        if created_at is not None:
            attrs["created_at"] = created_at
        garment = await garment_repo.insert(
            owner,
            name=name,
            photo_url=f"garments/{name.replace(' ', '-')}.png",
            category=category,
            season=season,
            **attrs
        )
        if use_count:
            await garment_repo.set_use_count(garment.id, owner, use_count)
            await db_session.refresh(garment)
        await db_session.commit()
        return garment
    return factory

@pytest.fixture
async def closet(make_garment) -> dict:
    """A small closet for the default user plus one garment of another user."""
    return {
        "shirt": await make_garment("blue cotton shirt", "tops", use_count=3),
        "jeans": await make_garment("dark denim jeans", "bottoms", use_count=1),
        "boots": await make_garment("black leather boots", "shoes"),
        "old_scarf": await make_garment(
            "wool scarf", "accessories", "winter",
            created_at=datetime.now(timezone.utc) - timedelta(days=400)
        ),
        "foreign": await make_garment("blue cotton shirt", "tops", owner=OTHER_USER_ID),
    }
