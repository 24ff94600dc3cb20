"""
Pytest fixtures and configuration for the test suite.

- Real SQLite database (in-memory, shared through a StaticPool) per test
- Real photo store rooted in a temp directory
- FastAPI TestClient with the database and photo store dependencies overridden
"""

import io
import os
import tempfile
from collections.abc import Callable, Generator

# Set test environment variables before imports
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PHOTO_STORAGE_DIR"] = tempfile.mkdtemp(prefix="clutterbug-test-")

import pytest
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from clutterbug.core.database import Base, enable_sqlite_foreign_keys
from clutterbug.models import HierarchyConfiguration, HierarchyLevel, Container, Item  # noqa: F401
from clutterbug.services.hierarchy_manager import HierarchyManager
from clutterbug.storage.photo_store import PhotoStore


@pytest.fixture
def engine():
    """Fresh in-memory database with foreign keys enforced."""
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hierarchy(db_session) -> HierarchyManager:
    """Manager with the built-in presets seeded (Workshop active)."""
    manager = HierarchyManager(db_session)
    manager.ensure_defaults_exist()
    return manager


@pytest.fixture
def photo_store(tmp_path) -> PhotoStore:
    return PhotoStore(tmp_path / "storage")


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory for encoded test images."""

    def _make_image(width: int = 640, height: int = 480, color=(200, 80, 40), fmt: str = "PNG", mode: str = "RGB") -> bytes:
        if mode == "RGBA" and len(color) == 3:
            color = (*color, 128)
        image = Image.new(mode, (width, height), color)
        buffer = io.BytesIO()
        image.save(buffer, format=fmt)
        return buffer.getvalue()

    return _make_image


@pytest.fixture
def client(session_factory, photo_store):
    """TestClient against the app, bound to the test database and photo store."""
    from fastapi.testclient import TestClient

    from clutterbug.core.database import get_db
    from clutterbug.services.deps import get_store
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: photo_store

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
