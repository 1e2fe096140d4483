"""
Test configuration and fixtures for the shortlink engine.
This centralizes all test setup, making individual tests clean.

Every test gets its own SQLite file under tmp_path and, where it needs
HTTP, its own app built by create_app(); nothing is shared between tests.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app
from shortlink_app.config import Settings
from shortlink_app.database.connection import Base, create_db_engine, create_session_factory
from shortlink_app.services.allocator import MappingAllocator

ROOT_DOMAIN = "example.com"
TEST_SALT = "test-salt"


@pytest.fixture(scope="function")
def test_settings(tmp_path):
    """Settings pointing at a throwaway database and in-process rate limits."""
    return Settings(
        environment="test",
        debug=False,
        log_level="WARNING",
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        root_domain=ROOT_DOMAIN,
        rate_limit_backend="memory",
        click_hash_salt=TEST_SALT,
    )


@pytest.fixture(scope="function")
def engine(test_settings):
    engine = create_db_engine(test_settings.database_url)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture(scope="function")
def db_session(session_factory):
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def allocator(db_session):
    return MappingAllocator(db_session, root_domain=ROOT_DOMAIN)


@pytest.fixture(scope="function")
def app(test_settings):
    return create_app(test_settings)


@pytest.fixture(scope="function")
def client(app):
    """
    Create a test client for an app wired to the test database.
    This is the main fixture that HTTP tests will use.
    """
    with TestClient(app) as test_client:
        yield test_client
    app.state.engine.dispose()


@pytest.fixture
def owner_headers():
    return {"X-Owner-Id": "owner-1", "X-Owner-Plan": "free"}
