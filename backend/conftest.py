"""
Pytest configuration file for backend testing.

Every test gets a fresh application over its own in-memory SQLite database,
cheap password hashing and a temporary upload directory.
"""
import sys
from pathlib import Path

# Add the backend directory to Python path so imports work correctly
backend_dir = Path(__file__).parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

import pytest
from fastapi.testclient import TestClient

from app.app_factory import create_app
from core.config import Settings
from core.user_models import UserRole
from tests.factories import (
    AdminFactory,
    OwnerFactory,
    UserFactory,
    bind_session,
    reset_sessions,
)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        environment="test",
        database_url="sqlite://",
        jwt_secret_key="test-secret-key",
        argon2_time_cost=1,
        argon2_memory_cost=1024,
        argon2_parallelism=1,
        bcrypt_rounds=4,
        upload_dir=str(tmp_path / "uploads"),
        upload_base_url="/uploads",
        expose_reset_tokens=True,
        token_blacklist_enabled=True,
        redis_url=None,
    )


@pytest.fixture
def app(settings):
    application = create_app(settings)
    yield application
    application.state.services.database.dispose()


@pytest.fixture
def services(app):
    return app.state.services


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def db(services):
    """Session bound to the test database, also used by the factories"""
    session = services.database.session_factory()
    bind_session(session)
    yield session
    reset_sessions()
    session.close()


@pytest.fixture
def token_service(services):
    return services.token_service


@pytest.fixture
def auth_headers(token_service):
    """Build bearer headers for a user"""
    def _headers(user):
        token = token_service.issue(user.id, password_version=user.password_version)
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def regular_user(db):
    return UserFactory(role=UserRole.USER)


@pytest.fixture
def owner(db):
    return OwnerFactory()


@pytest.fixture
def other_owner(db):
    return OwnerFactory()


@pytest.fixture
def admin(db):
    return AdminFactory()
