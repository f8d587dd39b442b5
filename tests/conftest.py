import os
import tempfile

# The storage engine is built when `models` is first imported, so the
# environment has to be in place before anything from the app is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="license-admin-tests-")
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-jwt-secret-0123456789-abcdefghijklmnop"
os.environ.pop("JWT_REFRESH_SECRET", None)
os.environ["CSRF_SECRET"] = "test-csrf-secret-0123456789"

import pytest  # noqa: E402

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.admin import Admin  # noqa: E402
from models.base_model import Base, utcnow  # noqa: E402
from models.license import License, PLAN_DURATIONS  # noqa: E402
from models.user import User  # noqa: E402
from utils.csrf import generate_csrf_token  # noqa: E402
from utils.license_keys import generate_license_key  # noqa: E402
from utils.security import generate_tokens, hash_password  # noqa: E402

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Str0ng!Passw0rd"


def pytest_configure(config):
    config.addinivalue_line("markers", "auth: authentication and session tests")


@pytest.fixture()
def app():
    """Fresh app (and fresh in-memory rate limiter) per test; tables are emptied afterwards."""
    app = create_app("testing")
    yield app
    with app.app_context():
        session = storage.get_session()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin(app):
    """Seed an admin and return its token payload {id, email, role, level}."""
    with app.app_context():
        admin = Admin(email=ADMIN_EMAIL, password_hash=hash_password(ADMIN_PASSWORD), role="admin", level=1)
        admin.save()
        return admin.to_payload()


@pytest.fixture()
def tokens(app, admin):
    with app.app_context():
        access, refresh = generate_tokens(admin)
    return {"access": access, "refresh": refresh}


@pytest.fixture()
def auth_headers(tokens):
    return {"Authorization": f"Bearer {tokens['access']}"}


@pytest.fixture()
def csrf_headers(app, admin, auth_headers):
    with app.app_context():
        csrf_token = generate_csrf_token(admin["id"])
    return {**auth_headers, "X-CSRF-Token": csrf_token}


@pytest.fixture()
def make_license(app):
    """Insert a license row and return its id."""
    def _make(plan_type="30d", user_id=None, key=None):
        with app.app_context():
            lic = License(
                license_key=key or generate_license_key(plan_type),
                plan_type=plan_type,
                user_id=user_id,
                expires_at=utcnow() + PLAN_DURATIONS[plan_type],
            )
            lic.save()
            return lic.id

    return _make


@pytest.fixture()
def make_user(app):
    """Insert a user, optionally holding a fresh license. Returns (user_id, license_id)."""
    def _make(username="jane", email="jane@example.com", plan_type="30d", with_license=True):
        with app.app_context():
            user = User(username=username, email=email)
            storage.new(user)
            license_id = None
            if with_license:
                lic = License(
                    license_key=generate_license_key(plan_type),
                    plan_type=plan_type,
                    user_id=user.id,
                    expires_at=utcnow() + PLAN_DURATIONS[plan_type],
                )
                storage.new(lic)
                user.license_id = lic.id
                license_id = lic.id
            storage.save()
            return user.id, license_id

    return _make


@pytest.fixture()
def login(client):
    def _login(email=ADMIN_EMAIL, password=ADMIN_PASSWORD, **kwargs):
        return client.post("/api/login", json={"email": email, "password": password}, **kwargs)

    return _login
