import pytest
from werkzeug.security import generate_password_hash

from app.kothler import create_app
from app.kothler.constants import DEFAULT_ROLE_PERMISSIONS, ROLE_ADMIN, ROLE_EDITOR
from app.kothler.db import session_scope
from app.kothler.models import Base, Role, User

ADMIN_EMAIL = "admin@example.com"
EDITOR_EMAIL = "editor@example.com"
PASSWORD = "password123"


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.delenv("REDIS_URL", raising=False)

    app = create_app()
    app.config["TESTING"] = True

    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        admin_role = Role(
            name=ROLE_ADMIN,
            description="Administrators",
            permissions=list(DEFAULT_ROLE_PERMISSIONS[ROLE_ADMIN]),
        )
        editor_role = Role(
            name=ROLE_EDITOR,
            description="Content editors",
            permissions=list(DEFAULT_ROLE_PERMISSIONS[ROLE_EDITOR]),
            is_default=True,
        )
        s.add_all([admin_role, editor_role])
        s.flush()
        s.add_all(
            [
                User(email=ADMIN_EMAIL, name="Admin", password_hash=generate_password_hash(PASSWORD), role=admin_role),
                User(email=EDITOR_EMAIL, name="Editor", password_hash=generate_password_hash(PASSWORD), role=editor_role),
            ]
        )

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def login(client, email=ADMIN_EMAIL, password=PASSWORD):
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, r.get_data(as_text=True)
    client.csrf_token = r.json["csrf_token"]
    return r


def csrf_headers(client):
    return {"X-CSRF-Token": client.csrf_token}


@pytest.fixture()
def admin_client(app):
    c = app.test_client()
    login(c, ADMIN_EMAIL)
    return c


@pytest.fixture()
def editor_client(app):
    c = app.test_client()
    login(c, EDITOR_EMAIL)
    return c


@pytest.fixture()
def anon_client(client):
    client.csrf_token = client.get("/api/auth/csrf").json["csrf_token"]
    return client
