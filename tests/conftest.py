from datetime import datetime, timedelta

import pytest
from werkzeug.security import generate_password_hash

from app.villagecms import create_app
from app.villagecms import auth as auth_module
from app.villagecms.db import session_scope
from app.villagecms.models import Base, User, Village
from app.villagecms.modules.content.models import Article, NewsItem, Page
from app.villagecms.modules.menu.models import MenuItem

FAST_HASH = "pbkdf2:sha256:1000"


def _user(email: str, role: str, village_id: int, name: str = "Test User") -> User:
    return User(
        name=name,
        email=email,
        password_hash=generate_password_hash("pw", method=FAST_HASH),
        role=role,
        village_id=village_id,
    )


def _seed(s) -> None:
    s.add_all(
        [
            Village(id=1, name="Green Hollow", description="Home village"),
            Village(id=2, name="Stone Ridge"),
        ]
    )
    s.flush()
    s.add_all(
        [
            _user("admin@example.com", "admin", 1, name="Alice"),
            _user("editor@example.com", "editor", 1, name="Eddie"),
            _user("admin2@example.com", "admin", 2, name="Bob"),
        ]
    )
    base = datetime(2026, 1, 1, 12, 0, 0)
    s.add_all(
        [
            Article(village_id=1, title="Harvest Festival", status="published", created_at=base),
            Article(village_id=1, title="Secret Draft Article", status="draft", created_at=base + timedelta(hours=1)),
            Article(village_id=2, title="Ridge Quarry Report", status="published", created_at=base),
            NewsItem(village_id=1, title="Road Works Start", status="published", created_at=base),
            NewsItem(village_id=1, title="Unpublished Council News", status="draft", created_at=base),
            NewsItem(village_id=2, title="Ridge Market Day", status="published", created_at=base),
            Page(village_id=1, title="About Us", slug="about", status="published", created_at=base),
            Page(village_id=1, title="Hidden Page", slug="hidden", status="draft", created_at=base),
            Page(village_id=2, title="Ridge History", slug="history", status="published", created_at=base),
            MenuItem(village_id=1, title="About", url="/page/about", type="page", order_index=0),
            MenuItem(village_id=1, title="News", url="/news", type="custom", order_index=1),
            MenuItem(village_id=2, title="Ridge Links", url="/page/history", type="page", order_index=0),
        ]
    )


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("DEFAULT_VILLAGE_ID", "1")
    monkeypatch.setenv("PASSWORD_HASH_METHOD", FAST_HASH)
    for k in ("SESSION_SECRET", "FRONTEND_URL", "SITE_NAME"):
        monkeypatch.delenv(k, raising=False)
    auth_module._login_attempts.clear()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        _seed(s)

    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client):
    def _login(email: str = "admin@example.com", password: str = "pw"):
        return client.post("/auth/login", data={"email": email, "password": password}, follow_redirects=False)

    return _login


@pytest.fixture()
def csrf(client):
    """Returns the session CSRF token, planting one if the session has none yet."""

    def _token() -> str:
        with client.session_transaction() as sess:
            token = sess.get("csrf_token")
            if not token:
                token = "test-csrf-token"
                sess["csrf_token"] = token
        return token

    return _token
