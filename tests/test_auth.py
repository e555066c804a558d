import time
from datetime import datetime, timedelta

from app.villagecms import auth as auth_module
from app.villagecms.db import session_scope
from app.villagecms.models import AuditEvent, User, Village


def _flashes(client) -> list:
    with client.session_transaction() as sess:
        return list(sess.get("_flashes", []))


def test_login_populates_session_identity(client, login, app):
    r = login()
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")

    with session_scope(app) as s:
        user = s.query(User).filter(User.email == "admin@example.com").one()
        expected = (user.id, user.email, user.role, user.village_id)

    with client.session_transaction() as sess:
        assert (sess["user_id"], sess["email"], sess["role"], sess["village_id"]) == expected
        assert sess["issued_at"] <= time.time()


def test_login_email_is_case_insensitive(client, login):
    r = login(email="  ADMIN@Example.com ")
    assert r.headers["Location"].endswith("/admin/")


def test_wrong_password_and_unknown_email_are_indistinguishable(client, login):
    r1 = login(password="wrong")
    assert r1.status_code == 302
    assert "/auth/login" in r1.headers["Location"]
    wrong_password = _flashes(client)

    client.get("/auth/login")  # consume

    r2 = login(email="nobody@example.com")
    assert r2.status_code == 302
    assert "/auth/login" in r2.headers["Location"]
    unknown_email = _flashes(client)

    assert wrong_password == unknown_email == [("danger", "Invalid credentials")]
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_missing_fields_message(client):
    r = client.post("/auth/login", data={"email": "admin@example.com"}, follow_redirects=True)
    assert b"Please provide both email and password" in r.data


def test_one_shot_message_shown_exactly_once(client, login):
    login(password="wrong")

    r = client.get("/auth/login")
    assert b"Invalid credentials" in r.data

    r = client.get("/auth/login")
    assert b"Invalid credentials" not in r.data


def test_failed_login_is_audited(client, login, app):
    login(password="wrong")
    with session_scope(app) as s:
        ev = s.query(AuditEvent).filter(AuditEvent.action == "auth.login_failed").one()
        assert ev.actor_user_id is None
        assert "admin@example.com" in ev.metadata_json


def test_login_rate_limited_after_repeated_failures(client, login):
    for _ in range(5):
        login(password="wrong")
    r = client.post("/auth/login", data={"email": "admin@example.com", "password": "pw"}, follow_redirects=True)
    assert b"Too many login attempts" in r.data


def test_next_redirect_only_allows_local_paths(client):
    r = client.post(
        "/auth/login",
        data={"email": "admin@example.com", "password": "pw", "next": "/admin/articles"},
    )
    assert r.headers["Location"].endswith("/admin/articles")

    client.post("/auth/logout")
    r = client.post(
        "/auth/login",
        data={"email": "admin@example.com", "password": "pw", "next": "//evil.example.com/"},
    )
    assert r.headers["Location"].endswith("/admin/")


def test_logout_makes_next_admin_request_anonymous(client, login):
    login()
    assert client.get("/admin/").status_code == 200

    r = client.post("/auth/logout")
    assert r.status_code == 302

    with client.session_transaction() as sess:
        assert "user_id" not in sess

    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]


def test_session_expires_24h_after_login(client, login):
    login()
    with client.session_transaction() as sess:
        sess["issued_at"] = time.time() - 25 * 3600

    r = client.get("/admin/")
    assert r.status_code == 302
    assert "/auth/login" in r.headers["Location"]
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_session_still_valid_before_24h(client, login):
    login()
    with client.session_transaction() as sess:
        sess["issued_at"] = time.time() - 23 * 3600
    assert client.get("/admin/").status_code == 200


def test_tampered_session_identity_is_anonymous(client, login):
    login()
    with client.session_transaction() as sess:
        sess["village_id"] = "not-a-number"
    r = client.get("/admin/")
    assert r.status_code == 302


def test_register_creates_village_and_admin(client, app):
    r = client.post(
        "/auth/register",
        data={"name": "Carol", "email": "carol@example.com", "password": "secret", "village_name": "Millbrook"},
    )
    assert r.status_code == 302
    assert r.headers["Location"].endswith("/admin/")

    with session_scope(app) as s:
        village = s.query(Village).filter(Village.name == "Millbrook").one()
        user = s.query(User).filter(User.email == "carol@example.com").one()
        assert user.role == "admin"
        assert user.village_id == village.id
        assert user.password_hash != "secret"
        assert s.query(AuditEvent).filter(AuditEvent.action == "auth.register").count() == 1

    with client.session_transaction() as sess:
        assert sess["village_id"] == village.id
        assert sess["role"] == "admin"

    assert client.get("/admin/").status_code == 200


def test_register_accepts_legacy_field_name(client, app):
    r = client.post(
        "/auth/register",
        data={"name": "Dan", "email": "dan@example.com", "password": "secret", "villageName": "Oakford"},
    )
    assert r.headers["Location"].endswith("/admin/")


def test_register_requires_all_fields(client, app):
    r = client.post(
        "/auth/register",
        data={"name": "Carol", "email": "carol@example.com", "password": "", "village_name": "Millbrook"},
        follow_redirects=True,
    )
    assert b"All fields are required" in r.data
    with session_scope(app) as s:
        assert s.query(Village).filter(Village.name == "Millbrook").count() == 0


def test_register_duplicate_email_creates_nothing(client, app):
    with session_scope(app) as s:
        villages_before = s.query(Village).count()
        users_before = s.query(User).count()

    r = client.post(
        "/auth/register",
        data={"name": "Mallory", "email": "Admin@Example.com", "password": "x", "village_name": "Copycat"},
        follow_redirects=True,
    )
    assert b"User already exists" in r.data

    with session_scope(app) as s:
        assert s.query(Village).count() == villages_before
        assert s.query(User).count() == users_before
    with client.session_transaction() as sess:
        assert "user_id" not in sess


def test_register_race_on_unique_email_rolls_back_village(client, app, monkeypatch):
    # Simulate a concurrent signup that slipped past the existence check.
    monkeypatch.setattr("app.villagecms.credentials.find_user_by_email", lambda s, email: None)
    with session_scope(app) as s:
        villages_before = s.query(Village).count()

    r = client.post(
        "/auth/register",
        data={"name": "Mallory", "email": "admin@example.com", "password": "x", "village_name": "Racer"},
        follow_redirects=True,
    )
    assert b"User already exists" in r.data
    with session_scope(app) as s:
        assert s.query(Village).count() == villages_before
        assert s.query(Village).filter(Village.name == "Racer").count() == 0


def test_rate_limiter_forgets_ips_without_recent_attempts(client, login):
    stale = datetime.utcnow() - timedelta(hours=1)
    auth_module._login_attempts["203.0.113.9"] = [stale]
    auth_module._login_attempts["203.0.113.10"] = []

    login(password="wrong")
    assert "203.0.113.9" not in auth_module._login_attempts
    assert "203.0.113.10" not in auth_module._login_attempts
    assert len(auth_module._login_attempts) == 1

    login()
    assert auth_module._login_attempts == {}
