from __future__ import annotations

import time
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import SQLAlchemyError

from app.villagecms.audit import record_event
from app.villagecms.credentials import (
    AuthError,
    Identity,
    authenticate,
    normalize_email,
    register_village,
)
from app.villagecms.db import db_session

bp = Blueprint("auth", __name__)
_login_attempts: dict[str, list[datetime]] = defaultdict(list)
_LOGIN_RATE_LIMIT = 5
_LOGIN_RATE_WINDOW = 300  # seconds

_SESSION_KEYS = ("user_id", "email", "role", "village_id", "issued_at")


def _prune_attempts(cutoff: datetime) -> None:
    for ip in [k for k, times in _login_attempts.items() if not times or times[-1] <= cutoff]:
        del _login_attempts[ip]


def _check_rate_limit(ip: str) -> bool:
    now = datetime.utcnow()
    cutoff = now - timedelta(seconds=_LOGIN_RATE_WINDOW)
    _prune_attempts(cutoff)
    recent = [t for t in _login_attempts.get(ip, ()) if t > cutoff]
    if not recent:
        _login_attempts.pop(ip, None)
        return False
    _login_attempts[ip] = recent
    return len(recent) >= _LOGIN_RATE_LIMIT


def _record_attempt(ip: str) -> None:
    _login_attempts[ip].append(datetime.utcnow())


def start_session(identity: Identity) -> None:
    """Anonymous → Authenticated. Drops whatever the anonymous session held first."""
    session.clear()
    session.permanent = True
    session["user_id"] = identity.user_id
    session["email"] = identity.email
    session["role"] = identity.role
    session["village_id"] = identity.village_id
    session["issued_at"] = time.time()
    g.identity = identity


def end_session() -> None:
    session.clear()
    g.identity = None


def _session_expired(issued_at: object) -> bool:
    lifetime: timedelta = current_app.permanent_session_lifetime
    try:
        age = time.time() - float(issued_at)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return True
    return age < 0 or age > lifetime.total_seconds()


def load_current_identity() -> None:
    """
    Loads g.identity from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    g.identity = None
    if request.path.startswith(("/static/", "/health", "/healthz")):
        return

    user_id = session.get("user_id")
    if not user_id:
        return

    if _session_expired(session.get("issued_at")):
        current_app.logger.info("Session expired for user_id=%s request_id=%s", user_id, g.request_id)
        for key in _SESSION_KEYS:
            session.pop(key, None)
        return

    try:
        g.identity = Identity(
            user_id=int(user_id),
            email=str(session["email"]),
            role=str(session["role"]),
            village_id=int(session["village_id"]),
        )
    except (KeyError, TypeError, ValueError):
        current_app.logger.warning("Malformed session identity (clearing) request_id=%s", g.request_id)
        for key in _SESSION_KEYS:
            session.pop(key, None)


def _safe_next(nxt: str) -> str | None:
    # Only allow local paths to avoid open redirects.
    if nxt.startswith("/") and not nxt.startswith("//"):
        return nxt
    return None


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if _check_rate_limit(ip):
        flash("Too many login attempts. Please wait 5 minutes.", "danger")
        return redirect(url_for("auth.login_get"))

    _record_attempt(ip)

    s = db_session()
    try:
        identity = authenticate(s, email, password)
    except AuthError as e:
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email or None,
            reason=str(e),
            metadata={"email": email},
        )
        s.commit()
        flash(str(e), "danger")
        return redirect(url_for("auth.login_get", next=nxt) if nxt else url_for("auth.login_get"))
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Login failed on DB error (email=%s request_id=%s)", email, g.request_id)
        flash("An error occurred during login", "danger")
        return redirect(url_for("auth.login_get"))

    start_session(identity)
    _login_attempts.pop(ip, None)
    record_event(s, actor=identity, action="auth.login", entity_type="User", entity_id=str(identity.user_id))
    s.commit()
    return redirect(_safe_next(nxt) or url_for("admin.index"))


@bp.post("/logout")
def logout():
    identity = getattr(g, "identity", None)
    if identity:
        s = db_session()
        record_event(s, actor=identity, action="auth.logout", entity_type="User", entity_id=str(identity.user_id))
        s.commit()
    end_session()
    return redirect(url_for("public.index"))


@bp.get("/register")
def register_get():
    return render_template("auth/register.html")


@bp.post("/register")
def register_post():
    s = db_session()
    try:
        identity, village = register_village(
            s,
            name=request.form.get("name"),
            email=request.form.get("email"),
            password=request.form.get("password"),
            village_name=request.form.get("village_name") or request.form.get("villageName"),
            hash_method=current_app.config.get("PASSWORD_HASH_METHOD") or "scrypt",
        )
    except AuthError as e:
        flash(str(e), "danger")
        return redirect(url_for("auth.register_get"))
    except SQLAlchemyError:
        s.rollback()
        current_app.logger.exception("Registration crashed (request_id=%s)", g.request_id)
        flash("An error occurred during registration", "danger")
        return redirect(url_for("auth.register_get"))

    current_app.logger.info("Registered village id=%s admin user_id=%s", village.id, identity.user_id)
    start_session(identity)
    return redirect(url_for("admin.index"))
