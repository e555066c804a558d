from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import abort, g, jsonify, redirect, request, url_for

from app.villagecms.credentials import Identity


def current_identity() -> Identity | None:
    return getattr(g, "identity", None)


def _login_redirect():
    nxt = request.full_path or request.path
    # Avoid trailing '?' from full_path when there is no query string.
    if nxt.endswith("?"):
        nxt = nxt[:-1]
    return redirect(url_for("auth.login_get", next=nxt))


def _guard(admin: bool, api: bool) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(fn)
        def wrapped(*args: Any, **kwargs: Any):
            identity = current_identity()
            # Unauthenticated → redirect to login (JSON clients get 401 instead).
            if identity is None:
                if api:
                    return jsonify({"error": "Authentication required"}), 401
                return _login_redirect()
            # Authenticated but not an admin → 403
            if admin and not identity.is_admin:
                g.forbidden_role = identity.role
                if api:
                    return jsonify({"error": "Admin access required"}), 403
                abort(403)
            return fn(*args, **kwargs)

        return wrapped

    return decorator


def login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    return _guard(admin=False, api=False)(fn)


def admin_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    return _guard(admin=True, api=False)(fn)


def api_admin_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    return _guard(admin=True, api=True)(fn)
