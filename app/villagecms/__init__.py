import logging
from datetime import timedelta

from flask import Flask, g, jsonify, render_template, request, session
from dotenv import load_dotenv

from app.villagecms.config import load_config
from app.villagecms.constants import SESSION_LIFETIME_HOURS
# Core models must load before any module models.
from app.villagecms import models  # noqa: F401
from app.villagecms.db import init_db, teardown_db_session
from app.villagecms.public import bp as public_bp
from app.villagecms.auth import bp as auth_bp, load_current_identity
from app.villagecms.admin import bp as admin_bp
from app.villagecms.api import bp as api_bp
from app.villagecms.modules.content.admin import bp as content_bp
from app.villagecms.modules.menu.admin import bp as menu_bp
from app.villagecms.modules.settings.admin import bp as settings_bp

logger = logging.getLogger(__name__)

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    # Fixed lifetime: the cookie is not re-issued on every request, and the
    # identity loader also checks the issued_at stamp.
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=SESSION_LIFETIME_HOURS)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = False

    from app.villagecms.security import ensure_csrf_token, install_response_headers, validate_csrf

    @app.context_processor
    def _inject_globals() -> dict:
        return {
            "csrf_token": ensure_csrf_token(),
            "identity": getattr(g, "identity", None),
            "site_name": app.config.get("SITE_NAME"),
        }

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me", "village-cms-secret-key"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("FRONTEND_URL"):
            logger.warning("FRONTEND_URL not set; cross-origin requests will be refused.")

    init_db(app)

    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(content_bp, url_prefix="/admin")
    app.register_blueprint(menu_bp, url_prefix="/admin")
    app.register_blueprint(settings_bp, url_prefix="/admin")
    app.register_blueprint(api_bp, url_prefix="/api")

    app.before_request(load_current_identity)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            # Auth endpoints (login/logout/register) pass through.
            if (request.endpoint or "").startswith("auth."):
                return None
            if not validate_csrf(request):
                if request.path.startswith("/api/"):
                    return jsonify({"error": "CSRF token missing or invalid."}), 400
                return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    install_response_headers(app)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if request.path.startswith("/api/"):
            return jsonify({"error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        role = getattr(g, "forbidden_role", None)
        if role:
            app.logger.warning("Forbidden: role=%s path=%s request_id=%s", role, request.path, getattr(g, "request_id", None))
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if request.path.startswith("/api/"):
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        if request.path.startswith("/api/"):
            return jsonify({"error": "Request too large"}), 413
        return render_template("errors/400.html", message="Request too large. Maximum size is 10MB."), 413

    logger.info("create_app() complete; app ready to serve")

    return app
