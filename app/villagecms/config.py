import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    port: int

    frontend_url: str
    default_village_id: int
    password_hash_method: str
    site_name: str


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getint(name: str, default: int) -> int:
    raw = _getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    return Settings(
        # SESSION_SECRET is accepted as an alias for SECRET_KEY.
        secret_key=_getenv("SECRET_KEY") or _getenv("SESSION_SECRET", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///villagecms.db"),
        port=_getint("PORT", 3000),
        frontend_url=_getenv("FRONTEND_URL", "http://localhost:3000"),
        default_village_id=_getint("DEFAULT_VILLAGE_ID", 1),
        password_hash_method=_getenv("PASSWORD_HASH_METHOD", "scrypt"),
        site_name=_getenv("SITE_NAME", "Village CMS"),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "PORT": s.port,
        "FRONTEND_URL": s.frontend_url,
        "DEFAULT_VILLAGE_ID": s.default_village_id,
        "PASSWORD_HASH_METHOD": s.password_hash_method,
        "SITE_NAME": s.site_name,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # request body limit (10MB)
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
