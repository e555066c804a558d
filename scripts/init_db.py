import os
import sys
from datetime import datetime
from pathlib import Path

from sqlalchemy import text

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.villagecms.constants import ROLE_ADMIN  # noqa: E402
from app.villagecms.credentials import find_user_by_email, insert_user, normalize_email  # noqa: E402
from app.villagecms.models import Village  # noqa: E402
from scripts._db_utils import resolve_database_url, script_session  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the default (public) village and an admin user in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = normalize_email(os.environ.get("ADMIN_EMAIL") or "admin@villagecms.local")
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    admin_name = (os.environ.get("ADMIN_NAME") or "Administrator").strip()
    village_name = (os.environ.get("ADMIN_VILLAGE_NAME") or "Village CMS").strip()
    hash_method = (os.environ.get("PASSWORD_HASH_METHOD") or "scrypt").strip()
    default_village_id = int((os.environ.get("DEFAULT_VILLAGE_ID") or "1").strip())

    with script_session(resolve_database_url(database_url)) as s:
        village = s.get(Village, default_village_id)
        if not village:
            now = datetime.utcnow()
            village = Village(id=default_village_id, name=village_name, created_at=now, updated_at=now)
            s.add(village)
            s.flush()
            if s.get_bind().dialect.name == "postgresql":
                # Explicit id bypasses the serial; move it past the seeded row.
                s.execute(
                    text("SELECT setval(pg_get_serial_sequence('villages', 'id'), (SELECT MAX(id) FROM villages))")
                )

        if not find_user_by_email(s, admin_email):
            insert_user(
                s,
                name=admin_name,
                email=admin_email,
                password=admin_password,
                village_id=village.id,
                role=ROLE_ADMIN,
                hash_method=hash_method,
            )

    print("Initialized database (seed_only).")
    print(f"Default village id: {default_village_id}")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
