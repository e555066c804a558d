"""
Credential store adapter plus the two operations that turn credentials into an
identity: ``authenticate`` (login) and ``register_village`` (first admin signup).

Both raise ``AuthError`` subclasses carrying the user-facing message. Login
failures deliberately share one message so a caller cannot tell whether the
email exists.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.villagecms.audit import record_event
from app.villagecms.constants import ROLE_ADMIN
from app.villagecms.models import User, Village

INVALID_CREDENTIALS = "Invalid credentials"
MISSING_CREDENTIALS = "Please provide both email and password"
ALL_FIELDS_REQUIRED = "All fields are required"
USER_EXISTS = "User already exists"
CREATE_FAILED = "Error creating account"


class AuthError(Exception):
    """Login or registration refused; ``str(e)`` is safe to show to the user."""


class AuthenticationError(AuthError):
    pass


class RegistrationError(AuthError):
    pass


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    role: str
    village_id: int

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(user_id=user.id, email=user.email, role=user.role, village_id=user.village_id)


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Compared against when the email is unknown so both failure paths cost one hash check.
    return generate_password_hash("not-a-real-password")


# ---------- store ----------
def find_user_by_email(s: Session, email: str) -> User | None:
    return s.query(User).filter(User.email == normalize_email(email)).one_or_none()


def insert_user(
    s: Session,
    *,
    name: str,
    email: str,
    password: str,
    village_id: int,
    role: str = ROLE_ADMIN,
    hash_method: str = "scrypt",
) -> User:
    """Add a user row and flush so the unique email index is checked immediately."""
    user = User(
        name=name.strip(),
        email=normalize_email(email),
        password_hash=generate_password_hash(password, method=hash_method),
        role=role,
        village_id=village_id,
    )
    s.add(user)
    s.flush()
    return user


# ---------- operations ----------
def authenticate(s: Session, email: str | None, password: str | None) -> Identity:
    email = normalize_email(email)
    password = password or ""
    if not email or not password:
        raise AuthenticationError(MISSING_CREDENTIALS)

    user = find_user_by_email(s, email)
    if user is None:
        check_password_hash(_dummy_hash(), password)
        raise AuthenticationError(INVALID_CREDENTIALS)
    if not check_password_hash(user.password_hash, password):
        raise AuthenticationError(INVALID_CREDENTIALS)
    return Identity.from_user(user)


def register_village(
    s: Session,
    *,
    name: str | None,
    email: str | None,
    password: str | None,
    village_name: str | None,
    hash_method: str = "scrypt",
) -> tuple[Identity, Village]:
    """
    Create a village and its first admin user in one transaction.

    Commits on success. On any failure the session is rolled back, so a
    village row never outlives a failed user insert.
    """
    name = (name or "").strip()
    email = normalize_email(email)
    password = password or ""
    village_name = (village_name or "").strip()
    if not name or not email or not password or not village_name:
        raise RegistrationError(ALL_FIELDS_REQUIRED)

    if find_user_by_email(s, email) is not None:
        raise RegistrationError(USER_EXISTS)

    try:
        now = datetime.utcnow()
        village = Village(name=village_name, created_at=now, updated_at=now)
        s.add(village)
        s.flush()
        try:
            user = insert_user(
                s,
                name=name,
                email=email,
                password=password,
                village_id=village.id,
                role=ROLE_ADMIN,
                hash_method=hash_method,
            )
        except IntegrityError as e:
            # A concurrent signup won the race for this email.
            raise RegistrationError(USER_EXISTS) from e
        identity = Identity.from_user(user)
        record_event(
            s,
            actor=identity,
            action="auth.register",
            entity_type="Village",
            entity_id=str(village.id),
            metadata={"village_name": village_name},
        )
        s.commit()
    except RegistrationError:
        s.rollback()
        raise
    except SQLAlchemyError as e:
        s.rollback()
        raise RegistrationError(CREATE_FAILED) from e
    return identity, village
