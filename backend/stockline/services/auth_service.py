# Overview: Service-layer operations for auth; credential verification and user accounts.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

The TCP session never sees a password hash. The login handler calls
authenticate(), and only a returned User moves the session to
authenticated.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- authenticate() returns None for unknown user, inactive user and wrong
  password alike; callers must not tell these apart on the wire
"""

from __future__ import annotations

import re

import bcrypt

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import User
from ..permissions import Role
from ..time_utils import utcnow


BCRYPT_ROUNDS = 12

MIN_PASSWORD_LENGTH = 8

# (pattern, rule name used in the error message)
_PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "uppercase letter"),
    (re.compile(r"[a-z]"), "lowercase letter"),
    (re.compile(r"\d"), "digit"),
    (re.compile(r"[!@#$%^&*(),.'\":{}|<>]"), "special character"),
)


class PasswordValidationError(ValidationError):
    """Password doesn't meet the strength policy."""


def validate_password_strength(password: str) -> None:
    """
    At least MIN_PASSWORD_LENGTH characters with an uppercase letter, a
    lowercase letter, a digit and one of !@#$%^&*(),.'":{}|<>.

    Raises PasswordValidationError naming the first unmet rule.
    """
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, rule in _PASSWORD_RULES:
        if not pattern.search(password):
            raise PasswordValidationError(f"Password must contain at least one {rule}")


def hash_password(password: str) -> str:
    """Validate strength, then bcrypt-hash. Returned as str for the password_hash column."""
    validate_password_strength(password)
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Constant-time bcrypt comparison. A malformed stored hash is a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def authenticate(username: str, password: str) -> User | None:
    """
    Verify credentials. Returns the User on success, None otherwise.

    Updates last_login_at on success. Inactive accounts never authenticate.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if user is None:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_user(username: str, password: str, role: str | Role) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: bad username or role
        PasswordValidationError: password doesn't meet requirements
        ConflictError: username already taken
    """
    username = (username or "").strip()
    if len(username) < 3 or len(username) > 50:
        raise ValidationError("Username must be between 3 and 50 characters")

    try:
        role_value = Role.parse(role)
    except ValueError:
        raise ValidationError(f"Invalid role. Must be one of: {', '.join(r.value for r in Role)}")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ConflictError("Username already exists")

    # Hash password with bcrypt (validates strength automatically)
    password_hash = hash_password(password)

    user = User(
        username=username,
        password_hash=password_hash,
        role=role_value.value,
        is_active=True,
    )

    db.session.add(user)
    db.session.commit()
    return user


def change_password(user_id: int, old_password: str, new_password: str) -> User:
    """
    Change a user's password after re-verifying the current one.

    SECURITY: The current password is required even though the session is
    already authenticated, so an unattended terminal can't be used to take
    over the account.
    """
    user = get_user(user_id)

    if not verify_password(old_password, user.password_hash):
        raise ValidationError("Current password is incorrect")

    if old_password == new_password:
        raise ValidationError("New password must differ from the current password")

    user.password_hash = hash_password(new_password)
    db.session.commit()
    return user


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()
