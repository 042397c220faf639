# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every supply order transition is attributed to a user. Uses bcrypt for
password hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
- Store Staff must be bound to an active store to log in
"""

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Role, Store, User
from ckms.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    status_code = 400


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    role: Role,
    store_id: int | None = None
) -> User:
    """
    Create new user with bcrypt password hashing.

    Store Staff require a store; Admin and Central Staff may omit it.

    Raises:
        ValueError: If the username is taken or the store is missing
        PasswordValidationError: If password doesn't meet requirements
    """
    role = Role(role)
    username = (username or "").strip()
    if not username:
        raise ValueError("Username is required")

    existing = db.session.query(User).filter_by(username=username).first()
    if existing:
        raise ValueError("Username already exists")

    if role == Role.STORE_STAFF and store_id is None:
        raise ValueError("Store staff must be assigned to a store")

    if store_id is not None and db.session.get(Store, store_id) is None:
        raise ValueError("Store not found")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        store_id=store_id,
    )

    db.session.add(user)
    db.session.commit()
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Authenticate user with username and password.

    Returns User if credentials are valid, None otherwise. A user whose store
    has been deactivated cannot log in.
    Updates last_login_at timestamp on successful authentication.
    """
    user = db.session.query(User).filter(
        User.username == username,
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if user.store is not None and not user.store.is_active:
        return None

    user.last_login_at = utcnow()
    db.session.commit()

    return user
