# Overview: Service-layer operations for user accounts; password hashing and authentication.

"""
Authentication Service

Users log in with email + password. Passwords are hashed with bcrypt and
must meet the strength rules below. Roles are "admin" and "cashier".

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, mixed case, a digit and a special character
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..errors import AuthenticationError, ConflictError, ValidationError
from ..models import User, ROLES
from duka.time_utils import utcnow

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt comparison; malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str, role: str = "cashier") -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: blank username, malformed email, unknown role, weak password
        ConflictError: email already registered
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    role = (role or "cashier").strip().lower()

    if not username:
        raise ValidationError("username is required")
    if not EMAIL_RE.match(email):
        raise ValidationError("email is not valid")
    if role not in ROLES:
        raise ValidationError("Unknown role. Please contact support.", details={"role": role})

    existing = db.session.query(User).filter(User.email == email).first()
    if existing:
        raise ConflictError("Email already registered")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )

    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created %s user %s (%s)", role, user.id, username)
    return user


def authenticate(email: str, password: str) -> User:
    """
    Authenticate user with email and password.

    Updates last_login_at on success. The same error is raised for an unknown
    email and a wrong password.
    """
    email = (email or "").strip().lower()
    user = db.session.query(User).filter(
        User.email == email,
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password or "", user.password_hash):
        raise AuthenticationError("Invalid email or password")

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_users() -> list[User]:
    return db.session.query(User).order_by(User.username.asc(), User.id.asc()).all()
