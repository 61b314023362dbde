# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every ledger row, count and payment is attributed to a user. Passwords
are hashed with bcrypt and checked for strength at creation.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters; upper, lower, digit and special char required
- Session tokens managed separately (see session_service.py)
"""
from __future__ import annotations

import re

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User
from ..permissions import Role
from ..validation import ConflictError, ValidationError, require_text
from .lookups import get_user


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if password is None or len(password) < 8:
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
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=rounds))
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check via bcrypt.checkpw. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    password: str,
    *,
    role: str = Role.VIEWER,
    display_name: str | None = None,
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises:
        ValidationError: blank username or unknown role
        PasswordValidationError: weak password
        ConflictError: username taken
    """
    clean_username = require_text(username, "username").lower()
    if role not in Role.ALL:
        raise ValidationError(f"role must be one of {', '.join(Role.ALL)}")

    if db.session.query(User).filter_by(username=clean_username).first() is not None:
        raise ConflictError("Username already exists")

    user = User(
        username=clean_username,
        display_name=(display_name or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("user created: id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


def authenticate(username: str, password: str) -> User | None:
    """
    Return the active user for these credentials, or None.

    WHY: Central authentication function. All login flows go through here.
    """
    if not username:
        return None
    user = db.session.query(User).filter(
        User.username == username.strip().lower(),
        User.is_active.is_(True),
    ).first()
    if user is None:
        return None
    if verify_password(password, user.password_hash):
        return user
    return None


def set_user_active(user_id: int, active: bool) -> User:
    user = get_user(user_id)
    user.is_active = active
    db.session.commit()
    return user
