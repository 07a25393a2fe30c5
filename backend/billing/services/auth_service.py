# Overview: Service-layer operations for auth; registration, password hashing and credential checks.

"""
Authentication Service

WHY: Every invoice records who created it, and every shop-scoped call is
authorized against a verified user id. This module is the only place that
sees plaintext passwords.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS)
- Minimum 6 characters; usernames minimum 4
- Session tokens managed separately (see session_service.py)

REGISTRATION is two units of work:
1. the user row (must succeed, or registration fails)
2. the default shop + OWNER edge + default pointer (best-effort: a failure is
   logged and swallowed so the account still exists; ensure_default_shop()
   is the retryable follow-up)
"""

from __future__ import annotations

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AuthenticationError, ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..time_utils import utcnow
from .default_shop_service import create_default_shop
from .session_service import create_session
from .unit_of_work import run_atomic

MIN_USERNAME_LENGTH = 4
MIN_PASSWORD_LENGTH = 6


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    default_code = "PASSWORD_VALIDATION_ERROR"


def validate_password_strength(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    WHY timing-safe: bcrypt.checkpw() prevents timing attacks automatically.
    """
    if not isinstance(password, str) or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def _normalize_username(username) -> str:
    if not isinstance(username, str) or len(username.strip()) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"Username must be at least {MIN_USERNAME_LENGTH} characters long")
    return username.strip()


def _normalize_email(email) -> str | None:
    if email is None:
        return None
    if not isinstance(email, str):
        raise ValidationError("Email must be a string")
    email = email.strip().lower()
    if not email:
        return None
    if "@" not in email or email.startswith("@") or email.endswith("@"):
        raise ValidationError("Email is not valid")
    return email


def create_user(username: str, password: str, email: str | None = None) -> User:
    """
    Insert the user row in its own unit of work.

    Raises:
        ValidationError: username/email malformed
        PasswordValidationError: password too short
        ConflictError(USER_EXISTS): username or email already taken
    """
    username = _normalize_username(username)
    email = _normalize_email(email)
    password_hash = hash_password(password)

    def _op(session):
        clauses = [User.username == username]
        if email:
            clauses.append(User.email == email)
        existing = session.query(User).filter(db.or_(*clauses)).first()
        if existing:
            raise ConflictError("Username or email already exists", code="USER_EXISTS")

        user = User(username=username, email=email, password_hash=password_hash)
        session.add(user)
        try:
            session.flush()
        except IntegrityError:
            raise ConflictError("Username or email already exists", code="USER_EXISTS")
        return user

    return run_atomic(_op, "Error creating user")


def register_user(username: str, password: str, email: str | None = None) -> User:
    """
    Create an account and, best-effort, its default shop.

    The returned user always exists; user.default_shop_id is None when the
    default shop could not be created.
    """
    user = create_user(username, password, email)
    current_app.logger.info("User %s registered (id=%s)", user.username, user.id)

    try:
        create_default_shop(user)
    except Exception:
        # Account creation must not depend on the default shop
        current_app.logger.exception(
            "Default shop creation failed for user %s; retry with `flask users ensure-default-shops`",
            user.id,
        )
        db.session.refresh(user)

    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Check credentials. `identifier` is a username or an email.

    Returns the User if credentials are valid and the account is active,
    None otherwise. Updates last_login_at on success.
    """
    if not isinstance(identifier, str) or not identifier.strip():
        return None
    identifier = identifier.strip()

    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user or not verify_password(password, user.password_hash):
        current_app.logger.warning("Failed login for %r", identifier)
        return None

    def _op(session):
        user.last_login_at = utcnow()
        session.flush()
        return user

    return run_atomic(_op, "Error recording login")


def login(identifier: str, password: str, user_agent: str | None = None, ip_address: str | None = None):
    """
    Authenticate and open a session.

    Returns (user, plaintext_token). Raises AuthenticationError on bad
    credentials; the message never says which half was wrong.
    """
    user = authenticate(identifier, password)
    if user is None:
        raise AuthenticationError("Invalid username or password")

    _, token = create_session(user.id, user_agent=user_agent, ip_address=ip_address)
    current_app.logger.info("User %s logged in", user.id)
    return user, token
