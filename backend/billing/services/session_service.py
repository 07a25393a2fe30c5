# Overview: Service-layer operations for session tokens issued at login.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout (SESSION_ABSOLUTE_TIMEOUT_HOURS, default 24h)
- Idle timeout (SESSION_IDLE_TIMEOUT_HOURS, default 2h)
- Revocable on logout
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

from flask import current_app

from ..errors import NotFoundError
from ..extensions import db
from ..models import SessionToken, User
from ..time_utils import utcnow
from .unit_of_work import run_atomic


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", 24))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_TIMEOUT_HOURS", 2))


def _naive(dt):
    # SQLite returns naive datetimes even for timezone=True columns
    return dt.replace(tzinfo=None) if dt is not None and dt.tzinfo is not None else dt


def generate_token() -> str:
    """
    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    WHY SHA-256 not bcrypt: Tokens are already high-entropy (unlike passwords).
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str]:
    """
    Create new session token for user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()

    def _op(session):
        user = session.query(User).filter_by(id=user_id).first()
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        now = utcnow()
        record = SessionToken(
            user_id=user_id,
            token_hash=hash_token(plaintext_token),
            created_at=now,
            last_used_at=now,
            expires_at=now + _absolute_timeout(),
            user_agent=(user_agent or "")[:512] or None,
            ip_address=ip_address,
            is_revoked=False,
        )
        session.add(record)
        session.flush()
        return record

    record = run_atomic(_op, "Error creating session")
    return record, plaintext_token


def _revoke(record: SessionToken, reason: str, now) -> None:
    record.is_revoked = True
    record.revoked_at = now
    record.revoked_reason = reason


def validate_session(token: str) -> User | None:
    """
    Resolve a bearer token to its active user.

    Returns None if the token is unknown, expired, revoked, idle for too
    long, or belongs to a deactivated user. Idle and deactivated sessions
    are revoked on the way out. Updates last_used_at on success.
    """
    if not token:
        return None

    record = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()
    if not record:
        return None

    now = utcnow()
    if _naive(record.expires_at) < now:
        return None

    def _op(session):
        if now - _naive(record.last_used_at) > _idle_timeout():
            _revoke(record, "Idle timeout", now)
            return None

        user = record.user
        if not user or not user.is_active:
            _revoke(record, "User account deactivated", now)
            return None

        record.last_used_at = now
        return user

    return run_atomic(_op, "Error validating session")


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    def _op(session):
        record = session.query(SessionToken).filter_by(
            token_hash=hash_token(token),
            is_revoked=False,
        ).first()
        if not record:
            return False
        _revoke(record, reason, utcnow())
        return True

    return run_atomic(_op, "Error revoking session")


def cleanup_expired_sessions(older_than_days: int = 30) -> int:
    """
    Delete expired or revoked sessions created more than `older_than_days` ago.

    Returns count of sessions deleted.
    """
    now = utcnow()
    cutoff = now - timedelta(days=older_than_days)

    def _op(session):
        return session.query(SessionToken).filter(
            db.or_(
                SessionToken.expires_at < now,
                SessionToken.is_revoked.is_(True),
            ),
            SessionToken.created_at < cutoff,
        ).delete(synchronize_session=False)

    return run_atomic(_op, "Error cleaning up sessions")
