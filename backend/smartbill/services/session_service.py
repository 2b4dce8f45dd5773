# Overview: Service-layer operations for store login sessions.

"""
Session Token Management Service

WHY: Login (phone + OTP) hands the store an opaque bearer token that the
catalog routes accept as an alternative to the raw API key.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- Absolute timeout from SESSION_TTL_HOURS
- Revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import Store, StoreSession
from smartbill.time_utils import as_utc_naive, utcnow


@dataclass
class SessionContext:
    """What a validated token resolves to."""
    store: Store
    session: StoreSession


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(store_id: int) -> tuple[StoreSession, str]:
    """
    Create new session token for a store.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 1))

    session = StoreSession(
        store_id=store_id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + ttl,
    )
    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token.

    Returns None if the token is unknown, expired, or revoked.
    """
    if not token:
        return None

    session = db.session.query(StoreSession).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()

    if not session:
        return None

    if as_utc_naive(session.expires_at) < utcnow():
        return None

    return SessionContext(store=session.store, session=session)


def revoke_session(token: str) -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(StoreSession).filter_by(
        token_hash=hash_token(token),
        revoked_at=None,
    ).first()

    if not session:
        return False

    session.revoked_at = utcnow()
    db.session.commit()
    return True


def cleanup_expired_sessions() -> int:
    """
    Delete sessions that are expired or revoked.

    Returns count of sessions deleted.
    """
    now = utcnow()
    deleted = db.session.query(StoreSession).filter(
        db.or_(
            StoreSession.expires_at < now,
            StoreSession.revoked_at.isnot(None),
        )
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
