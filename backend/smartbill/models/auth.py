from __future__ import annotations

from ..extensions import db
from smartbill.time_utils import to_utc_z


class StoreSession(db.Model):
    """
    Login session issued after OTP verification.

    SECURITY: Only the SHA-256 hash of the bearer token is stored; the
    plaintext is returned once, at login.
    """
    __tablename__ = "store_sessions"
    __table_args__ = (
        db.UniqueConstraint("token_hash", name="uq_store_sessions_token_hash"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    token_hash = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    store = db.relationship("Store", back_populates="sessions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "storeId": self.store_id,
            "createdAt": to_utc_z(self.created_at),
            "expiresAt": to_utc_z(self.expires_at),
            "revoked": self.revoked_at is not None,
        }
