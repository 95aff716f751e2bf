"""
RefreshToken model: one row per issued refresh token so tokens can be
rotated (single use) and revoked in bulk.
Fields:
- id (String(36)) record id
- user_id (String(36)) - FK to users.id
- token: the signed refresh token string
- expires_at, created_at
- revoked (bool), never flips back to False
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Index

from models.base_model import BaseModel, Base


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(1024), nullable=False, unique=True)
    revoked = Column(Boolean, default=False, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} revoked={self.revoked}>"
