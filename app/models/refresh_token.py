from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel
from app.models.base import IDModel, TIMESTAMP_TYPE, TimestampModel, ensure_utc, utc_now


class RefreshToken(IDModel, TimestampModel, SQLModel, table=True):
    """One node of a refresh-token rotation chain.

    Only the keyed fingerprint of the opaque value is stored. A rotated node
    points at its successor through ``replaced_by_token_hash``.
    """

    __tablename__ = 'refresh_tokens'

    token_hash: str = Field(index=True, unique=True, max_length=64)
    user_id: str = Field(index=True, foreign_key='users.id')
    issued_at: datetime = Field(default_factory=utc_now, sa_type=TIMESTAMP_TYPE)
    expires_at: datetime = Field(sa_type=TIMESTAMP_TYPE)
    revoked: bool = False
    revoked_at: Optional[datetime] = Field(default=None, sa_type=TIMESTAMP_TYPE)
    replaced_by_token_hash: Optional[str] = Field(default=None, index=True, max_length=64)
    client_context: str = Field(default='', max_length=255)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utc_now()
        return ensure_utc(now) >= ensure_utc(self.expires_at)

    def is_active(self, now: Optional[datetime] = None) -> bool:
        return not self.revoked and not self.is_expired(now)
