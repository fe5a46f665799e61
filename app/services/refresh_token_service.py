"""Refresh token ledger.

Every mutation is a single transaction. ``rotate`` relies on a conditional
update of the ``revoked`` flag so two callers presenting the same token can
never both obtain a successor.
"""
from typing import Optional
from datetime import datetime, timedelta
from loguru import logger
from sqlalchemy import delete, update
from sqlmodel import Session, select
from app.core.config import settings
from app.models.base import utc_now
from app.models.refresh_token import RefreshToken
from app.services.token_service import fingerprint_refresh_token, generate_refresh_token_value

CLIENT_CONTEXT_MAX_LEN = 255


class RefreshTokenNotFound(LookupError):
    pass


class RefreshTokenInactive(ValueError):
    pass


class RefreshTokenConflict(RuntimeError):
    """The token was revoked by someone else between read and write."""


def refresh_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.REFRESH_TOKEN_EXPIRE_MINUTES)


def _new_record(user_id: str, client_context: str, now: datetime) -> tuple[RefreshToken, str]:
    value = generate_refresh_token_value()
    record = RefreshToken(
        token_hash=fingerprint_refresh_token(value),
        user_id=user_id,
        issued_at=now,
        expires_at=now + refresh_token_lifetime(),
        client_context=(client_context or '')[:CLIENT_CONTEXT_MAX_LEN],
    )
    return record, value


def issue(
    session: Session,
    user_id: str,
    client_context: str = '',
    now: Optional[datetime] = None,
) -> tuple[RefreshToken, str]:
    record, value = _new_record(user_id, client_context, now or utc_now())
    session.add(record)
    session.commit()
    session.refresh(record)
    return record, value


def lookup(session: Session, value: str) -> RefreshToken:
    record = session.exec(
        select(RefreshToken).where(RefreshToken.token_hash == fingerprint_refresh_token(value))
    ).first()
    if record is None:
        raise RefreshTokenNotFound('Refresh token not found')
    return record


def rotate(
    session: Session,
    record: RefreshToken,
    client_context: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[RefreshToken, str]:
    now = now or utc_now()
    if not record.is_active(now):
        raise RefreshTokenInactive('Refresh token is not active')

    context = record.client_context if client_context is None else client_context
    successor, value = _new_record(record.user_id, context, now)
    result = session.exec(
        update(RefreshToken)
        .where(RefreshToken.id == record.id, RefreshToken.revoked.is_(False))
        .values(revoked=True, revoked_at=now, replaced_by_token_hash=successor.token_hash, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        session.rollback()
        raise RefreshTokenConflict('Refresh token already rotated or revoked')
    session.add(successor)
    session.commit()
    session.refresh(successor)
    session.refresh(record)
    return successor, value


def revoke(session: Session, record: RefreshToken, now: Optional[datetime] = None) -> None:
    now = now or utc_now()
    session.exec(
        update(RefreshToken)
        .where(RefreshToken.id == record.id, RefreshToken.revoked.is_(False))
        .values(revoked=True, revoked_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    session.refresh(record)


def revoke_chain(session: Session, record: RefreshToken, now: Optional[datetime] = None) -> int:
    """Revoke ``record`` and every successor reachable from it."""
    now = now or utc_now()
    revoked = 0
    seen: set[str] = set()
    current: Optional[RefreshToken] = record
    while current is not None and current.id not in seen:
        seen.add(current.id)
        result = session.exec(
            update(RefreshToken)
            .where(RefreshToken.id == current.id, RefreshToken.revoked.is_(False))
            .values(revoked=True, revoked_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        revoked += result.rowcount
        successor_hash = current.replaced_by_token_hash
        if not successor_hash:
            break
        current = session.exec(select(RefreshToken).where(RefreshToken.token_hash == successor_hash)).first()
    session.commit()
    logger.debug('auth.ledger.chain_revoked', token_id=record.id, revoked=revoked, length=len(seen))
    return revoked


def list_active_for_user(session: Session, user_id: str, now: Optional[datetime] = None) -> list[RefreshToken]:
    now = now or utc_now()
    records = session.exec(
        select(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .order_by(RefreshToken.issued_at.desc())
    ).all()
    return [record for record in records if not record.is_expired(now)]


def revoke_all_for_user(session: Session, user_id: str, now: Optional[datetime] = None) -> int:
    now = now or utc_now()
    result = session.exec(
        update(RefreshToken)
        .where(RefreshToken.user_id == user_id, RefreshToken.revoked.is_(False))
        .values(revoked=True, revoked_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount


def purge_expired(session: Session, before: datetime) -> int:
    """Hard-delete records that expired before ``before``. Retention only."""
    result = session.exec(
        delete(RefreshToken)
        .where(RefreshToken.expires_at < before)
        .execution_options(synchronize_session=False)
    )
    session.commit()
    return result.rowcount
