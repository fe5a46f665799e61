from typing import Optional
from dataclasses import dataclass
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session
from app.core.errors import (
    DuplicateUsername,
    Forbidden,
    InvalidAccessToken,
    InvalidPassword,
    InvalidRefreshToken,
    RefreshTokenExpired,
    ReuseDetected,
    Unauthorized,
)
from app.core.security import dummy_verify, is_valid_password, verify_password
from app.db.session import get_session
from app.models.base import utc_now
from app.models.refresh_token import RefreshToken
from app.models.user import User
from app.services import refresh_token_service as ledger
from app.services.rate_limiter import RateLimiter
from app.services.token_service import AccessClaims, access_token_lifetime, issue_access_token, verify_access_token
from app.services.user_service import create_user, get_user, get_user_by_email, get_user_by_identifier, get_user_by_username

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int
    user_id: str


def _claims_for(user: User) -> AccessClaims:
    return AccessClaims(user_id=user.id, username=user.username, roles=list(user.roles))


def _token_pair(user: User, refresh_value: str) -> TokenPair:
    return TokenPair(
        access_token=issue_access_token(_claims_for(user)),
        refresh_token=refresh_value,
        expires_in=int(access_token_lifetime().total_seconds()),
        user_id=user.id,
    )


def register(session: Session, username: str, email: str, password: str) -> User:
    if not is_valid_password(password):
        raise InvalidPassword()
    if get_user_by_username(session, username):
        raise DuplicateUsername()
    if get_user_by_email(session, email):
        raise DuplicateUsername('Email already registered')
    try:
        user = create_user(session, username, email, password)
    except IntegrityError as exc:
        session.rollback()
        raise DuplicateUsername() from exc
    logger.info('auth.register.created', user_id=user.id)
    return user


def login(
    session: Session,
    limiter: RateLimiter,
    identifier: str,
    password: str,
    client_key: str,
    client_context: str = '',
) -> TokenPair:
    limiter.hit(client_key)

    user = get_user_by_identifier(session, identifier)
    if user is None:
        dummy_verify()
        logger.info('auth.login.rejected', reason='unknown_user', client=client_key)
        raise Unauthorized()
    if not verify_password(password, user.hashed_password):
        logger.info('auth.login.rejected', reason='bad_password', user_id=user.id, client=client_key)
        raise Unauthorized()
    if not user.is_active:
        logger.info('auth.login.rejected', reason='inactive', user_id=user.id, client=client_key)
        raise Unauthorized()

    record, value = ledger.issue(session, user.id, client_context)
    logger.info('auth.login.succeeded', user_id=user.id, token_id=record.id)
    return _token_pair(user, value)


def _reuse_detected(session: Session, record: RefreshToken) -> ReuseDetected:
    revoked = ledger.revoke_chain(session, record)
    logger.warning(
        'auth.refresh.reuse_detected',
        user_id=record.user_id,
        token_id=record.id,
        chain_revoked=revoked,
    )
    return ReuseDetected()


def refresh(session: Session, value: str, client_context: Optional[str] = None) -> TokenPair:
    try:
        record = ledger.lookup(session, value)
    except ledger.RefreshTokenNotFound as exc:
        logger.info('auth.refresh.unknown_token')
        raise InvalidRefreshToken() from exc

    now = utc_now()
    if record.revoked:
        raise _reuse_detected(session, record)
    if record.is_expired(now):
        logger.info('auth.refresh.expired', user_id=record.user_id, token_id=record.id)
        raise RefreshTokenExpired()

    user = get_user(session, record.user_id)
    if user is None or not user.is_active:
        ledger.revoke(session, record, now=now)
        logger.info('auth.refresh.inactive_user', user_id=record.user_id, token_id=record.id)
        raise InvalidRefreshToken()

    try:
        successor, new_value = ledger.rotate(session, record, client_context=client_context, now=now)
    except ledger.RefreshTokenConflict:
        raise _reuse_detected(session, record) from None
    logger.info('auth.refresh.rotated', user_id=user.id, token_id=record.id, successor_id=successor.id)
    return _token_pair(user, new_value)


def logout(session: Session, value: Optional[str]) -> None:
    if not value:
        return
    try:
        record = ledger.lookup(session, value)
    except ledger.RefreshTokenNotFound:
        logger.debug('auth.logout.unknown_token')
        return
    ledger.revoke(session, record)
    logger.info('auth.logout', user_id=record.user_id, token_id=record.id)


def logout_all(session: Session, user_id: str) -> int:
    revoked = ledger.revoke_all_for_user(session, user_id)
    logger.info('auth.logout_all', user_id=user_id, revoked=revoked)
    return revoked


def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AccessClaims:
    if credentials is None or credentials.scheme.lower() != 'bearer':
        raise InvalidAccessToken('Access token required')
    return verify_access_token(credentials.credentials)


def get_current_user(
    claims: AccessClaims = Depends(get_current_claims),
    session: Session = Depends(get_session),
) -> User:
    user = get_user(session, claims.user_id)
    if not user or not user.is_active:
        raise InvalidAccessToken('User not found')
    return user


def require_roles(*roles: str):
    allowed = set(roles)

    def dependency(claims: AccessClaims = Depends(get_current_claims)) -> AccessClaims:
        if not allowed.intersection(claims.roles):
            raise Forbidden()
        return claims

    return dependency
