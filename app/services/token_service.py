import hashlib
import hmac
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.errors import AccessTokenExpired, InvalidAccessToken

ACCESS_TOKEN_TYPE = 'access'
# 64 random bytes, hex encoded: 512 bits of entropy.
REFRESH_TOKEN_BYTES = 64


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    username: str
    roles: list[str] = field(default_factory=list)
    issued_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None


def access_token_lifetime() -> timedelta:
    return timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)


def issue_access_token(claims: AccessClaims, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    payload = {
        'sub': claims.user_id,
        'username': claims.username,
        'roles': list(claims.roles),
        'type': ACCESS_TOKEN_TYPE,
        'iat': now,
        'exp': now + access_token_lifetime(),
    }
    return jwt.encode(payload, settings.ACCESS_TOKEN_SECRET, algorithm=settings.ALGORITHM)


def verify_access_token(token: str) -> AccessClaims:
    try:
        payload = jwt.decode(token, settings.ACCESS_TOKEN_SECRET, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as exc:
        raise AccessTokenExpired() from exc
    except JWTError as exc:
        raise InvalidAccessToken() from exc

    if payload.get('type') != ACCESS_TOKEN_TYPE:
        raise InvalidAccessToken('Invalid token type')
    user_id = payload.get('sub')
    username = payload.get('username')
    roles = payload.get('roles')
    if not user_id or not username or not isinstance(roles, list) or 'exp' not in payload:
        raise InvalidAccessToken('Malformed token claims')
    return AccessClaims(
        user_id=user_id,
        username=username,
        roles=[str(role) for role in roles],
        issued_at=datetime.fromtimestamp(payload['iat'], tz=timezone.utc) if 'iat' in payload else None,
        expires_at=datetime.fromtimestamp(payload['exp'], tz=timezone.utc),
    )


def generate_refresh_token_value() -> str:
    return secrets.token_hex(REFRESH_TOKEN_BYTES)


def fingerprint_refresh_token(value: str) -> str:
    return hmac.new(
        settings.REFRESH_TOKEN_SECRET.encode('utf-8'),
        value.encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()
