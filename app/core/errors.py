from typing import Optional
from fastapi import status


class AuthError(Exception):
    status_code: int = status.HTTP_401_UNAUTHORIZED
    code: str = 'unauthorized'
    detail: str = 'Unauthorized'

    def __init__(self, detail: Optional[str] = None, headers: Optional[dict[str, str]] = None) -> None:
        if detail is not None:
            self.detail = detail
        self.headers = headers
        super().__init__(self.detail)


class Unauthorized(AuthError):
    detail = 'Invalid username or password'


class Forbidden(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'forbidden'
    detail = 'Insufficient role'


class RateLimited(AuthError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = 'rate_limited'
    detail = 'Too many login attempts, please try again later'

    def __init__(self, retry_after: float, detail: Optional[str] = None) -> None:
        self.retry_after = retry_after
        super().__init__(detail, headers={'Retry-After': str(max(1, int(retry_after + 0.999)))})


class InvalidAccessToken(AuthError):
    code = 'invalid_token'
    detail = 'Invalid access token'


class AccessTokenExpired(AuthError):
    code = 'token_expired'
    detail = 'Access token expired'


class InvalidRefreshToken(AuthError):
    code = 'invalid_refresh_token'
    detail = 'Invalid refresh token'


class RefreshTokenExpired(AuthError):
    code = 'session_expired'
    detail = 'Session expired, please log in again'


class ReuseDetected(AuthError):
    # Shown to clients exactly like an expired session.
    code = 'session_expired'
    detail = 'Session expired, please log in again'


class DuplicateUsername(AuthError):
    status_code = status.HTTP_409_CONFLICT
    code = 'duplicate_username'
    detail = 'Username already exists'


class InvalidPassword(AuthError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = 'invalid_password'
    detail = (
        'Password must be at least 8 characters and contain an uppercase letter, '
        'a lowercase letter, a digit and one of @$!%*?&'
    )
