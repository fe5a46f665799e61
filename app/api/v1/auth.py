from typing import Optional, Union
from fastapi import APIRouter, Depends, Request, Response, status
from sqlmodel import Session
from app.core.config import settings
from app.core.errors import InvalidRefreshToken
from app.db.session import get_session
from app.schemas.auth import (
    LoginRequest,
    LogoutAllResponse,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    StatusResponse,
    TokenResponse,
)
from app.schemas.user import UserOut
from app.services import auth_service
from app.services.auth_service import TokenPair, get_current_claims
from app.services.rate_limiter import RateLimiter
from app.services.refresh_token_service import refresh_token_lifetime
from app.services.token_service import AccessClaims
from app.services.user_service import to_user_out

router = APIRouter(prefix='/auth', tags=['auth'])

USER_AGENT_MAX_LEN = 255


def get_login_limiter(request: Request) -> RateLimiter:
    return request.app.state.login_limiter


def _client_key(request: Request) -> str:
    return request.client.host if request.client else 'unknown'


def _client_context(request: Request) -> str:
    return request.headers.get('user-agent', '')[:USER_AGENT_MAX_LEN]


def _presented_token(request: Request, payload: Optional[Union[RefreshRequest, LogoutRequest]]) -> Optional[str]:
    if payload is not None and payload.refresh_token:
        return payload.refresh_token
    return request.cookies.get(settings.REFRESH_COOKIE_NAME)


def _set_refresh_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        settings.REFRESH_COOKIE_NAME,
        value,
        max_age=int(refresh_token_lifetime().total_seconds()),
        path=settings.refresh_cookie_path,
        secure=settings.REFRESH_COOKIE_SECURE,
        httponly=True,
        samesite=settings.REFRESH_COOKIE_SAMESITE,
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        settings.REFRESH_COOKIE_NAME,
        path=settings.refresh_cookie_path,
        secure=settings.REFRESH_COOKIE_SECURE,
        httponly=True,
        samesite=settings.REFRESH_COOKIE_SAMESITE,
    )


def _token_response(response: Response, pair: TokenPair) -> TokenResponse:
    _set_refresh_cookie(response, pair.refresh_token)
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        expires_in=pair.expires_in,
    )


@router.post('/register', response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, session: Session = Depends(get_session)) -> UserOut:
    user = auth_service.register(session, payload.username, str(payload.email), payload.password)
    return to_user_out(user)


@router.post('/login', response_model=TokenResponse)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    limiter: RateLimiter = Depends(get_login_limiter),
) -> TokenResponse:
    pair = auth_service.login(
        session,
        limiter,
        payload.identifier,
        payload.password,
        client_key=_client_key(request),
        client_context=_client_context(request),
    )
    return _token_response(response, pair)


@router.post('/refresh', response_model=TokenResponse)
def refresh(
    request: Request,
    response: Response,
    payload: Optional[RefreshRequest] = None,
    session: Session = Depends(get_session),
) -> TokenResponse:
    token = _presented_token(request, payload)
    if not token:
        raise InvalidRefreshToken('Refresh token required')
    pair = auth_service.refresh(session, token, client_context=_client_context(request))
    return _token_response(response, pair)


@router.post('/logout', response_model=StatusResponse)
def logout(
    request: Request,
    response: Response,
    payload: Optional[LogoutRequest] = None,
    session: Session = Depends(get_session),
) -> StatusResponse:
    auth_service.logout(session, _presented_token(request, payload))
    _clear_refresh_cookie(response)
    return StatusResponse()


@router.post('/logout-all', response_model=LogoutAllResponse)
def logout_all(
    response: Response,
    claims: AccessClaims = Depends(get_current_claims),
    session: Session = Depends(get_session),
) -> LogoutAllResponse:
    revoked = auth_service.logout_all(session, claims.user_id)
    _clear_refresh_cookie(response)
    return LogoutAllResponse(revoked=revoked)
