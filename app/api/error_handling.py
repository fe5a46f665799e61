from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.errors import AuthError


def _error_response(exc: AuthError) -> JSONResponse:
    headers = dict(exc.headers or {})
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers.setdefault('WWW-Authenticate', 'Bearer')
    return JSONResponse(
        status_code=exc.status_code,
        content={'detail': exc.detail, 'code': exc.code},
        headers=headers or None,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AuthError)
    async def handle_auth_error(request: Request, exc: AuthError):
        logger.debug(
            'auth.error',
            path=request.url.path,
            method=request.method,
            status_code=exc.status_code,
            error=type(exc).__name__,
        )
        return _error_response(exc)
