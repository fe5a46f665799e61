from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.api.error_handling import register_exception_handlers
from app.services.auth_service import get_current_claims, require_roles
from app.services.token_service import AccessClaims, issue_access_token


def _app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get('/whoami')
    def whoami(claims: AccessClaims = Depends(get_current_claims)) -> dict:
        return {'username': claims.username}

    @app.get('/admin')
    def admin(claims: AccessClaims = Depends(require_roles('admin', 'superadmin'))) -> dict:
        return {'ok': True}

    return app


def _headers(*roles: str) -> dict:
    token = issue_access_token(AccessClaims(user_id='u-1', username='alice', roles=list(roles)))
    return {'Authorization': f"Bearer {token}"}


def test_claims_dependency_needs_no_database():
    with TestClient(_app()) as client:
        response = client.get('/whoami', headers=_headers('user'))
        assert response.status_code == 200
        assert response.json() == {'username': 'alice'}


def test_require_roles():
    with TestClient(_app()) as client:
        assert client.get('/admin', headers=_headers('user')).status_code == 403
        assert client.get('/admin', headers=_headers('user', 'admin')).status_code == 200
        assert client.get('/admin', headers=_headers('superadmin')).status_code == 200
        missing = client.get('/admin')
        assert missing.status_code == 401
        assert missing.headers['www-authenticate'] == 'Bearer'
