import os
import tempfile
from pathlib import Path

import pytest

_TEST_DIR = Path(tempfile.mkdtemp(prefix='indicator-auth-tests-'))
TEST_DB_URL = os.getenv('TEST_DB_URL', f"sqlite:///{_TEST_DIR / 'test.db'}")
os.environ['DATABASE_URL'] = TEST_DB_URL
os.environ['ENV'] = 'test'
os.environ['REFRESH_COOKIE_SECURE'] = 'false'

from fastapi.testclient import TestClient
from sqlmodel import Session

from app.db.init_db import init_db
from app.db.session import engine
from app.main import app
from app.services.rate_limiter import FixedWindowRateLimiter
from app.services.user_service import create_user

PASSWORD = 'Corr3ct!pass'


@pytest.fixture(autouse=True, scope='session')
def _configure_test_database():
    init_db(drop_all=True)
    yield


@pytest.fixture(autouse=True)
def _reset_login_limiter():
    app.state.login_limiter.reset()
    yield
    app.state.login_limiter.reset()


@pytest.fixture()
def session():
    init_db(drop_all=True)
    with Session(engine) as db:
        yield db


@pytest.fixture()
def client():
    init_db(drop_all=True)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def alice(session):
    return create_user(session, 'alice', 'alice@example.com', PASSWORD)


@pytest.fixture()
def limiter():
    return FixedWindowRateLimiter(max_attempts=5, window_seconds=60)
