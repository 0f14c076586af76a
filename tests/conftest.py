"""Pytest configuration and fixtures."""

from dataclasses import replace

import mongomock
import pytest
from fastapi.testclient import TestClient

from showhub.api.server import create_app
from showhub.auth.security import create_access_token
from showhub.config import load_config
from showhub.db import USERS
from showhub.models import Role


TEST_SECRET = "test-secret"


@pytest.fixture
def jwt_secret():
    return TEST_SECRET


@pytest.fixture
def cfg(jwt_secret):
    return replace(
        load_config(),
        AUTH_JWT_SECRET=jwt_secret,
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        BOOTSTRAP_ADMIN_EMAIL="",
        STRIPE_SECRET_KEY="sk_test_dummy",
        DEFAULT_PRODUCT_LIMIT=1,
        SUBSCRIBER_PRODUCT_LIMIT=100,
        DEFAULT_PAGE_SIZE=10,
        MAX_PAGE_SIZE=100,
        TRENDING_LIMIT=6,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def db():
    """Fresh in-memory document store per test."""
    return mongomock.MongoClient()["showhub_test"]


@pytest.fixture
def app(cfg, db):
    return create_app(cfg, database=db)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db, cfg):
    """Insert a user document directly and return it."""

    def _make(email, role=Role.MEMBER, limit=None, **extra):
        doc = {"email": email, "role": role.value, "limit": cfg.DEFAULT_PRODUCT_LIMIT if limit is None else limit}
        doc.update(extra)
        db[USERS].insert_one(doc)
        return doc

    return _make


@pytest.fixture
def auth_headers(jwt_secret):
    def _headers(email, **claims):
        token = create_access_token(
            secret=jwt_secret,
            claims={"email": email, **claims},
            expires_minutes=60,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
