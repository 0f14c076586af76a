"""Authorization gate: 401 before 403, exact role match, fresh role lookups."""

from datetime import datetime, timedelta, timezone

import pytest

from showhub.auth.security import create_access_token
from showhub.db import USERS
from showhub.models import Role


TOKEN_ROUTES = [
    ("get", "/user/products"),
    ("post", "/product"),
    ("post", "/payment-intent"),
]

ADMIN_ROUTES = [
    ("get", "/users"),
    ("get", "/admin-stats"),
]


@pytest.mark.parametrize("method,path", TOKEN_ROUTES + ADMIN_ROUTES)
def test_missing_header_is_unauthenticated(client, method, path):
    r = getattr(client, method)(path)
    assert r.status_code == 401
    assert r.json()["detail"] == "missing_token"
    assert r.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize("header", ["Basic abc", "Bearer", "token-without-scheme"])
def test_malformed_header_is_unauthenticated(client, header):
    r = client.get("/user/products", headers={"Authorization": header})
    assert r.status_code == 401


def test_garbage_token_is_invalid(client):
    r = client.get("/user/products", headers={"Authorization": "Bearer abc.def.ghi"})
    assert r.status_code == 401
    assert r.json()["detail"] == "token_invalid"


def test_expired_token_is_rejected(client, make_user, jwt_secret):
    make_user("a@x.io", role=Role.ADMIN)
    issued = datetime.now(timezone.utc) - timedelta(minutes=61)
    token = create_access_token(secret=jwt_secret, claims={"email": "a@x.io"}, expires_minutes=60, now=issued)

    r = client.get("/users", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "token_expired"


def test_token_without_email_claim(client, jwt_secret):
    token = create_access_token(secret=jwt_secret, claims={"name": "anon"}, expires_minutes=60)
    r = client.get("/user/products", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "token_missing_email"


def test_role_check_not_reached_without_token(client, db, monkeypatch):
    calls = []
    import showhub.auth.deps as deps

    monkeypatch.setattr(deps, "get_role", lambda *a: calls.append(a))
    r = client.get("/users")
    assert r.status_code == 401
    assert calls == []


@pytest.mark.parametrize("role", [Role.MEMBER, Role.MODERATOR])
def test_non_admin_is_forbidden_on_admin_route(client, make_user, auth_headers, role):
    make_user("u@x.io", role=role)
    r = client.get("/users", headers=auth_headers("u@x.io"))
    assert r.status_code == 403
    assert r.json()["detail"] == "admin_required"


def test_admin_passes_admin_gate(client, make_user, auth_headers):
    make_user("boss@x.io", role=Role.ADMIN)
    make_user("m@x.io")
    r = client.get("/users", headers=auth_headers("boss@x.io"))
    assert r.status_code == 200
    assert {u["email"] for u in r.json()} == {"boss@x.io", "m@x.io"}


def test_moderator_gate_requires_exact_role(client, make_user, auth_headers):
    make_user("mod@x.io", role=Role.MODERATOR)
    make_user("boss@x.io", role=Role.ADMIN)

    assert client.get("/review-queue", headers=auth_headers("mod@x.io")).status_code == 200
    r = client.get("/review-queue", headers=auth_headers("boss@x.io"))
    assert r.status_code == 403
    assert r.json()["detail"] == "moderator_required"


def test_unknown_user_with_valid_token_is_forbidden(client, auth_headers):
    r = client.get("/admin-stats", headers=auth_headers("ghost@x.io"))
    assert r.status_code == 403


def test_role_claim_in_token_is_ignored(client, make_user, auth_headers):
    make_user("m@x.io", role=Role.MEMBER)
    r = client.get("/users", headers=auth_headers("m@x.io", role="Admin"))
    assert r.status_code == 403


def test_role_change_applies_to_next_request(client, db, make_user, auth_headers):
    make_user("m@x.io", role=Role.MEMBER)
    headers = auth_headers("m@x.io")
    assert client.get("/users", headers=headers).status_code == 403

    db[USERS].update_one({"email": "m@x.io"}, {"$set": {"role": "Admin"}})
    assert client.get("/users", headers=headers).status_code == 200

    db[USERS].update_one({"email": "m@x.io"}, {"$set": {"role": "Member"}})
    assert client.get("/users", headers=headers).status_code == 403


def test_public_routes_skip_the_gate(client):
    assert client.get("/products").status_code == 200
    assert client.get("/trending").status_code == 200
    assert client.get("/coupons").status_code == 200
