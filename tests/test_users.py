from showhub.db import USERS
from showhub.models import Role


def test_issue_token_from_identity_payload(client):
    r = client.post("/jwt", json={"email": "New@X.io", "name": "New"})
    assert r.status_code == 200
    token = r.json()["token"]

    r = client.post("/user", json={"name": "New"}, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200


def test_issue_token_requires_email(client):
    r = client.post("/jwt", json={"name": "nobody"})
    assert r.status_code == 400
    assert r.json()["detail"] == "email_required"


def test_issue_token_without_secret(cfg, db):
    from dataclasses import replace

    from fastapi.testclient import TestClient

    from showhub.api.server import create_app

    app = create_app(replace(cfg, AUTH_JWT_SECRET=""), database=db)
    with TestClient(app) as c:
        r = c.post("/jwt", json={"email": "a@x.io"})
    assert r.status_code == 500
    assert r.json()["detail"] == "server_config_missing"


def test_create_user_is_idempotent(client, db, auth_headers, cfg):
    headers = auth_headers("a@x.io")

    first = client.post("/user", json={"name": "A"}, headers=headers).json()
    second = client.post("/user", json={"name": "Changed"}, headers=headers).json()

    assert "upsertedId" in first
    assert "upsertedId" not in second
    assert db[USERS].count_documents({"email": "a@x.io"}) == 1
    row = db[USERS].find_one({"email": "a@x.io"})
    assert row["name"] == "A"
    assert row["role"] == "Member"
    assert row["limit"] == cfg.DEFAULT_PRODUCT_LIMIT


def test_create_user_for_someone_else_is_refused(client, auth_headers):
    r = client.post("/user", json={"email": "other@x.io"}, headers=auth_headers("a@x.io"))
    assert r.status_code == 403


def test_get_user_by_email(client, make_user):
    make_user("a@x.io")
    r = client.get("/user", params={"email": "a@x.io"})
    assert r.status_code == 200
    assert r.json()["email"] == "a@x.io"
    assert isinstance(r.json()["_id"], str)


def test_get_missing_user_is_404(client):
    r = client.get("/user", params={"email": "nobody@x.io"})
    assert r.status_code == 404
    assert r.json()["detail"] == "user_not_found"


def test_subscribe_raises_limit(client, db, make_user, auth_headers):
    make_user("a@x.io", limit=0)
    r = client.patch("/user", json={"subscriptionId": "sub_123"}, headers=auth_headers("a@x.io"))
    assert r.status_code == 200
    row = db[USERS].find_one({"email": "a@x.io"})
    assert row["subscriptionId"] == "sub_123"
    assert row["limit"] == 100


def test_self_role_escalation_is_refused(client, db, make_user, auth_headers):
    make_user("a@x.io")
    r = client.patch("/user", json={"role": "Admin", "subscriptionId": "sub_1"}, headers=auth_headers("a@x.io"))
    assert r.status_code == 403
    assert r.json()["detail"] == "role_change_requires_admin"
    assert db[USERS].find_one({"email": "a@x.io"})["role"] == "Member"


def test_admin_sets_role(client, db, make_user, auth_headers):
    make_user("boss@x.io", role=Role.ADMIN)
    make_user("m@x.io")
    user_id = str(db[USERS].find_one({"email": "m@x.io"})["_id"])

    r = client.patch(f"/user/{user_id}", json={"role": "Moderator"}, headers=auth_headers("boss@x.io"))
    assert r.status_code == 200
    assert r.json()["role"] == "Moderator"


def test_admin_sets_unknown_role_is_rejected(client, db, make_user, auth_headers):
    make_user("boss@x.io", role=Role.ADMIN)
    make_user("m@x.io")
    user_id = str(db[USERS].find_one({"email": "m@x.io"})["_id"])

    r = client.patch(f"/user/{user_id}", json={"role": "Overlord"}, headers=auth_headers("boss@x.io"))
    assert r.status_code == 422


def test_member_cannot_set_roles(client, db, make_user, auth_headers):
    make_user("m@x.io")
    user_id = str(db[USERS].find_one({"email": "m@x.io"})["_id"])
    r = client.patch(f"/user/{user_id}", json={"role": "Admin"}, headers=auth_headers("m@x.io"))
    assert r.status_code == 403


def test_bootstrap_admin_on_startup(cfg, db):
    from dataclasses import replace

    from fastapi.testclient import TestClient

    from showhub.api.server import create_app

    app = create_app(replace(cfg, BOOTSTRAP_ADMIN_EMAIL="root@x.io"), database=db)
    with TestClient(app):
        pass
    assert db[USERS].find_one({"email": "root@x.io"})["role"] == "Admin"
