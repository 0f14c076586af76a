from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from showhub.catalog import products
from showhub.db import PRODUCTS
from showhub.models import Role


def test_admin_stats_counts(client, db, make_user, auth_headers):
    make_user("boss@x.io", role=Role.ADMIN)
    make_user("m@x.io")
    db[PRODUCTS].insert_many(
        [
            {"name": "A", "status": "Accepted", "reviews": [{}, {}], "reviewCount": 2},
            {"name": "B", "status": "Pending", "reviews": [{}], "reviewCount": 1},
        ]
    )

    r = client.get("/admin-stats", headers=auth_headers("boss@x.io"))
    assert r.status_code == 200
    assert r.json() == {"users": 2, "products": 2, "reviews": 3}


def test_admin_stats_on_empty_store(client, make_user, auth_headers):
    make_user("boss@x.io", role=Role.ADMIN)
    r = client.get("/admin-stats", headers=auth_headers("boss@x.io"))
    assert r.json() == {"users": 1, "products": 0, "reviews": 0}


def test_store_failure_is_structured_503(client, monkeypatch):
    def boom(*args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr(products, "trending_products", boom)
    r = client.get("/trending")
    assert r.status_code == 503
    assert r.json() == {"detail": "store_error"}


def test_unexpected_failure_is_structured_500(app, monkeypatch):
    def boom(*args, **kwargs):
        raise KeyError("oops")

    monkeypatch.setattr(products, "trending_products", boom)
    with TestClient(app, raise_server_exceptions=False) as c:
        r = c.get("/trending")
    assert r.status_code == 500
    assert r.json() == {"detail": "internal_error"}


def test_health_and_banner(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert "running" in client.get("/").json()
