"""Test tenant resolution."""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.middleware import TenantMiddleware, get_current_tenant, is_valid_tenant_id, tenant_from_host


@pytest.fixture
def client():
    app = FastAPI()
    app.add_middleware(TenantMiddleware)

    @app.get("/whoami")
    async def whoami():
        return {"tenant": get_current_tenant()}

    return TestClient(app)


@pytest.mark.parametrize(
    "host,expected",
    [
        ("acme.pricing.example.com", "acme"),
        ("ACME.pricing.example.com:8443", "acme"),
        ("www.pricing.example.com", None),
        ("api.pricing.example.com", None),
        ("example.com", None),
        ("localhost:8000", None),
    ],
)
def test_tenant_from_host(host, expected):
    assert tenant_from_host(host) == expected


def test_tenant_id_validation():
    assert is_valid_tenant_id("acme-01.br")
    assert not is_valid_tenant_id("../etc")
    assert not is_valid_tenant_id("..")
    assert not is_valid_tenant_id("x" * 65)


def test_header_wins_over_subdomain(client):
    resp = client.get("/whoami", headers={"X-Tenant-ID": "globex", "host": "acme.pricing.example.com"})
    assert resp.json() == {"tenant": "globex"}


def test_subdomain_and_default(client):
    assert client.get("/whoami", headers={"host": "acme.pricing.example.com"}).json() == {"tenant": "acme"}
    assert client.get("/whoami").json() == {"tenant": "default"}


def test_invalid_tenant_rejected(client):
    resp = client.get("/whoami", headers={"X-Tenant-ID": "a/b"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_tenant"
