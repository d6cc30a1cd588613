# conftest.py
import os
import tempfile

import pytest

# settings are read at import time, so the environment has to be ready first
_DB_DIR = tempfile.mkdtemp(prefix="materi-test-")
os.environ.setdefault("APP_SECRET", "test-secret")
os.environ["DB_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from fastapi.testclient import TestClient  # noqa: E402

from materi.main import app  # noqa: E402


@pytest.fixture(scope="session")
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture(scope="session")
def rng_suffix():
    import random, string
    return "".join(random.choices(string.ascii_lowercase + string.digits, k=6))


def register(client, email, role="Vendor", password="secret"):
    r = client.post("/auth/register", json={"name": email.split("@")[0], "email": email, "password": password, "user_role": role})
    assert r.status_code == 200, f"/auth/register failed: {r.text}"
    # drop the session cookie so each test talks with its own bearer token
    client.cookies.clear()
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture(scope="session")
def auth_headers(client, rng_suffix):
    r = client.get("/health")
    assert r.status_code == 200, f"/health failed: {r.text}"
    return register(client, f"vendor-{rng_suffix}@example.com")


@pytest.fixture()
def other_vendor(client):
    import uuid
    return register(client, f"other-{uuid.uuid4().hex[:8]}@example.com")


@pytest.fixture(scope="session")
def catalog(client, auth_headers, rng_suffix):
    """One supplier with two products."""
    r = client.post("/suppliers", headers=auth_headers, json={"name": f"Cementos {rng_suffix}", "phone": "+57 300 123 4567"})
    assert r.status_code == 201, r.text
    supplier = r.json()
    products = []
    for name, price, uom in (("Portland cement 50kg", 32000, "bag"), ("Rebar 3/8", "18500.5", "rod")):
        r = client.post("/products", headers=auth_headers, json={
            "supplier_id": supplier["id"], "name": name, "base_price": price,
            "unit_of_measure": uom, "description": f"{name} ({rng_suffix})",
        })
        assert r.status_code == 201, r.text
        products.append(r.json())
    return {"supplier": supplier, "products": products}


@pytest.fixture()
def strict_pricing(monkeypatch):
    from materi.config import settings
    monkeypatch.setattr(settings, "PRICING_STRICT", True)
    yield
