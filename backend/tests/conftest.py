"""
LeadDesk - shared test fixtures
Every test gets its own data directory; nothing touches the network.
Run: cd backend && pytest tests/ -v
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from config import hash_password
from server import create_app
from services.durable_log import DurableLog
from services.registry_client import RegistryClient
from services.store import Store

VALID_CNPJ = "11222333000181"
OTHER_VALID_CNPJ = "11444777000161"

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD = "admin123"


def registry_payload(cnpj=VALID_CNPJ, **overrides):
    """A ReceitaWS 'OK' answer"""
    payload = {
        "status": "OK",
        "cnpj": f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}",
        "nome": "ACME COMERCIO LTDA",
        "fantasia": "ACME",
        "situacao": "ATIVA",
        "porte": "MICRO EMPRESA",
        "atividade_principal": [{"code": "47.51-2-01", "text": "Comércio varejista"}],
        "abertura": "01/02/2003",
    }
    payload.update(overrides)
    return payload


class FakeRegistry:
    """
    Serves canned payloads per CNPJ through httpx.MockTransport and counts
    the requests it receives.
    """

    def __init__(self):
        self.payloads = {}
        self.calls = []
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        cnpj = request.url.path.rstrip("/").split("/")[-1]
        self.calls.append(cnpj)
        if self.error is not None:
            raise self.error
        payload = self.payloads.get(cnpj, {"status": "ERROR", "message": "CNPJ inválido"})
        return httpx.Response(200, json=payload)

    def client(self) -> RegistryClient:
        return RegistryClient(
            base_url="https://registry.test/v1/cnpj",
            timeout=1.0,
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def fake_registry():
    registry = FakeRegistry()
    registry.payloads[VALID_CNPJ] = registry_payload(VALID_CNPJ)
    return registry


@pytest.fixture
def open_store(tmp_path):
    """Factory: await open_store() -> a loaded Store over tmp_path (or another dir)"""
    async def _open(data_dir=None):
        store = Store(DurableLog(data_dir or tmp_path))
        await store.load()
        return store
    return _open


@pytest.fixture
def client(tmp_path, fake_registry):
    """TestClient over a fresh app; used as a context manager so startup runs"""
    app = create_app(data_dir=tmp_path, registry_client=fake_registry.client())
    with TestClient(app) as c:
        yield c


def login(c, username=ADMIN_USERNAME, password=ADMIN_PASSWORD):
    r = c.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def auth_h(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client):
    return auth_h(login(client))


@pytest.fixture
def consultant(client, admin_headers):
    """A consultant account: (user dict, headers)"""
    r = client.post("/api/users", headers=admin_headers, json={
        "username": "ana",
        "password": "ana-secret",
        "name": "Ana",
        "email": "ana@example.com",
        "role": "consultant",
    })
    assert r.status_code == 200, r.text
    return r.json(), auth_h(login(client, "ana", "ana-secret"))


async def make_user(store, username="ana", name="Ana", role="consultant"):
    return await store.create_user(
        username=username,
        password_hash=hash_password("secret", iterations=1000),
        name=name,
        role=role,
    )
