"""Pytest configuration and fixtures."""

import json
import os
import tempfile
from pathlib import Path

_tmp_dir = Path(tempfile.mkdtemp(prefix="rifaria-tests-"))

# Settings are read at import time, so the environment must be ready first.
os.environ["DATABASE_URL"] = f"sqlite:///{_tmp_dir / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_tmp_dir / "uploads")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PIX_API_URL"] = "https://pix.test/v1"
os.environ["PIX_API_KEY"] = "test-pix-key"
os.environ["PIX_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_PUBLISHABLE_KEY"] = "pk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["AUTH_RATE_LIMIT"] = "1000/minute"
os.environ["RESERVATION_HOLD_MINUTES"] = "0"

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import rifaria.models  # noqa: E402,F401
from rifaria.database import Base, SessionLocal, engine  # noqa: E402
from rifaria.limiter import limiter  # noqa: E402
from rifaria.main import app  # noqa: E402
from rifaria.services.pix import PixGateway, get_pix_gateway  # noqa: E402

WEBHOOK_SECRET = "test-webhook-secret"


class FakePixApi:
    """In-memory stand-in for the AbacatePay endpoints, served through httpx.MockTransport."""

    def __init__(self):
        self.customers = []
        self.charges = {}
        self.fail_on = set()
        self.calls = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        endpoint = request.url.path[len("/v1"):]
        self.calls.append((request.method, endpoint))

        if endpoint in self.fail_on:
            return httpx.Response(500, json={"data": None, "error": "Internal gateway error"})

        if endpoint == "/customer/create":
            body = json.loads(request.content)
            self.customers.append(body)
            return httpx.Response(200, json={
                "data": {"id": f"cust_{len(self.customers)}", "metadata": body},
                "error": None
            })

        if endpoint == "/pixQrCode/create":
            body = json.loads(request.content)
            charge_id = f"pix_char_{len(self.charges) + 1}"
            self.charges[charge_id] = dict(body, status="PENDING")
            return httpx.Response(200, json={
                "data": {
                    "id": charge_id,
                    "amount": body["amount"],
                    "status": "PENDING",
                    "brCode": f"00020101021226950014br.gov.bcb.pix{charge_id}",
                    "brCodeBase64": "data:image/png;base64,iVBORw0KGgo=",
                    "expiresAt": "2026-10-19T12:20:00.000Z"
                },
                "error": None
            })

        if endpoint == "/pixQrCode/check":
            charge = self.charges.get(request.url.params.get("id"))
            if charge is None:
                return httpx.Response(404, json={"data": None, "error": "Charge not found"})
            return httpx.Response(200, json={
                "data": {"status": charge["status"], "expiresAt": "2026-10-19T12:20:00.000Z"},
                "error": None
            })

        return httpx.Response(404, json={"data": None, "error": "Unknown endpoint"})

    def set_status(self, charge_id: str, status: str):
        self.charges[charge_id]["status"] = status

    def calls_to(self, endpoint: str) -> int:
        return sum(1 for _, called in self.calls if called == endpoint)


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    limiter.reset()
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def pix_api():
    return FakePixApi()


@pytest.fixture
def pix_gateway(pix_api):
    return PixGateway(
        base_url="https://pix.test/v1",
        api_key="test-pix-key",
        transport=httpx.MockTransport(pix_api.handler)
    )


@pytest.fixture
def client(pix_gateway):
    app.dependency_overrides[get_pix_gateway] = lambda: pix_gateway
    return TestClient(app)


@pytest.fixture
def register(client):
    def _register(email: str = "organizer@rifaria.com.br", password: str = "s3cret-pass") -> dict:
        response = client.post("/auth/register", json={"email": email, "password": password})
        assert response.status_code == 201, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}
    return _register


@pytest.fixture
def owner_headers(register):
    return register()


@pytest.fixture
def create_raffle(client, owner_headers):
    def _create(headers: dict = None, **fields) -> dict:
        payload = {
            "title": "Rifa da Moto",
            "description": "Uma moto zero km",
            "ticket_price": 5.00,
            "draw_date": "2026-12-24T20:00:00",
            "max_number": 10
        }
        payload.update(fields)
        response = client.post("/raffles", json=payload, headers=headers or owner_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


@pytest.fixture
def raffle(create_raffle):
    return create_raffle()


def buyer(number: int, name: str = "Ana", tax_id: str = "11111111111", phone: str = "11999999999") -> dict:
    return {
        "number": number,
        "buyer_name": name,
        "buyer_tax_id": tax_id,
        "buyer_phone": phone
    }


@pytest.fixture
def reserve(client):
    def _reserve(raffle_id: int, number: int, **buyer_fields) -> httpx.Response:
        return client.post(f"/tickets/{raffle_id}/pix", json=buyer(number, **buyer_fields))
    return _reserve
