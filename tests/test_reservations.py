"""Tests for reserving numbers with PIX, ticket lookup and receipts."""

from datetime import datetime
from decimal import Decimal
import asyncio

import httpx
import pytest

from rifaria.models.raffle import Raffle
from rifaria.models.ticket import PaymentStatus, Ticket
from rifaria.models.user import User
from rifaria.schemas.ticket import PixReservationRequest
from rifaria.services.reservation import ReservationService, generate_view_code, to_minor_units

from conftest import WEBHOOK_SECRET, buyer


def test_reserve_returns_charge_details(client, raffle, reserve, pix_api):
    response = reserve(raffle["id"], 3)

    assert response.status_code == 200
    body = response.json()
    assert body["charge_id"] == "pix_char_1"
    assert body["qrcode"].startswith("data:image/png;base64,")
    assert body["qrcode_text"].startswith("000201")
    assert body["amount"] == 5.0
    assert body["expires_at"] == "2026-10-19T12:20:00.000Z"
    assert len(body["view_code"]) == 12


def test_reserve_sends_amount_in_cents_and_view_code_as_external_id(client, raffle, reserve, pix_api):
    body = reserve(raffle["id"], 3).json()

    charge = pix_api.charges["pix_char_1"]
    assert charge["amount"] == 500
    assert charge["description"] == "Ticket 3 - Rifa da Moto"
    assert charge["metadata"] == {"externalId": body["view_code"]}
    assert charge["customer"]["taxId"] == "11111111111"
    assert charge["customer"]["email"] == "11111111111@bilhete.rifa"
    assert pix_api.customers[0]["cellphone"] == "11999999999"


def test_reserve_stores_pending_ticket(client, raffle, reserve, db):
    body = reserve(raffle["id"], 3).json()

    ticket = db.query(Ticket).filter(Ticket.view_code == body["view_code"]).one()
    assert ticket.payment_status == PaymentStatus.PENDING
    assert ticket.gateway_charge_id == "pix_char_1"
    assert ticket.amount_paid == Decimal("5.00")
    assert ticket.buyer_name == "Ana"


def test_purchase_then_webhook_then_view_shows_paid(client, raffle, reserve):
    reservation = reserve(raffle["id"], 3).json()

    webhook = client.post(
        "/payments/webhook",
        json={"status": "PAID", "pixId": reservation["charge_id"]},
        headers={"x-webhook-signature": WEBHOOK_SECRET}
    )
    assert webhook.status_code == 200
    assert webhook.json() == {"message": "Payment confirmed"}

    view = client.get(f"/payments/ticket/{reservation['view_code']}")
    assert view.status_code == 200
    assert view.json()["ticket"]["payment_status"] == "PAID"
    assert view.json()["ticket"]["number"] == 3
    assert view.json()["raffle"]["title"] == "Rifa da Moto"


def test_duplicate_number_conflicts_and_keeps_first_buyer(client, raffle, reserve, pix_api, db):
    first = reserve(raffle["id"], 7, name="Ana")
    second = reserve(raffle["id"], 7, name="Bruno", tax_id="22222222222")

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json() == {"error": "Number already reserved"}
    assert pix_api.calls_to("/pixQrCode/create") == 1

    tickets = db.query(Ticket).filter(Ticket.number == 7).all()
    assert len(tickets) == 1
    assert tickets[0].buyer_name == "Ana"


def test_number_out_of_range(client, raffle, reserve, pix_api):
    low = reserve(raffle["id"], 0)
    high = reserve(raffle["id"], 11)

    assert low.status_code == 400
    assert high.status_code == 400
    assert high.json() == {"error": "Number must be between 1 and 10"}
    assert pix_api.calls == []


def test_reserve_on_unknown_raffle(client, reserve, pix_api):
    response = reserve(9999, 1)

    assert response.status_code == 404
    assert pix_api.calls == []


def test_reserve_requires_buyer_fields(client, raffle):
    response = client.post(f"/tickets/{raffle['id']}/pix", json={"number": 1, "buyer_name": "Ana"})

    assert response.status_code == 400


@pytest.mark.parametrize("failing_endpoint", ["/customer/create", "/pixQrCode/create"])
def test_gateway_failure_frees_the_number(client, raffle, reserve, pix_api, db, failing_endpoint):
    pix_api.fail_on.add(failing_endpoint)

    response = reserve(raffle["id"], 4)

    assert response.status_code == 500
    assert "error" in response.json()
    assert db.query(Ticket).count() == 0

    pix_api.fail_on.clear()
    retry = reserve(raffle["id"], 4)
    assert retry.status_code == 200


def test_unreachable_gateway_frees_the_number(client, raffle, reserve, pix_gateway, db):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    pix_gateway.transport = httpx.MockTransport(refuse)

    response = reserve(raffle["id"], 4)

    assert response.status_code == 500
    assert response.json() == {"error": "Payment gateway unavailable"}
    assert db.query(Ticket).count() == 0


def test_status_poll_upgrades_to_paid(client, raffle, reserve, pix_api, db):
    reservation = reserve(raffle["id"], 3).json()

    pending = client.get(f"/payments/status/{reservation['charge_id']}")
    assert pending.json()["status"] == "PENDING"
    assert pending.json()["expires_at"] == "2026-10-19T12:20:00.000Z"

    pix_api.set_status(reservation["charge_id"], "PAID")
    paid = client.get(f"/payments/status/{reservation['charge_id']}")
    assert paid.json()["status"] == "PAID"

    ticket = db.query(Ticket).filter(Ticket.view_code == reservation["view_code"]).one()
    assert ticket.payment_status == PaymentStatus.PAID


def test_status_poll_never_downgrades_paid_ticket(client, raffle, reserve, pix_api):
    reservation = reserve(raffle["id"], 3).json()
    client.post(
        "/payments/webhook",
        json={"status": "PAID", "pixId": reservation["charge_id"]},
        headers={"x-webhook-signature": WEBHOOK_SECRET}
    )
    pix_api.set_status(reservation["charge_id"], "EXPIRED")
    checks_before = pix_api.calls_to("/pixQrCode/check")

    response = client.get(f"/payments/status/{reservation['charge_id']}")

    assert response.json()["status"] == "PAID"
    assert pix_api.calls_to("/pixQrCode/check") == checks_before
    view = client.get(f"/payments/ticket/{reservation['view_code']}").json()
    assert view["ticket"]["payment_status"] == "PAID"


def test_status_of_unknown_charge(client):
    response = client.get("/payments/status/pix_char_404")

    assert response.status_code == 404
    assert response.json() == {"error": "Ticket not found"}


def test_view_refreshes_pending_ticket(client, raffle, reserve, pix_api):
    reservation = reserve(raffle["id"], 3).json()
    pix_api.set_status(reservation["charge_id"], "PAID")

    view = client.get(f"/payments/ticket/{reservation['view_code']}")

    assert view.json()["ticket"]["payment_status"] == "PAID"


def test_view_survives_gateway_outage(client, raffle, reserve, pix_api):
    reservation = reserve(raffle["id"], 3).json()
    pix_api.fail_on.add("/pixQrCode/check")

    view = client.get(f"/payments/ticket/{reservation['view_code']}")

    assert view.status_code == 200
    assert view.json()["ticket"]["payment_status"] == "PENDING"


def test_view_hides_tax_id(client, raffle, reserve):
    reservation = reserve(raffle["id"], 3).json()

    ticket = client.get(f"/payments/ticket/{reservation['view_code']}").json()["ticket"]

    assert "buyer_tax_id" not in ticket
    assert ticket["buyer_name"] == "Ana"
    assert ticket["buyer_phone"] == "11999999999"


def test_view_unknown_code(client):
    response = client.get("/payments/ticket/NOPE")

    assert response.status_code == 404


def test_receipt_renders_ticket(client, raffle, reserve):
    reservation = reserve(raffle["id"], 3).json()

    response = client.get(f"/payments/receipt/{reservation['view_code']}")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert "Rifa da Moto" in response.text
    assert reservation["view_code"] in response.text
    assert "R$ 5,00" in response.text
    assert "PENDENTE" in response.text


def test_receipt_shows_paid(client, raffle, reserve):
    reservation = reserve(raffle["id"], 3).json()
    client.post(
        "/payments/webhook",
        json={"status": "PAID", "pixId": reservation["charge_id"]},
        headers={"x-webhook-signature": WEBHOOK_SECRET}
    )

    response = client.get(f"/payments/receipt/{reservation['view_code']}")

    assert "PAGO" in response.text
    assert "PENDENTE" not in response.text


def test_receipt_unknown_code(client):
    response = client.get("/payments/receipt/NOPE")

    assert response.status_code == 404
    assert response.text == "Ticket not found"


@pytest.mark.parametrize("amount, cents", [
    (Decimal("5.00"), 500),
    (Decimal("10.005"), 1001),
    ("0.1", 10),
    (19.99, 1999),
    (0, 0),
])
def test_to_minor_units(amount, cents):
    assert to_minor_units(amount) == cents


def test_view_codes_are_unique_hex():
    codes = {generate_view_code() for _ in range(200)}

    assert len(codes) == 200
    assert all(len(code) == 12 and code == code.upper() for code in codes)


class CancelledPixGateway:
    """Gateway whose charge call is interrupted, as when the client disconnects."""

    async def create_customer(self, customer):
        return "cust_1"

    async def create_charge(self, **kwargs):
        raise asyncio.CancelledError()


@pytest.mark.asyncio
async def test_cancelled_reservation_frees_the_number(db):
    owner = User(email="owner@rifaria.com.br", hashed_password="x")
    db.add(owner)
    db.commit()
    stored = Raffle(
        owner_id=owner.id,
        title="Rifa",
        ticket_price=5,
        draw_date=datetime(2026, 12, 24, 20, 0),
        max_number=10
    )
    db.add(stored)
    db.commit()

    request = PixReservationRequest(**buyer(4))
    with pytest.raises(asyncio.CancelledError):
        await ReservationService.reserve_pix(db, stored.id, request, CancelledPixGateway())

    assert db.query(Ticket).count() == 0
