from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging
import httpx

from rifaria.config import get_settings
from rifaria.exceptions import PaymentGatewayError

settings = get_settings()
logger = logging.getLogger(__name__)


@dataclass
class PixCustomer:
    name: str
    cellphone: str
    tax_id: str

    @property
    def email(self) -> str:
        # The gateway wants an e-mail; buyers only give us a tax id.
        return f"{self.tax_id}@{settings.pix_customer_email_domain}"

    def as_payload(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "cellphone": self.cellphone,
            "email": self.email,
            "taxId": self.tax_id
        }


@dataclass
class PixCharge:
    id: str
    status: str
    amount: Optional[int] = None
    br_code: Optional[str] = None
    br_code_base64: Optional[str] = None
    expires_at: Optional[str] = None


class PixGateway:
    """Thin client for the AbacatePay PIX API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    async def _call(
        self,
        method: str,
        endpoint: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        logger.info(f"PIX gateway call: {method} {endpoint}")
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                transport=self.transport
            ) as client:
                response = await client.request(method, endpoint, json=json, params=params)
        except httpx.HTTPError as e:
            logger.error(f"PIX gateway unreachable on {endpoint}: {e}")
            raise PaymentGatewayError("Payment gateway unavailable")

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.is_error or not isinstance(body, dict):
            logger.error(f"PIX gateway {endpoint} answered {response.status_code}: {response.text[:500]}")
            raise PaymentGatewayError(f"Payment gateway rejected the request ({response.status_code})")

        if body.get("error"):
            logger.error(f"PIX gateway {endpoint} error: {body['error']}")
            raise PaymentGatewayError(f"Payment gateway error: {body['error']}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise PaymentGatewayError("Invalid response from payment gateway")
        return data

    async def create_customer(self, customer: PixCustomer) -> str:
        data = await self._call("POST", "/customer/create", json=customer.as_payload())
        if not data.get("id"):
            raise PaymentGatewayError("Invalid response from payment gateway while creating customer")
        return data["id"]

    async def create_charge(
        self,
        amount: int,
        description: str,
        customer: PixCustomer,
        external_id: str,
        expires_in: int
    ) -> PixCharge:
        """Create a one-time PIX QR code charge. `amount` is in cents."""
        data = await self._call("POST", "/pixQrCode/create", json={
            "amount": amount,
            "expiresIn": expires_in,
            "description": description,
            "customer": customer.as_payload(),
            "metadata": {"externalId": external_id}
        })
        if not data.get("id"):
            raise PaymentGatewayError("Invalid response from payment gateway while creating charge")

        return PixCharge(
            id=data["id"],
            status=data.get("status", "PENDING"),
            amount=data.get("amount", amount),
            br_code=data.get("brCode"),
            br_code_base64=data.get("brCodeBase64"),
            expires_at=data.get("expiresAt")
        )

    async def check_charge(self, charge_id: str) -> PixCharge:
        data = await self._call("GET", "/pixQrCode/check", params={"id": charge_id})
        if not data.get("status"):
            raise PaymentGatewayError("Invalid response from payment gateway while checking status")
        return PixCharge(
            id=charge_id,
            status=data["status"],
            expires_at=data.get("expiresAt")
        )


def get_pix_gateway() -> PixGateway:
    return PixGateway(
        base_url=settings.pix_api_url,
        api_key=settings.pix_api_key,
        timeout=settings.gateway_timeout_seconds
    )
