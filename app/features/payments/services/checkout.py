"""
LiqPay checkout requests.

The gateway receives `data` (base64 of the JSON parameters) and
`signature` = base64(sha1(private_key + data + private_key)). The same scheme
signs the notifications LiqPay posts back to the webhook.
"""
import base64
import hashlib
import hmac
import json
from decimal import Decimal
from typing import Any, Dict, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel

from app.features.payments.services.ledger import OrderIntent
from app.platform.config import settings


def encode_uri_component(value: str) -> str:
    # same reserved set as JavaScript's encodeURIComponent
    return quote(value, safe="!'()*")


def render_amount(amount: Union[Decimal, float, int]) -> Union[int, float]:
    """Whole amounts go out as JSON integers (150, not 150.0)."""
    value = Decimal(str(amount))
    if value == value.to_integral_value():
        return int(value)
    return float(value)


class LiqPayCredentials:
    def __init__(
        self,
        public_key: str,
        private_key: str,
        checkout_url: str = "https://www.liqpay.ua/api/3/checkout",
        sandbox: bool = True,
    ):
        self.public_key = public_key
        self.private_key = private_key
        self.checkout_url = checkout_url
        self.sandbox = sandbox

    @classmethod
    def from_settings(cls) -> "LiqPayCredentials":
        return cls(
            public_key=settings.LIQPAY_PUBLIC_KEY,
            private_key=settings.LIQPAY_PRIVATE_KEY,
            checkout_url=settings.LIQPAY_CHECKOUT_URL,
            sandbox=settings.LIQPAY_SANDBOX,
        )


class CheckoutRequest(BaseModel):
    redirect_url: str
    order_id: str
    data: str
    signature: str


class CheckoutBuilder:
    def __init__(
        self,
        credentials: LiqPayCredentials,
        frontend_url: Optional[str] = None,
        server_url: Optional[str] = None,
    ):
        self.credentials = credentials
        self.frontend_url = (frontend_url or settings.FRONTEND_URL).rstrip("/")
        self.server_url = server_url or (
            f"{settings.BACKEND_URL.rstrip('/')}{settings.API_V1_PREFIX}/payments/webhook"
        )

    def params(self, intent: OrderIntent) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "version": "3",
            "action": "pay",
            "amount": render_amount(intent.amount),
            "currency": intent.currency,
            "description": intent.description,
            "order_id": intent.order_id,
        }
        if self.credentials.sandbox:
            params["sandbox"] = 1
        params["result_url"] = f"{self.frontend_url}/payment/success?email={encode_uri_component(intent.email)}"
        params["server_url"] = self.server_url
        params["public_key"] = self.credentials.public_key
        return params

    @staticmethod
    def encode(params: Dict[str, Any]) -> str:
        payload = json.dumps(params, separators=(",", ":"), ensure_ascii=False)
        return base64.b64encode(payload.encode("utf-8")).decode("ascii")

    def sign(self, data: str) -> str:
        private_key = self.credentials.private_key
        digest = hashlib.sha1(f"{private_key}{data}{private_key}".encode("utf-8")).digest()
        return base64.b64encode(digest).decode("ascii")

    def build(self, intent: OrderIntent) -> CheckoutRequest:
        """Pure construction of the hosted-checkout redirect; no network call."""
        data = self.encode(self.params(intent))
        signature = self.sign(data)
        return CheckoutRequest(
            redirect_url=f"{self.credentials.checkout_url}?data={data}&signature={signature}",
            order_id=intent.order_id,
            data=data,
            signature=signature,
        )

    def verify_signature(self, data: str, signature: str) -> bool:
        return hmac.compare_digest(self.sign(data).encode("ascii"), signature.encode("utf-8"))

    @staticmethod
    def decode_payload(data: str) -> Dict[str, Any]:
        """Decode a base64 JSON notification body. Raises ValueError when malformed."""
        try:
            decoded = json.loads(base64.b64decode(data, validate=True).decode("utf-8"))
        except (ValueError, UnicodeDecodeError) as e:
            raise ValueError(f"Malformed payment notification: {e}") from e
        if not isinstance(decoded, dict):
            raise ValueError("Malformed payment notification: expected an object")
        return decoded
