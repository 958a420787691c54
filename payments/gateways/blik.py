"""BLIK payments through Przelewy24.

`BlikClient` is a thin `requests` wrapper around the P24 REST API (basic
auth with the POS id and API key). Every payload carries an md5 `sign` over
``merchantId|posId|sessionId|amount|currency|crc``; notifications are
checked against the same signature and then confirmed server-to-server
before a success is trusted.
"""

import hashlib
import hmac
import json
import logging

import requests
from common.money import to_minor_units
from django.conf import settings

from .base import (
    GatewayError,
    GatewayTransaction,
    InvalidSignature,
    PaymentGateway,
    PaymentNotification,
    PaymentOutcome,
    TransactionNotCancellable,
)

logger = logging.getLogger("storefront.payments")

SANDBOX_HOST = "https://sandbox.przelewy24.pl"
PRODUCTION_HOST = "https://secure.przelewy24.pl"
BLIK_METHOD_ID = 181
# P24 transaction status: 0 no payment, 1 advance payment, 2 completed, 3 returned
PAID_STATUSES = {1, 2}


class BlikClient:
    def __init__(
        self,
        *,
        merchant_id: str,
        pos_id: str,
        api_key: str,
        crc: str,
        sandbox: bool = True,
        timeout: float = 10.0,
    ):
        self.merchant_id = str(merchant_id)
        self.pos_id = str(pos_id)
        self.crc = crc
        self.sandbox = sandbox
        self.timeout = timeout
        self.session = requests.Session()
        self.session.auth = (self.pos_id, api_key)
        self.session.headers.update({"Content-Type": "application/json"})

    @property
    def host(self) -> str:
        return SANDBOX_HOST if self.sandbox else PRODUCTION_HOST

    @property
    def api_url(self) -> str:
        return f"{self.host}/api/v1"

    def sign(self, *, session_id: str, amount, currency: str) -> str:
        values = [self.merchant_id, self.pos_id, str(session_id), str(amount), str(currency), self.crc]
        return hashlib.md5("|".join(values).encode("utf-8")).hexdigest()

    def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            response = self.session.request(method, f"{self.api_url}{path}", timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return (response.json() or {}).get("data") or {}
        except (requests.RequestException, ValueError) as exc:
            raise GatewayError(f"Przelewy24 {method} {path} failed") from exc

    def register_transaction(
        self,
        *,
        session_id: str,
        amount: int,
        currency: str,
        description: str,
        email: str,
        url_return: str,
        url_status: str,
    ) -> str:
        """Register a BLIK transaction; returns the P24 token."""

        payload = {
            "merchantId": int(self.merchant_id),
            "posId": int(self.pos_id),
            "sessionId": str(session_id),
            "amount": int(amount),
            "currency": currency,
            "description": description,
            "email": email,
            "country": "PL",
            "language": "pl",
            "urlReturn": url_return,
            "urlStatus": url_status,
            "method": BLIK_METHOD_ID,
            "sign": self.sign(session_id=session_id, amount=amount, currency=currency),
        }
        data = self._request("POST", "/transaction/register", json=payload)
        token = data.get("token")
        if not token:
            raise GatewayError("Przelewy24 did not return a transaction token")
        return token

    def submit_blik_code(self, *, token: str, code: str) -> dict:
        """Charge a registered transaction with the shopper's 6-digit code."""

        return self._request("PUT", f"/transaction/by/token/{token}", json={"methodRefId": code})

    def verify_transaction(self, *, session_id: str, amount: int, currency: str, order_id: int) -> bool:
        """Confirm a notified payment with P24; False unless P24 reports success."""

        payload = {
            "merchantId": int(self.merchant_id),
            "posId": int(self.pos_id),
            "sessionId": str(session_id),
            "amount": int(amount),
            "currency": currency,
            "orderId": int(order_id),
            "sign": self.sign(session_id=session_id, amount=amount, currency=currency),
        }
        data = self._request("PUT", "/transaction/verify", json=payload)
        return data.get("status") == "success"

    def get_transaction_status(self, *, session_id: str) -> dict:
        """Look up a transaction by our session id; `status` follows P24 numbering."""

        return self._request("GET", f"/transaction/by/sessionId/{session_id}")


def client_from_settings() -> BlikClient:
    return BlikClient(
        merchant_id=settings.BLIK_MERCHANT_ID,
        pos_id=settings.BLIK_POS_ID,
        api_key=settings.BLIK_API_KEY,
        crc=settings.BLIK_CRC,
        sandbox=settings.BLIK_SANDBOX,
        timeout=settings.BLIK_TIMEOUT_SECONDS,
    )


class BlikGateway(PaymentGateway):
    name = "blik"
    NOTIFICATION_FIELDS = ("sessionId", "amount", "currency", "orderId", "statement", "sign")

    def __init__(self, client: BlikClient | None = None):
        self.client = client or client_from_settings()

    def register_transaction(self, order, **options) -> GatewayTransaction:
        frontend = settings.FRONTEND_URL.rstrip("/")
        backend = settings.BACKEND_URL.rstrip("/")
        token = self.client.register_transaction(
            session_id=str(order.id),
            amount=to_minor_units(order.total),
            currency=order.currency,
            description=f"Order {order.number}",
            email=order.customer_email,
            url_return=f"{frontend}/checkout/success?order_id={order.id}",
            url_status=f"{backend}/api/v1/payments/webhooks/blik/",
        )
        blik_code = options.get("blik_code")
        if blik_code:
            self.client.submit_blik_code(token=token, code=blik_code)
        return GatewayTransaction(
            reference=token,
            redirect_url=f"{self.client.host}/trnRequest/{token}",
            extra={"token": token, "requires_blik_code": not blik_code},
        )

    def submit_code(self, order, code: str) -> dict:
        if not order.gateway_reference:
            raise GatewayError("Order has no registered BLIK transaction")
        return self.client.submit_blik_code(token=order.gateway_reference, code=code)

    def cancel_transaction(self, order) -> None:
        # Unpaid BLIK transactions lapse on their own; only a completed payment blocks the cancel
        if not order.gateway_reference:
            return
        data = self.client.get_transaction_status(session_id=str(order.id))
        if int(data.get("status") or 0) in PAID_STATUSES:
            raise TransactionNotCancellable("BLIK payment already completed")

    def verify_notification(self, *, body: bytes, headers) -> PaymentNotification:
        try:
            data = json.loads(body or b"{}")
        except ValueError as exc:
            raise InvalidSignature("Malformed notification") from exc
        if not isinstance(data, dict) or any(data.get(name) in (None, "") for name in self.NOTIFICATION_FIELDS):
            raise InvalidSignature("Incomplete notification")

        expected = self.client.sign(session_id=data["sessionId"], amount=data["amount"], currency=data["currency"])
        if not hmac.compare_digest(expected, str(data["sign"])):
            raise InvalidSignature("Signature mismatch")

        session_id = str(data["sessionId"])
        statement = str(data["statement"]).lower()
        outcome = PaymentOutcome.IGNORED
        if statement == "success":
            confirmed = self.client.verify_transaction(
                session_id=session_id,
                amount=int(data["amount"]),
                currency=data["currency"],
                order_id=int(data["orderId"]),
            )
            if not confirmed:
                raise InvalidSignature("Transaction not confirmed by Przelewy24")
            outcome = PaymentOutcome.PAID
        elif statement == "failure":
            outcome = PaymentOutcome.FAILED

        return PaymentNotification(
            order_id=int(session_id) if session_id.isdigit() else None,
            outcome=outcome,
            amount_minor=int(data["amount"]),
            event=f"blik.{statement}",
        )
