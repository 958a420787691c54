"""Stripe Checkout gateway.

Orders are paid through a hosted Checkout Session carrying the order id in
its metadata; the webhook is authenticated with the endpoint's signing
secret before any event is trusted.
"""

import json
import logging

import stripe
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

PAID_EVENTS = {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
FAILED_EVENTS = {"checkout.session.expired", "checkout.session.async_payment_failed"}


class StripeGateway(PaymentGateway):
    name = "stripe"

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key if api_key is not None else settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET

    def _line_items(self, order) -> list[dict]:
        return [
            {
                "price_data": {
                    "currency": order.currency.lower(),
                    "product_data": {
                        "name": item.product_name,
                        "metadata": {"product_id": str(item.product_id), "sku": item.sku},
                    },
                    "unit_amount": to_minor_units(item.unit_price),
                },
                "quantity": int(item.quantity),
            }
            for item in order.items.all()
        ]

    def register_transaction(self, order, **options) -> GatewayTransaction:
        frontend = settings.FRONTEND_URL.rstrip("/")
        try:
            session = stripe.checkout.Session.create(
                api_key=self.api_key,
                mode="payment",
                payment_method_types=["card"],
                line_items=self._line_items(order),
                customer_email=order.customer_email or None,
                client_reference_id=str(order.id),
                metadata={"order_id": str(order.id), "order_number": order.number or ""},
                success_url=f"{frontend}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{frontend}/checkout?cancelled=1",
            )
        except stripe.StripeError as exc:
            logger.error(
                "payments.register_failed",
                extra={"event": "payments.register_failed", "gateway": self.name, "order_id": order.id},
            )
            raise GatewayError("Stripe session could not be created") from exc
        return GatewayTransaction(reference=session.id, redirect_url=session.url, extra={"session_id": session.id})

    def cancel_transaction(self, order) -> None:
        if not order.gateway_reference:
            return
        try:
            stripe.checkout.Session.expire(order.gateway_reference, api_key=self.api_key)
        except stripe.InvalidRequestError as exc:
            # Sessions that are already complete cannot be expired
            raise TransactionNotCancellable("Stripe session can no longer be expired") from exc
        except stripe.StripeError as exc:
            logger.error(
                "payments.cancel_failed",
                extra={"event": "payments.cancel_failed", "gateway": self.name, "order_id": order.id},
            )
            raise GatewayError("Stripe session could not be expired") from exc

    def verify_notification(self, *, body: bytes, headers) -> PaymentNotification:
        signature = headers.get("Stripe-Signature")
        if not signature:
            raise InvalidSignature("Missing Stripe-Signature header")
        try:
            stripe.Webhook.construct_event(body, signature, self.webhook_secret)
        except (stripe.SignatureVerificationError, ValueError) as exc:
            raise InvalidSignature(str(exc)) from exc

        event = json.loads(body)
        event_type = event.get("type", "")
        obj = (event.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}
        raw_order_id = metadata.get("order_id") or obj.get("client_reference_id")

        outcome = PaymentOutcome.IGNORED
        if event_type in PAID_EVENTS:
            # Delayed methods complete with payment_status "unpaid" and settle later
            completed = event_type == "checkout.session.completed"
            if not completed or obj.get("payment_status") in ("paid", "no_payment_required"):
                outcome = PaymentOutcome.PAID
        elif event_type in FAILED_EVENTS:
            outcome = PaymentOutcome.FAILED

        return PaymentNotification(
            order_id=int(raw_order_id) if raw_order_id and str(raw_order_id).isdigit() else None,
            outcome=outcome,
            reference=obj.get("id"),
            amount_minor=obj.get("amount_total"),
            event=event_type,
        )
