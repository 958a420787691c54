"""Payment endpoints: gateway webhooks and BLIK code entry.

Webhooks are unauthenticated; trust comes only from the gateway's signature
check. Every verified notification is acknowledged with 200, including
duplicates and events the store does not act on, so gateways stop retrying.
"""

import logging

from common.choices import PaymentMethod
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from orders.models import Order
from orders.selectors import get_order_for_requester
from orders.serializers import BlikCodeSerializer
from orders.services import AlreadySettled, OrderAccessDenied, PaymentMismatch, settle_payment
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .gateways.base import GatewayError, InvalidSignature, PaymentOutcome, UnknownGateway
from .registry import get_gateway

logger = logging.getLogger("storefront.payments")

WebhookAck = inline_serializer(
    name="WebhookAck",
    fields={
        "received": rf_serializers.BooleanField(),
        "duplicate": rf_serializers.BooleanField(required=False),
        "ignored": rf_serializers.BooleanField(required=False),
    },
)
PaymentError = inline_serializer(name="PaymentError", fields={"detail": rf_serializers.CharField()})


class PaymentWebhookView(APIView):
    """Receive Stripe and Przelewy24 (BLIK) payment notifications."""

    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_classes = []

    @extend_schema(
        tags=["Payments"],
        summary="Payment webhook",
        description=(
            "Verifies the notification signature, then settles the order exactly once: paid commits the "
            "reserved stock, failed or expired releases it. Duplicates are acknowledged without effect."
        ),
        request=None,
        responses={200: WebhookAck, 400: PaymentError, 404: PaymentError, 502: PaymentError},
        examples=[
            OpenApiExample("Processed", value={"received": True}, response_only=True),
            OpenApiExample("Duplicate", value={"received": True, "duplicate": True}, response_only=True),
            OpenApiExample("Bad signature", value={"detail": "Invalid signature"}, response_only=True),
        ],
    )
    def post(self, request, gateway: str):
        try:
            gw = get_gateway(gateway)
        except UnknownGateway:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)

        try:
            notification = gw.verify_notification(body=request.body, headers=request.headers)
        except InvalidSignature as exc:
            logger.warning(
                "payments.webhook_rejected",
                extra={"event": "payments.webhook_rejected", "gateway": gw.name, "reason": str(exc)},
            )
            return Response({"detail": "Invalid signature"}, status=status.HTTP_400_BAD_REQUEST)
        except GatewayError:
            logger.exception("payments.webhook_gateway_error", extra={"event": "payments.webhook_gateway_error"})
            return Response({"detail": "Payment provider unavailable."}, status=status.HTTP_502_BAD_GATEWAY)

        if notification.outcome == PaymentOutcome.IGNORED or notification.order_id is None:
            logger.info(
                "payments.webhook_ignored",
                extra={"event": "payments.webhook_ignored", "gateway": gw.name, "type": notification.event},
            )
            return Response({"received": True, "ignored": True})

        try:
            settle_payment(
                order_id=notification.order_id,
                outcome=notification.outcome,
                gateway_reference=notification.reference,
                amount_minor=notification.amount_minor,
                gateway=gw.name,
            )
        except Order.DoesNotExist:
            return Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)
        except AlreadySettled as exc:
            # Money arriving for an order that already failed needs a manual refund
            late_success = (
                notification.outcome == PaymentOutcome.PAID and exc.order.payment_status == Order.PAYMENT_FAILED
            )
            logger.log(
                logging.WARNING if late_success else logging.INFO,
                "payments.webhook_duplicate",
                extra={
                    "event": "payments.webhook_duplicate",
                    "gateway": gw.name,
                    "order_id": notification.order_id,
                    "outcome": notification.outcome,
                    "payment_status": str(exc.order.payment_status),
                },
            )
            return Response({"received": True, "duplicate": True})
        except PaymentMismatch as exc:
            logger.warning(
                "payments.webhook_mismatch",
                extra={"event": "payments.webhook_mismatch", "order_id": notification.order_id, "reason": str(exc)},
            )
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"received": True})


class BlikCodeView(APIView):
    """Submit the shopper's 6-digit BLIK code for a pending BLIK order."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    @extend_schema(
        tags=["Payments"],
        summary="Submit BLIK code",
        description="The outcome arrives later through the BLIK webhook; poll the order for its payment status.",
        parameters=[
            OpenApiParameter(
                name="X-Session-Id",
                location=OpenApiParameter.HEADER,
                required=False,
                description="Guest session that placed the order",
                type=str,
            )
        ],
        request=BlikCodeSerializer,
        responses={202: inline_serializer(name="BlikSubmitted", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Code", value={"code": "777123"}, request_only=True)],
    )
    def post(self, request, order_id: int):
        ser = BlikCodeSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        session_id = request.headers.get("X-Session-Id") or ser.validated_data.get("session_id")
        try:
            order = get_order_for_requester(order_id=order_id, user=request.user, session_id=session_id)
        except OrderAccessDenied:
            return Response({"detail": "Not authorized to access this order."}, status=status.HTTP_403_FORBIDDEN)
        if order.payment_method != PaymentMethod.BLIK or order.payment_status != Order.PAYMENT_PENDING:
            return Response({"detail": "Order is not awaiting a BLIK payment."}, status=status.HTTP_400_BAD_REQUEST)
        try:
            get_gateway(PaymentMethod.BLIK).submit_code(order, ser.validated_data["code"])
        except GatewayError:
            logger.exception(
                "payments.blik_code_failed", extra={"event": "payments.blik_code_failed", "order_id": order.id}
            )
            return Response({"detail": "BLIK payment could not be started."}, status=status.HTTP_502_BAD_GATEWAY)
        return Response({"status": "submitted"}, status=status.HTTP_202_ACCEPTED)
