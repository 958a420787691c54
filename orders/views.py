"""Orders API endpoints: checkout, order history, cancellation, refunds.

Guest orders are addressed by the `X-Session-Id` header of the session that
placed them; signed-in customers see their own orders.
"""

import logging

from cart.views import SESSION_HEADER, stock_error_response
from cart.services import ProductUnavailable
from django_filters import rest_framework as filters
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from inventory.services import InsufficientStock
from payments.gateways.base import GatewayError, TransactionNotCancellable, UnknownGateway
from rest_framework import generics
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.pagination import PageNumberPagination
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors
from .filters import AdminOrderFilterSet
from .models import RefundRequest
from .serializers import (
    AnalyticsQuerySerializer,
    CheckoutSerializer,
    OrderSerializer,
    OrderStatusUpdateSerializer,
    RefundDecisionSerializer,
    RefundRequestSerializer,
    SalesSummarySerializer,
)
from .services import (
    EmptyCart,
    InvalidTransition,
    OrderAccessDenied,
    RefundError,
    advance_fulfillment,
    approve_refund,
    cancel_order,
    compute_request_hash,
    place_order,
    reject_refund,
    request_refund,
    with_idempotency,
)

logger = logging.getLogger("storefront.orders")

IDEMPOTENCY_HEADER = OpenApiParameter(
    name="Idempotency-Key",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Makes the request idempotent within scope+path+method",
    type=str,
)

CheckoutResponse = inline_serializer(
    name="CheckoutResponse",
    fields={
        "order_id": rf_serializers.IntegerField(),
        "order_number": rf_serializers.CharField(),
        "payment_method": rf_serializers.CharField(),
        "redirect_url": rf_serializers.CharField(),
        "session_id": rf_serializers.CharField(required=False),
        "token": rf_serializers.CharField(required=False),
        "requires_blik_code": rf_serializers.BooleanField(),
    },
)
ErrorResponse = inline_serializer(name="OrderError", fields={"detail": rf_serializers.CharField()})

FORBIDDEN = {"detail": "Not authorized to access this order."}


def idempotency_scope(request, session_id: str = "") -> str:
    user = getattr(request, "user", None)
    if getattr(user, "is_authenticated", False):
        return f"user:{user.id}"
    return f"session:{session_id or request.headers.get('X-Session-Id') or ''}"


def run_idempotent(request, handler, *, session_id: str = ""):
    """Run `handler` behind the Idempotency-Key header when one is sent."""

    idem_key = request.headers.get("Idempotency-Key")
    if not idem_key:
        body, code = handler()
        return Response(body, status=code)
    body, code = with_idempotency(
        key=idem_key,
        scope=idempotency_scope(request, session_id),
        user=getattr(request, "user", None),
        path=str(request.path),
        method=str(request.method),
        request_hash=compute_request_hash(getattr(request, "data", None)),
        handler=handler,
    )
    return Response(body, status=code)


class DefaultPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "page_size"


class CheckoutView(APIView):
    """Turn the session cart into an order and start its payment."""

    permission_classes = [AllowAny]
    throttle_scope = "checkout"

    @extend_schema(
        tags=["Checkout"],
        summary="Checkout",
        description=(
            "Creates an order from the session cart, keeping its reserved stock, and registers the payment "
            "with Stripe Checkout or BLIK. Redirect the shopper to `redirect_url`; for BLIK without a code, "
            "submit it to `payments/blik/<order_id>/code/`. Idempotent when Idempotency-Key header is set."
        ),
        parameters=[SESSION_HEADER, IDEMPOTENCY_HEADER],
        request=CheckoutSerializer,
        responses={201: CheckoutResponse, 400: ErrorResponse, 502: ErrorResponse},
        examples=[
            OpenApiExample(
                "Stripe checkout",
                value={
                    "order_id": 42,
                    "order_number": "ORD-000042",
                    "payment_method": "stripe",
                    "redirect_url": "https://checkout.stripe.com/c/pay/cs_test_123",
                    "session_id": "cs_test_123",
                    "requires_blik_code": False,
                },
                response_only=True,
            ),
            OpenApiExample(
                "Insufficient stock",
                value={"detail": "Insufficient stock", "available_quantity": 1, "product_id": 7},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        payload = request.data.copy()
        if not payload.get("session_id"):
            payload["session_id"] = request.headers.get("X-Session-Id")
        ser = CheckoutSerializer(data=payload)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        def _handler():
            try:
                result = place_order(
                    session_id=data["session_id"],
                    payment_method=data.get("payment_method"),
                    blik_code=data.get("blik_code") or None,
                    customer_email=data["email"],
                    customer_name=data.get("name", ""),
                    shipping_address=dict(data["shipping_address"]),
                    billing_address=dict(data["billing_address"]) if data.get("billing_address") else None,
                    user=request.user,
                )
            except EmptyCart:
                return {"detail": "Cart is empty"}, 400
            except (InsufficientStock, ProductUnavailable) as exc:
                response = stock_error_response(exc)
                return response.data, response.status_code
            except UnknownGateway:
                return {"detail": "Unsupported payment method"}, 400
            except GatewayError:
                logger.exception("checkout.gateway_failed", extra={"event": "checkout.gateway_failed"})
                return {"detail": "Payment provider unavailable. Please try again."}, 502
            order, txn = result.order, result.transaction
            body = {
                "order_id": order.id,
                "order_number": order.number,
                "payment_method": order.payment_method,
                "redirect_url": txn.redirect_url,
                "requires_blik_code": False,
            }
            body.update(txn.extra)
            return body, 201

        return run_idempotent(request, _handler, session_id=data["session_id"])


class OrderListView(generics.ListAPIView):
    """List the authenticated customer's orders.

    Filters:
    - `status`: one of the OrderStatus values
    - `number`: exact match of order number
    """

    permission_classes = [IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    throttle_scope = "orders"

    def get_queryset(self):
        return selectors.list_orders_for_user(
            user=self.request.user,
            status=self.request.query_params.get("status"),
            number=self.request.query_params.get("number"),
        )

    @extend_schema(
        tags=["Orders"],
        summary="List orders",
        description="List current user's orders with optional filters and pagination.",
        parameters=[
            OpenApiParameter(name="status", description="Order status filter", required=False, type=str),
            OpenApiParameter(name="number", description="Order number exact match", required=False, type=str),
            OpenApiParameter(name="page", description="Page number", required=False, type=int),
            OpenApiParameter(name="page_size", description="Items per page", required=False, type=int),
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class OrderDetailView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Orders"],
        summary="Get order detail",
        description="Owner, placing guest session (`X-Session-Id`) or staff only; others receive 403.",
        parameters=[SESSION_HEADER],
        responses={200: OrderSerializer, 403: ErrorResponse, 404: ErrorResponse},
    )
    def get(self, request, order_id: int):
        try:
            order = selectors.get_order_for_requester(
                order_id=order_id, user=request.user, session_id=request.headers.get("X-Session-Id")
            )
        except OrderAccessDenied:
            return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)
        return Response(OrderSerializer(order).data)


class OrderCancelView(APIView):
    """Cancel an unpaid order, returning its reserved stock.

    Idempotent when `Idempotency-Key` is provided. Returns 409 on key reuse with different payload.
    """

    permission_classes = [AllowAny]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Orders"],
        summary="Cancel order",
        description="Cancels the order while its payment is pending. Idempotent when Idempotency-Key header is set.",
        parameters=[SESSION_HEADER, IDEMPOTENCY_HEADER],
        request=None,
        responses={
            200: OrderSerializer,
            400: ErrorResponse,
            403: ErrorResponse,
            409: ErrorResponse,
            502: ErrorResponse,
        },
        examples=[
            OpenApiExample("Mutation Error", value={"detail": "Unable to update order."}, response_only=True),
        ],
    )
    def post(self, request, order_id: int):
        session_id = request.headers.get("X-Session-Id") or ""
        try:
            order = selectors.get_order_for_requester(order_id=order_id, user=request.user, session_id=session_id)
        except OrderAccessDenied:
            return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)

        def _handler():
            try:
                updated = cancel_order(order)
            except InvalidTransition:
                return {"detail": "Unable to update order."}, 400
            except TransactionNotCancellable:
                return {"detail": "Payment already completed; the order can no longer be cancelled."}, 409
            except GatewayError:
                logger.exception("orders.cancel_gateway_error", extra={"event": "orders.cancel_gateway_error"})
                return {"detail": "Payment provider unavailable. Please try again."}, 502
            return OrderSerializer(updated).data, 200

        return run_idempotent(request, _handler, session_id=session_id)


class RefundRequestListCreateView(generics.ListCreateAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = RefundRequestSerializer
    pagination_class = DefaultPagination

    def get_throttles(self):
        self.throttle_scope = "orders_write" if self.request.method == "POST" else "orders"
        return super().get_throttles()

    def get_queryset(self):
        return selectors.list_refunds_for_user(user=self.request.user)

    @extend_schema(tags=["Refunds"], summary="List my refund requests")
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Refunds"],
        summary="Request a refund",
        description="Paid orders only. `amount` defaults to the order total and may not exceed it.",
        responses={201: RefundRequestSerializer, 400: ErrorResponse, 403: ErrorResponse},
        examples=[
            OpenApiExample("Request", value={"order": 42, "reason": "Arrived damaged"}, request_only=True),
            OpenApiExample(
                "Refund Error", value={"detail": "Refund request already exists for this order"}, response_only=True
            ),
        ],
    )
    def post(self, request, *args, **kwargs):
        ser = self.get_serializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            refund = request_refund(
                order=ser.validated_data["order"],
                user=request.user,
                reason=ser.validated_data["reason"],
                amount=ser.validated_data.get("amount"),
            )
        except OrderAccessDenied:
            return Response(FORBIDDEN, status=status.HTTP_403_FORBIDDEN)
        except RefundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(RefundRequestSerializer(refund).data, status=status.HTTP_201_CREATED)


class AdminOrderListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    serializer_class = OrderSerializer
    pagination_class = DefaultPagination
    throttle_scope = "orders"
    filter_backends = [filters.DjangoFilterBackend]
    filterset_class = AdminOrderFilterSet

    def get_queryset(self):
        return selectors.list_orders_for_admin()

    @extend_schema(
        tags=["Admin Orders"],
        summary="List all orders",
        description="Filter by `status`, `payment_status`, `payment_method`, `number`, `email`, `start`, `end`.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class AdminOrderStatusView(APIView):
    """Advance fulfillment of a paid order: processing -> shipped -> delivered."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"

    @extend_schema(
        tags=["Admin Orders"],
        summary="Update fulfillment status",
        request=OrderStatusUpdateSerializer,
        responses={200: OrderSerializer, 400: ErrorResponse, 404: ErrorResponse},
        examples=[OpenApiExample("Ship", value={"status": "shipped"}, request_only=True)],
    )
    def post(self, request, order_id: int):
        order = selectors.get_order_for_requester(order_id=order_id, user=request.user)
        ser = OrderStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            order = advance_fulfillment(order, ser.validated_data["status"])
        except InvalidTransition as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(OrderSerializer(order).data)


class AdminRefundListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    serializer_class = RefundRequestSerializer
    pagination_class = DefaultPagination
    throttle_scope = "orders"

    def get_queryset(self):
        qs = RefundRequest.objects.select_related("order").order_by("-created_at", "-id")
        status_param = self.request.query_params.get("status")
        if status_param:
            qs = qs.filter(status=status_param)
        return qs

    @extend_schema(
        tags=["Admin Orders"],
        summary="List refund requests",
        parameters=[OpenApiParameter(name="status", description="Refund status", required=False, type=str)],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)


class AdminRefundDecisionView(APIView):
    """Approve or reject a pending refund request."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders_write"
    decision = "approve"

    @extend_schema(
        tags=["Admin Orders"],
        summary="Decide refund request",
        request=RefundDecisionSerializer,
        responses={200: RefundRequestSerializer, 400: ErrorResponse, 404: ErrorResponse},
    )
    def post(self, request, refund_id: int):
        refund = generics.get_object_or_404(RefundRequest.objects.select_related("order"), pk=refund_id)
        ser = RefundDecisionSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        action = approve_refund if self.decision == "approve" else reject_refund
        try:
            refund = action(refund, note=ser.validated_data["note"])
        except RefundError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(RefundRequestSerializer(refund).data)


class AdminAnalyticsView(APIView):
    """Sales overview for staff: revenue, order count, best sellers and top customers."""

    permission_classes = [IsAdminUser]
    throttle_scope = "orders"

    @extend_schema(
        tags=["Admin Orders"],
        summary="Sales analytics",
        description="Only paid orders count. `period` is the trailing window in days (1-365, default 30).",
        parameters=[OpenApiParameter(name="period", description="Window in days", required=False, type=int)],
        responses={200: SalesSummarySerializer, 400: ErrorResponse},
    )
    def get(self, request):
        query = AnalyticsQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        summary = selectors.sales_summary(days=query.validated_data["period"])
        return Response(SalesSummarySerializer(summary).data)
