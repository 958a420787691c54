"""DRF views for guest cart operations.

The cart is addressed by the `X-Session-Id` header (or `session_id` in the
body for writes).
"""

from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from inventory.services import InsufficientStock, MovementError
from rest_framework import serializers as rf_serializers
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import Cart, CartItem
from .selectors import get_active_cart_for_session
from .serializers import AddItemSerializer, CartReadSerializer, UpdateItemQuantitySerializer
from .services import CartError, ProductUnavailable, clear_cart, release_expired_items, remove_item

SESSION_HEADER = OpenApiParameter(
    name="X-Session-Id",
    location=OpenApiParameter.HEADER,
    required=False,
    description="Guest session identifier (required unless `session_id` is sent in the body)",
    type=str,
)

CartMutationError = inline_serializer(
    name="CartMutationError",
    fields={"detail": rf_serializers.CharField(), "available_quantity": rf_serializers.IntegerField(required=False)},
)
NotFoundError = inline_serializer(name="NotFoundError", fields={"detail": rf_serializers.CharField()})


def stock_error_response(exc: Exception) -> Response:
    """Map reservation and cart failures to a 400 response body."""

    if isinstance(exc, InsufficientStock):
        body = {"detail": "Insufficient stock", "available_quantity": exc.available}
        if exc.product_id is not None:
            body["product_id"] = exc.product_id
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    if isinstance(exc, ProductUnavailable):
        body = {"detail": "Product is not available"}
        if exc.product_id is not None:
            body["product_id"] = exc.product_id
        return Response(body, status=status.HTTP_400_BAD_REQUEST)
    return Response({"detail": "Unable to update cart."}, status=status.HTTP_400_BAD_REQUEST)


def _session_payload(request) -> dict:
    payload = request.data.copy()
    if not payload.get("session_id"):
        payload["session_id"] = request.headers.get("X-Session-Id")
    return payload


def _session_id_error(session_id) -> Response | None:
    """Return a 400 response when the session id is missing or too long to be a cart key."""

    if not session_id:
        return Response({"detail": "Missing X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)
    if len(str(session_id)) > Cart._meta.get_field("session_id").max_length:
        return Response({"detail": "Invalid X-Session-Id."}, status=status.HTTP_400_BAD_REQUEST)
    return None


class CartDetailView(APIView):
    """Return the guest session's active cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Get cart",
        description="Returns the session cart including items and totals. Expired lines are released first.",
        parameters=[SESSION_HEADER],
        examples=[
            OpenApiExample(
                "Cart",
                value={
                    "id": 1,
                    "items": [
                        {
                            "id": 10,
                            "product_id": 100,
                            "sku": "MUG-ENAMEL-01",
                            "name": "Enamel Camping Mug",
                            "quantity": 2,
                            "unit_price": "39.99",
                            "line_total": "79.98",
                            "expires_at": "2025-01-01T12:30:00Z",
                        }
                    ],
                    "subtotal": "79.98",
                    "total": "79.98",
                },
            )
        ],
    )
    def get(self, request):
        session_id = request.headers.get("X-Session-Id")
        error = _session_id_error(session_id)
        if error is not None:
            return error
        cart = get_active_cart_for_session(session_id=session_id)
        release_expired_items(cart=cart)
        data = CartReadSerializer.from_cart(cart=cart).data
        return Response(data, status=status.HTTP_200_OK)


class CartAddItemView(APIView):
    """Add an item to the cart."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Add item to cart",
        description="Adds a product to the session cart and reserves the requested quantity.",
        request=AddItemSerializer,
        parameters=[SESSION_HEADER],
        responses={
            201: inline_serializer(
                name="CartItemCreatedResponse",
                fields={"id": rf_serializers.IntegerField(), "quantity": rf_serializers.IntegerField()},
            ),
            400: CartMutationError,
            404: NotFoundError,
        },
        examples=[
            OpenApiExample("Add", value={"product_id": 123, "quantity": 2}, request_only=True),
            OpenApiExample("Added", value={"id": 10, "quantity": 2}, response_only=True),
            OpenApiExample(
                "Insufficient stock",
                value={"detail": "Insufficient stock", "available_quantity": 1},
                response_only=True,
            ),
        ],
    )
    def post(self, request):
        serializer = AddItemSerializer(data=_session_payload(request))
        serializer.is_valid(raise_exception=True)
        try:
            item = serializer.save()
        except (MovementError, CartError) as exc:
            return stock_error_response(exc)
        return Response({"id": item.id, "quantity": item.quantity}, status=status.HTTP_201_CREATED)


class CartItemView(APIView):
    """Update or delete a single cart line."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    def _get_item(self, request, item_id: int):
        session_id = request.data.get("session_id") or request.headers.get("X-Session-Id")
        error = _session_id_error(session_id)
        if error is not None:
            return None, error
        try:
            # Ensure the item belongs to this session's cart
            cart = get_active_cart_for_session(session_id=session_id)
            return CartItem.objects.get(id=item_id, cart=cart), None
        except CartItem.DoesNotExist:
            return None, Response({"detail": "Not found."}, status=status.HTTP_404_NOT_FOUND)

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Update cart item quantity",
        description="Sets the line quantity, reserving or releasing only the difference. 0 removes the line.",
        request=UpdateItemQuantitySerializer,
        parameters=[SESSION_HEADER],
        responses={
            200: inline_serializer(
                name="CartItemUpdatedResponse",
                fields={"id": rf_serializers.IntegerField(), "quantity": rf_serializers.IntegerField()},
            ),
            204: None,
            400: CartMutationError,
            404: NotFoundError,
        },
        examples=[OpenApiExample("Update", value={"quantity": 3}, request_only=True)],
    )
    def patch(self, request, item_id: int):
        item, error = self._get_item(request, item_id)
        if error is not None:
            return error
        serializer = UpdateItemQuantitySerializer(instance=item, data=_session_payload(request))
        serializer.is_valid(raise_exception=True)
        try:
            updated = serializer.save()
        except (MovementError, CartError) as exc:
            return stock_error_response(exc)
        if updated is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response({"id": updated.id, "quantity": updated.quantity}, status=status.HTTP_200_OK)

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Delete cart item",
        description="Removes a cart line and releases its reservation.",
        parameters=[SESSION_HEADER],
        responses={204: None, 404: NotFoundError},
    )
    def delete(self, request, item_id: int):
        item, error = self._get_item(request, item_id)
        if error is not None:
            return error
        remove_item(session_id=item.cart.session_id, item_id=item.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class CartClearView(APIView):
    """Clear the active cart: delete items and release reservations."""

    permission_classes = [AllowAny]
    throttle_scope = "cart_write"

    @extend_schema(
        tags=["Cart Endpoints"],
        summary="Clear cart",
        description="Deletes items and releases their reservations.",
        parameters=[SESSION_HEADER],
        responses={200: inline_serializer(name="CartStatusCleared", fields={"status": rf_serializers.CharField()})},
        examples=[OpenApiExample("Cleared", value={"status": "cleared"})],
    )
    def post(self, request):
        session_id = request.headers.get("X-Session-Id") or request.data.get("session_id")
        error = _session_id_error(session_id)
        if error is not None:
            return error
        clear_cart(session_id=session_id)
        return Response({"status": "cleared"}, status=status.HTTP_200_OK)
