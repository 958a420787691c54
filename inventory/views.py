"""Staff inventory endpoints: stock levels, overrides and movements."""

from catalog.models import Product
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import OpenApiExample, OpenApiParameter, extend_schema, inline_serializer
from rest_framework import generics, status
from rest_framework import serializers as rf_serializers
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from . import selectors
from .models import Inventory
from .serializers import (
    InventorySerializer,
    InventorySettingsSerializer,
    StockAdjustSerializer,
    StockMovementSerializer,
)
from .services import MovementError


def _truthy(value) -> bool:
    return str(value or "").lower() in {"1", "true", "yes"}


class InventoryListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_admin"
    serializer_class = InventorySerializer

    def get_queryset(self):
        params = self.request.query_params
        return selectors.list_inventory(
            low_stock=_truthy(params.get("low_stock")),
            needs_reorder=_truthy(params.get("needs_reorder")),
            sku=params.get("sku"),
        )

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List inventory",
        description="List stock per product. Filters: `low_stock`, `needs_reorder` (true/false), `sku`.",
        parameters=[
            OpenApiParameter(name="low_stock", required=False, type=bool),
            OpenApiParameter(name="needs_reorder", required=False, type=bool),
            OpenApiParameter(name="sku", required=False, type=str),
        ],
        examples=[
            OpenApiExample(
                "Inventory",
                value={
                    "results": [
                        {
                            "id": 1,
                            "product": 10,
                            "sku": "MUG-ENAMEL-01",
                            "product_name": "Enamel Camping Mug",
                            "quantity": 5,
                            "reserved": 2,
                            "available": 3,
                            "low_stock_threshold": 10,
                            "reorder_point": 5,
                            "reorder_quantity": 50,
                            "is_low_stock": True,
                            "needs_reorder": True,
                            "last_restocked_at": "2025-01-01T12:00:00Z",
                            "updated_at": "2025-01-01T12:00:00Z",
                        }
                    ]
                },
                response_only=True,
            )
        ],
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Override stock",
        description=(
            "Set, increment or decrement on-hand stock for a product. "
            "Bypasses reservation checks; decrementing below zero is rejected."
        ),
        request=StockAdjustSerializer,
        responses={
            200: InventorySerializer,
            400: inline_serializer(name="InventoryMutationError", fields={"detail": rf_serializers.CharField()}),
            404: inline_serializer(name="InventoryNotFound", fields={"detail": rf_serializers.CharField()}),
        },
        examples=[
            OpenApiExample(
                "Restock", value={"product_id": 10, "quantity": 20, "operation": "increment"}, request_only=True
            )
        ],
    )
    def put(self, request):
        serializer = StockAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if not Inventory.objects.filter(product_id=serializer.validated_data["product_id"]).exists():
            return Response({"detail": "Inventory not found."}, status=status.HTTP_404_NOT_FOUND)
        try:
            item = serializer.save()
        except MovementError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        item = Inventory.objects.select_related("product").get(pk=item.pk)
        return Response(InventorySerializer(item).data, status=status.HTTP_200_OK)


class ProductInventoryView(APIView):
    """Create, read or update the inventory record of a single product."""

    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_admin"

    def _respond(self, product_id: int, code: int):
        item = Inventory.objects.select_related("product").get(product_id=product_id)
        return Response(InventorySerializer(item).data, status=code)

    @extend_schema(tags=["Inventory Endpoints"], summary="Get product inventory", responses={200: InventorySerializer})
    def get(self, request, product_id: int):
        get_object_or_404(Inventory, product_id=product_id)
        return self._respond(product_id, status.HTTP_200_OK)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Create product inventory",
        description="Defaults: low_stock_threshold=10, reorder_point=5, reorder_quantity=50.",
        request=InventorySettingsSerializer,
        responses={201: InventorySerializer},
    )
    def post(self, request, product_id: int):
        get_object_or_404(Product, pk=product_id)
        if Inventory.objects.filter(product_id=product_id).exists():
            return Response({"detail": "Inventory already exists."}, status=status.HTTP_400_BAD_REQUEST)
        serializer = InventorySettingsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save(product_id=product_id)
        return self._respond(product_id, status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="Update product inventory",
        request=InventorySettingsSerializer,
        responses={200: InventorySerializer},
    )
    def patch(self, request, product_id: int):
        get_object_or_404(Inventory, product_id=product_id)
        serializer = InventorySettingsSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save(product_id=product_id)
        return self._respond(product_id, status.HTTP_200_OK)


class MovementListView(generics.ListAPIView):
    permission_classes = [IsAdminUser]
    throttle_scope = "inventory_admin"
    serializer_class = StockMovementSerializer

    @extend_schema(
        tags=["Inventory Endpoints"],
        summary="List stock movements",
        description="List movements (inbound/outbound/adjust). Filters: product_id, movement_type.",
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        return selectors.list_movements(
            product_id=self.request.query_params.get("product_id"),
            movement_type=self.request.query_params.get("movement_type"),
        )


# EOF
