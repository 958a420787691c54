"""Serializers for inventory domain.

Read serializers for stock levels and movements, plus write serializers
for the staff stock override and per-product inventory settings.
"""

from common.choices import InventoryOperation
from rest_framework import serializers

from .models import Inventory, StockMovement
from .services import adjust_stock, upsert_inventory


class InventorySerializer(serializers.ModelSerializer):
    """Read-only representation of stock for a product.

    Exposes computed ``available`` and the product SKU for convenience.
    """

    sku = serializers.CharField(source="product.sku", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    available = serializers.IntegerField(read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    needs_reorder = serializers.BooleanField(read_only=True)

    class Meta:
        model = Inventory
        fields = [
            "id",
            "product",
            "sku",
            "product_name",
            "quantity",
            "reserved",
            "available",
            "low_stock_threshold",
            "reorder_point",
            "reorder_quantity",
            "is_low_stock",
            "needs_reorder",
            "last_restocked_at",
            "updated_at",
        ]
        read_only_fields = fields


class StockMovementSerializer(serializers.ModelSerializer):
    """Read-only representation of stock movements."""

    product = serializers.IntegerField(source="inventory.product_id", read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "movement_type",
            "quantity",
            "reason",
            "reference",
            "created_at",
        ]
        read_only_fields = fields


class StockAdjustSerializer(serializers.Serializer):
    """Write serializer for the staff override of on-hand stock."""

    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=0)
    operation = serializers.ChoiceField(choices=InventoryOperation.choices, default=InventoryOperation.SET)
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def create(self, validated_data):  # type: ignore[override]
        return adjust_stock(**validated_data)


class InventorySettingsSerializer(serializers.Serializer):
    """Write serializer for creating or updating a product's inventory record."""

    quantity = serializers.IntegerField(min_value=0, required=False)
    low_stock_threshold = serializers.IntegerField(min_value=0, required=False)
    reorder_point = serializers.IntegerField(min_value=0, required=False)
    reorder_quantity = serializers.IntegerField(min_value=0, required=False)

    def save(self, *, product_id: int):  # type: ignore[override]
        return upsert_inventory(product_id=product_id, **self.validated_data)


# EOF
