"""Cart serializers for read and write operations."""

from rest_framework import serializers

from .models import CartItem
from .selectors import cart_totals
from .services import add_item, update_item_quantity


class CartItemReadSerializer(serializers.ModelSerializer):
    """Read serializer for a cart item."""

    product_id = serializers.IntegerField(source="product.id")
    sku = serializers.CharField(source="product.sku")
    name = serializers.CharField(source="product.name")
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "sku",
            "name",
            "quantity",
            "unit_price",
            "line_total",
            "expires_at",
        ]


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary and items."""

    id = serializers.IntegerField()
    items = CartItemReadSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)

    @classmethod
    def from_cart(cls, *, cart):
        totals = cart_totals(cart=cart)
        return cls(
            {
                "id": cart.id,
                "items": list(cart.items.select_related("product").all()),
                "subtotal": totals["subtotal"],
                "total": totals["total"],
            }
        )


class AddItemSerializer(serializers.Serializer):
    """Write serializer for adding an item to a session cart."""

    session_id = serializers.CharField(max_length=64)
    product_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)

    def create(self, validated_data):  # type: ignore[override]
        session_id = validated_data.pop("session_id")
        return add_item(session_id=session_id, **validated_data)


class UpdateItemQuantitySerializer(serializers.Serializer):
    """Write serializer for updating a cart item quantity; 0 removes the line."""

    session_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=0)

    def update(self, instance, validated_data):  # type: ignore[override]
        return update_item_quantity(
            session_id=validated_data["session_id"], item_id=instance.id, quantity=validated_data["quantity"]
        )
