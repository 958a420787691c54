"""DRF serializers for orders, checkout input and refund requests."""

from common.choices import OrderStatus, PaymentMethod
from payments.registry import available_gateways
from rest_framework import serializers

from .models import Order, OrderAddress, OrderItem, RefundRequest


class OrderAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderAddress
        fields = [
            "first_name",
            "last_name",
            "company",
            "address1",
            "address2",
            "city",
            "state",
            "postal_code",
            "country",
            "phone",
        ]


class OrderItemSerializer(serializers.ModelSerializer):
    """Order line with its price snapshot and computed line_total."""

    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product", "product_name", "sku", "quantity", "unit_price", "line_total"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = OrderAddressSerializer(read_only=True)
    billing_address = OrderAddressSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "status",
            "payment_status",
            "payment_method",
            "customer_email",
            "customer_name",
            "currency",
            "items",
            "subtotal",
            "shipping",
            "tax",
            "total",
            "shipping_address",
            "billing_address",
            "paid_at",
            "cancelled_at",
            "created_at",
        ]
        read_only_fields = fields


class CheckoutSerializer(serializers.Serializer):
    """Checkout input: session, contact, addresses and payment method."""

    session_id = serializers.CharField(max_length=64)
    email = serializers.EmailField()
    name = serializers.CharField(max_length=160, required=False, allow_blank=True, default="")
    shipping_address = OrderAddressSerializer()
    billing_address = OrderAddressSerializer(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    blik_code = serializers.RegexField(r"^\d{6}$", required=False, allow_blank=True)

    def validate_payment_method(self, value):
        if value not in available_gateways():
            raise serializers.ValidationError("Payment method is not available.")
        return value

    def validate(self, attrs):
        if attrs.get("blik_code") and attrs.get("payment_method") != PaymentMethod.BLIK:
            raise serializers.ValidationError({"blik_code": "BLIK code requires payment_method 'blik'."})
        return attrs


class BlikCodeSerializer(serializers.Serializer):
    code = serializers.RegexField(r"^\d{6}$", error_messages={"invalid": "BLIK code must be 6 digits."})
    session_id = serializers.CharField(max_length=64, required=False, allow_blank=True)


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[OrderStatus.SHIPPED, OrderStatus.DELIVERED])


class RefundRequestSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.number", read_only=True)

    class Meta:
        model = RefundRequest
        fields = [
            "id",
            "order",
            "order_number",
            "reason",
            "amount",
            "status",
            "admin_note",
            "processed_at",
            "created_at",
        ]
        read_only_fields = ["id", "order_number", "status", "admin_note", "processed_at", "created_at"]
        extra_kwargs = {"amount": {"required": False}}

    def validate_amount(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("Amount must be positive.")
        return value


class RefundDecisionSerializer(serializers.Serializer):
    note = serializers.CharField(required=False, allow_blank=True, default="")


class AnalyticsQuerySerializer(serializers.Serializer):
    period = serializers.IntegerField(min_value=1, max_value=365, required=False, default=30)


class AnalyticsOverviewSerializer(serializers.Serializer):
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_orders = serializers.IntegerField()
    average_order_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_customers = serializers.IntegerField()
    total_products = serializers.IntegerField()


class TopProductSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    product_name = serializers.CharField()
    total_sold = serializers.IntegerField()
    revenue = serializers.DecimalField(max_digits=14, decimal_places=2)


class TopCustomerSerializer(serializers.Serializer):
    email = serializers.EmailField()
    total_spent = serializers.DecimalField(max_digits=14, decimal_places=2)
    order_count = serializers.IntegerField()


class SalesSummarySerializer(serializers.Serializer):
    """Paid-order revenue over a trailing window, as returned to staff."""

    period_days = serializers.IntegerField()
    since = serializers.DateTimeField()
    overview = AnalyticsOverviewSerializer()
    top_products = TopProductSerializer(many=True)
    top_customers = TopCustomerSerializer(many=True)
