from rest_framework import serializers

from .models import SupportTicket


class SupportTicketSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.number", read_only=True, default=None)

    class Meta:
        model = SupportTicket
        fields = [
            "id",
            "name",
            "email",
            "subject",
            "message",
            "order",
            "order_number",
            "status",
            "priority",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "order_number", "status", "priority", "created_at", "updated_at"]


class OpenTicketSerializer(serializers.Serializer):
    """Ticket input; `order_id` links one of the requester's own orders."""

    name = serializers.CharField(max_length=160)
    email = serializers.EmailField()
    subject = serializers.CharField(max_length=200)
    message = serializers.CharField(max_length=5000)
    order_id = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    session_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
