from common.choices import OrderStatus, PaymentMethod, PaymentStatus
from django_filters import rest_framework as filters

from .models import Order


class AdminOrderFilterSet(filters.FilterSet):
    status = filters.ChoiceFilter(choices=OrderStatus.choices)
    payment_status = filters.ChoiceFilter(choices=PaymentStatus.choices)
    payment_method = filters.ChoiceFilter(choices=PaymentMethod.choices)
    email = filters.CharFilter(field_name="customer_email", lookup_expr="iexact")
    start = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    end = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Order
        fields = ["status", "payment_status", "payment_method", "number", "email", "start", "end"]
