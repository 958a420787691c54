from django.contrib import admin

from .models import IdempotencyKey, Order, OrderAddress, OrderItem, RefundRequest


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "product_name", "sku", "quantity", "unit_price")
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "number",
        "status",
        "payment_status",
        "payment_method",
        "total",
        "customer_email",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_method", "created_at")
    search_fields = ("number", "customer_email", "gateway_reference")
    date_hierarchy = "created_at"
    readonly_fields = ("gateway_reference", "paid_at", "cancelled_at")
    inlines = [OrderItemInline]


@admin.register(OrderAddress)
class OrderAddressAdmin(admin.ModelAdmin):
    list_display = ("id", "first_name", "last_name", "city", "country")
    search_fields = ("last_name", "city", "postal_code")


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "order", "amount", "status", "created_at", "processed_at")
    list_filter = ("status", "created_at")
    search_fields = ("order__number", "reason")


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
