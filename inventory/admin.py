"""Admin registrations for inventory app."""

from django.contrib import admin

from .models import Inventory, StockMovement


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "quantity", "reserved", "low_stock_threshold", "last_restocked_at", "updated_at")
    search_fields = ("product__sku", "product__name")
    raw_id_fields = ("product",)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ("id", "inventory", "movement_type", "quantity", "reason", "reference", "created_at")
    list_filter = ("movement_type",)
    search_fields = ("inventory__product__sku", "reference")


# EOF
