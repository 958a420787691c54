"""Admin registration for cart models.

Provides admin interfaces for `Cart` and `CartItem`, with inline items on
the cart page for support staff.
"""

from django.contrib import admin, messages
from inventory.services import MovementError

from .models import Cart, CartItem
from .services import CartError, clear_cart


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("product", "quantity", "unit_price", "expires_at", "created_at", "updated_at")
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("product",)


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "session_id", "status", "updated_at", "created_at")
    list_filter = ("status",)
    search_fields = ("session_id",)
    ordering = ("-updated_at",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [CartItemInline]

    @admin.action(description="Clear cart (release reservations, keep status active)")
    def action_clear_cart(self, request, queryset):
        successes = 0
        failures = 0
        for cart in queryset.filter(status=Cart.STATUS_ACTIVE):
            try:
                clear_cart(session_id=cart.session_id)
                successes += 1
            except (CartError, MovementError):
                failures += 1
        if successes:
            messages.success(request, f"Cleared {successes} cart(s).")
        if failures:
            messages.error(request, f"Failed to clear {failures} cart(s).")

    actions = ["action_clear_cart"]


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "product", "quantity", "unit_price", "expires_at", "updated_at")
    search_fields = ("product__sku", "cart__session_id")
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("cart", "product")


# EOF
