"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "slug", "price", "is_visible", "updated_at")
    search_fields = ("name", "sku", "slug")
    list_filter = ("is_visible",)
    prepopulated_fields = {"slug": ("name",)}
