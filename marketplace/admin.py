from django.contrib import admin

from .models import MarketplaceConnection
from .services import sync_stock


@admin.register(MarketplaceConnection)
class MarketplaceConnectionAdmin(admin.ModelAdmin):
    list_display = ("id", "channel", "account_name", "is_active", "last_synced_at")
    list_filter = ("channel", "is_active")
    readonly_fields = ("last_synced_at", "last_error")
    actions = ["action_sync_stock"]

    @admin.action(description="Push stock levels now")
    def action_sync_stock(self, request, queryset):
        results = [sync_stock(conn) for conn in queryset]
        failed = sum(1 for r in results if not r.ok)
        self.message_user(request, f"Synced {len(results) - failed} connection(s), {failed} failed.")
