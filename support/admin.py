from django.contrib import admin

from .models import SupportTicket


@admin.register(SupportTicket)
class SupportTicketAdmin(admin.ModelAdmin):
    list_display = ("id", "subject", "email", "order", "status", "priority", "created_at")
    list_filter = ("status", "priority", "created_at")
    list_editable = ("status", "priority")
    search_fields = ("subject", "email", "name", "order__number")
    raw_id_fields = ("user", "order")
    date_hierarchy = "created_at"
