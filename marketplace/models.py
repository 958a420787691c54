from common.choices import MarketplaceChannel
from django.db import models


class MarketplaceConnection(models.Model):
    """A store account on an external marketplace channel.

    `config` holds channel credentials and options; the outcome of the last
    stock sync is recorded in `last_synced_at` and `last_error`.
    """

    channel = models.CharField(max_length=16, choices=MarketplaceChannel.choices, unique=True)
    account_name = models.CharField(max_length=120, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    config = models.JSONField(default=dict, blank=True)
    last_synced_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["channel"]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.get_channel_display()} ({self.account_name or 'unnamed'})"
