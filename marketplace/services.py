import logging
from dataclasses import dataclass

from django.utils import timezone
from inventory.selectors import list_stock_levels

from .adapters import get_adapter
from .models import MarketplaceConnection

logger = logging.getLogger("storefront.marketplace")


@dataclass(frozen=True)
class SyncResult:
    channel: str
    pushed: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


def sync_stock(connection: MarketplaceConnection) -> SyncResult:
    """Push current available stock to one channel and record the outcome.

    Channels without an integration are recorded as failed syncs rather than
    raised, so one channel never blocks the others.
    """

    levels = list_stock_levels()
    adapter = get_adapter(connection)
    try:
        pushed = adapter.push_stock(levels)
    except NotImplementedError as exc:
        connection.last_error = str(exc)
        connection.save(update_fields=["last_error", "updated_at"])
        logger.warning(
            "marketplace.sync_unsupported",
            extra={"event": "marketplace.sync_unsupported", "channel": connection.channel, "skus": len(levels)},
        )
        return SyncResult(channel=connection.channel, error=str(exc))

    connection.last_synced_at = timezone.now()
    connection.last_error = ""
    connection.save(update_fields=["last_synced_at", "last_error", "updated_at"])
    logger.info(
        "marketplace.synced",
        extra={"event": "marketplace.synced", "channel": connection.channel, "pushed": pushed},
    )
    return SyncResult(channel=connection.channel, pushed=int(pushed or 0))


def sync_active_connections() -> list[SyncResult]:
    return [sync_stock(conn) for conn in MarketplaceConnection.objects.filter(is_active=True).order_by("channel")]
