"""Marketplace channel adapters.

Each adapter pushes available stock levels to its channel and pulls orders
placed there. The channel integrations are not built yet; every adapter
raises NotImplementedError until its API client exists.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable

from common.choices import MarketplaceChannel


class MarketplaceAdapter(ABC):
    channel: str = ""

    def __init__(self, connection):
        self.connection = connection

    @abstractmethod
    def push_stock(self, levels: Iterable[dict]) -> int:
        """Publish `{"sku", "available"}` levels; returns how many were accepted."""

    @abstractmethod
    def pull_orders(self, since: datetime | None = None) -> list[dict]:
        """Fetch channel orders placed after `since`."""


class AllegroAdapter(MarketplaceAdapter):
    channel = MarketplaceChannel.ALLEGRO

    def push_stock(self, levels):
        raise NotImplementedError("Allegro stock sync is not implemented")

    def pull_orders(self, since=None):
        raise NotImplementedError("Allegro order import is not implemented")


class AmazonAdapter(MarketplaceAdapter):
    channel = MarketplaceChannel.AMAZON

    def push_stock(self, levels):
        raise NotImplementedError("Amazon stock sync is not implemented")

    def pull_orders(self, since=None):
        raise NotImplementedError("Amazon order import is not implemented")


class AliexpressAdapter(MarketplaceAdapter):
    channel = MarketplaceChannel.ALIEXPRESS

    def push_stock(self, levels):
        raise NotImplementedError("AliExpress stock sync is not implemented")

    def pull_orders(self, since=None):
        raise NotImplementedError("AliExpress order import is not implemented")


ADAPTERS = {
    MarketplaceChannel.ALLEGRO: AllegroAdapter,
    MarketplaceChannel.AMAZON: AmazonAdapter,
    MarketplaceChannel.ALIEXPRESS: AliexpressAdapter,
}


def get_adapter(connection) -> MarketplaceAdapter:
    try:
        adapter_class = ADAPTERS[connection.channel]
    except KeyError:
        raise ValueError(f"Unsupported marketplace channel: {connection.channel!r}")
    return adapter_class(connection)
