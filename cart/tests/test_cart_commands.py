import threading
from datetime import timedelta
from io import StringIO

import pytest
from cart.models import CartItem
from cart.services import add_item
from django.core.management import call_command
from django.db import connection
from django.utils import timezone
from inventory.models import Inventory
from inventory.services import InsufficientStock
from inventory.tests.factories import InventoryFactory


@pytest.mark.django_db
def test_expire_reservations_command_releases_stale_lines():
    inv = InventoryFactory(quantity=5)
    item = add_item(session_id="s1", product_id=inv.product_id, quantity=3)
    CartItem.objects.filter(id=item.id).update(expires_at=timezone.now() - timedelta(minutes=5))

    out = StringIO()
    call_command("expire_reservations", stdout=out)

    assert "Expired reservations released: 1" in out.getvalue()
    assert Inventory.objects.get(pk=inv.pk).reserved == 0


@pytest.mark.django_db
def test_expire_reservations_command_is_noop_when_nothing_expired():
    inv = InventoryFactory(quantity=5)
    add_item(session_id="s1", product_id=inv.product_id, quantity=2)

    out = StringIO()
    call_command("expire_reservations", stdout=out)

    assert "Expired reservations released: 0" in out.getvalue()
    assert Inventory.objects.get(pk=inv.pk).reserved == 2


@pytest.mark.django_db(transaction=True)
@pytest.mark.skipif(connection.vendor == "sqlite", reason="row locking needs DATABASE_ENGINE=postgres")
def test_concurrent_adds_never_oversell_last_units():
    inv = InventoryFactory(quantity=2)
    results = []

    def worker(session_id):
        try:
            add_item(session_id=session_id, product_id=inv.product_id, quantity=2)
            results.append("ok")
        except InsufficientStock:
            results.append("insufficient")
        finally:
            connection.close()

    threads = [threading.Thread(target=worker, args=(f"s{i}",)) for i in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(results) == ["insufficient", "ok"]
    assert Inventory.objects.get(pk=inv.pk).reserved == 2
