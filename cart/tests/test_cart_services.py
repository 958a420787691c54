from datetime import timedelta
from unittest.mock import patch

import pytest
from cart.models import Cart, CartItem
from cart.services import (
    CartError,
    ProductUnavailable,
    add_item,
    clear_cart,
    release_expired_items,
    remove_item,
    update_item_quantity,
)
from catalog.tests.factories import ProductFactory
from django.http import Http404
from django.utils import timezone
from inventory.models import Inventory
from inventory.services import InsufficientStock, release, reserve
from inventory.tests.factories import InventoryFactory


def _reserved(product_id):
    return Inventory.objects.get(product_id=product_id).reserved


@pytest.mark.django_db
def test_add_item_reserves_and_snapshots_price():
    inv = InventoryFactory(quantity=5)

    item = add_item(session_id="s1", product_id=inv.product_id, quantity=2)

    assert item.quantity == 2
    assert item.unit_price == inv.product.price
    assert item.expires_at > timezone.now() + timedelta(minutes=29)
    assert _reserved(inv.product_id) == 2


@pytest.mark.django_db
def test_add_same_product_merges_line_and_reserves_only_delta():
    inv = InventoryFactory(quantity=5)

    first = add_item(session_id="s1", product_id=inv.product_id, quantity=2)
    second = add_item(session_id="s1", product_id=inv.product_id, quantity=1)

    assert first.id == second.id
    assert second.quantity == 3
    assert CartItem.objects.count() == 1
    assert _reserved(inv.product_id) == 3


@pytest.mark.django_db
def test_add_more_than_available_fails_without_touching_cart():
    inv = InventoryFactory(quantity=3, reserved=2)

    with pytest.raises(InsufficientStock) as exc:
        add_item(session_id="s1", product_id=inv.product_id, quantity=2)

    assert exc.value.available == 1
    assert CartItem.objects.count() == 0
    assert _reserved(inv.product_id) == 2


@pytest.mark.django_db
def test_add_hidden_product_is_rejected():
    inv = InventoryFactory(product=ProductFactory(is_visible=False), quantity=5)

    with pytest.raises(ProductUnavailable):
        add_item(session_id="s1", product_id=inv.product_id, quantity=1)

    assert _reserved(inv.product_id) == 0


@pytest.mark.django_db
def test_add_unknown_product_raises_404():
    with pytest.raises(Http404):
        add_item(session_id="s1", product_id=999999, quantity=1)


@pytest.mark.django_db
def test_add_zero_quantity_is_rejected():
    inv = InventoryFactory()

    with pytest.raises(CartError):
        add_item(session_id="s1", product_id=inv.product_id, quantity=0)


@pytest.mark.django_db
def test_update_quantity_reserves_or_releases_difference():
    inv = InventoryFactory(quantity=10)
    item = add_item(session_id="s1", product_id=inv.product_id, quantity=2)

    update_item_quantity(session_id="s1", item_id=item.id, quantity=5)
    assert _reserved(inv.product_id) == 5

    updated = update_item_quantity(session_id="s1", item_id=item.id, quantity=1)
    assert updated.quantity == 1
    assert _reserved(inv.product_id) == 1


@pytest.mark.django_db
def test_update_quantity_zero_removes_line():
    inv = InventoryFactory(quantity=10)
    item = add_item(session_id="s1", product_id=inv.product_id, quantity=4)

    assert update_item_quantity(session_id="s1", item_id=item.id, quantity=0) is None
    assert not CartItem.objects.filter(id=item.id).exists()
    assert _reserved(inv.product_id) == 0


@pytest.mark.django_db
def test_failed_increase_keeps_previous_quantity_and_reservation():
    inv = InventoryFactory(quantity=3)
    item = add_item(session_id="s1", product_id=inv.product_id, quantity=2)

    with pytest.raises(InsufficientStock):
        update_item_quantity(session_id="s1", item_id=item.id, quantity=5)

    item.refresh_from_db()
    assert item.quantity == 2
    assert _reserved(inv.product_id) == 2


@pytest.mark.django_db
def test_item_of_another_session_is_not_found():
    inv = InventoryFactory(quantity=3)
    item = add_item(session_id="owner", product_id=inv.product_id, quantity=1)

    with pytest.raises(Http404):
        update_item_quantity(session_id="intruder", item_id=item.id, quantity=2)
    with pytest.raises(Http404):
        remove_item(session_id="intruder", item_id=item.id)

    assert _reserved(inv.product_id) == 1


@pytest.mark.django_db
def test_add_then_remove_restores_ledger():
    inv = InventoryFactory(quantity=6, reserved=1)

    item = add_item(session_id="s1", product_id=inv.product_id, quantity=4)
    remove_item(session_id="s1", item_id=item.id)

    assert _reserved(inv.product_id) == 1


@pytest.mark.django_db
def test_clear_cart_releases_every_line():
    inv_a = InventoryFactory(quantity=5)
    inv_b = InventoryFactory(quantity=5)
    add_item(session_id="s1", product_id=inv_a.product_id, quantity=2)
    add_item(session_id="s1", product_id=inv_b.product_id, quantity=3)

    clear_cart(session_id="s1")

    assert CartItem.objects.count() == 0
    assert _reserved(inv_a.product_id) == 0
    assert _reserved(inv_b.product_id) == 0
    assert Cart.objects.filter(session_id="s1", status=Cart.STATUS_ACTIVE).count() == 1


@pytest.mark.django_db
def test_release_expired_items_only_touches_expired_lines():
    inv = InventoryFactory(quantity=10)
    stale = add_item(session_id="stale", product_id=inv.product_id, quantity=3)
    add_item(session_id="fresh", product_id=inv.product_id, quantity=2)
    CartItem.objects.filter(id=stale.id).update(expires_at=timezone.now() - timedelta(minutes=1))

    released = release_expired_items()

    assert released == 1
    assert not CartItem.objects.filter(id=stale.id).exists()
    assert _reserved(inv.product_id) == 2


@pytest.mark.django_db
def test_release_expired_items_scoped_to_cart():
    inv = InventoryFactory(quantity=10)
    a = add_item(session_id="a", product_id=inv.product_id, quantity=1)
    b = add_item(session_id="b", product_id=inv.product_id, quantity=1)
    past = timezone.now() - timedelta(minutes=1)
    CartItem.objects.filter(id__in=[a.id, b.id]).update(expires_at=past)

    assert release_expired_items(cart=a.cart) == 1
    assert CartItem.objects.filter(id=b.id).exists()
    assert _reserved(inv.product_id) == 1


@pytest.mark.django_db
def test_updating_a_line_refreshes_its_deadline():
    inv = InventoryFactory(quantity=10)
    item = add_item(session_id="s1", product_id=inv.product_id, quantity=1)
    CartItem.objects.filter(id=item.id).update(expires_at=timezone.now() + timedelta(minutes=1))

    item = update_item_quantity(session_id="s1", item_id=item.id, quantity=2)

    assert item.expires_at > timezone.now() + timedelta(minutes=29)


@pytest.mark.django_db
def test_add_item_locks_line_before_reserving_stock():
    inv = InventoryFactory(quantity=5)
    add_item(session_id="s1", product_id=inv.product_id, quantity=1)
    calls = []
    lock_line = CartItem.objects.select_for_update

    def _lock(*args, **kwargs):
        calls.append("line")
        return lock_line(*args, **kwargs)

    def _reserve(**kwargs):
        calls.append("stock")
        return reserve(**kwargs)

    with patch.object(CartItem.objects, "select_for_update", side_effect=_lock):
        with patch("cart.services.reserve", side_effect=_reserve):
            add_item(session_id="s1", product_id=inv.product_id, quantity=1)

    assert calls == ["line", "stock"]
    assert _reserved(inv.product_id) == 2


@pytest.mark.django_db
def test_release_expired_items_walks_lines_in_product_order():
    lower = InventoryFactory(quantity=5)
    higher = InventoryFactory(quantity=5)
    first = add_item(session_id="a", product_id=higher.product_id, quantity=1)
    second = add_item(session_id="b", product_id=lower.product_id, quantity=2)
    CartItem.objects.filter(id__in=[first.id, second.id]).update(expires_at=timezone.now() - timedelta(minutes=1))

    with patch("cart.services.release", side_effect=release) as spy:
        assert release_expired_items() == 2

    released = [c.kwargs["product_id"] for c in spy.call_args_list]
    assert released == [lower.product_id, higher.product_id]
    assert _reserved(higher.product_id) == _reserved(lower.product_id) == 0


@pytest.mark.django_db
def test_second_session_cannot_take_units_already_reserved():
    inv = InventoryFactory(quantity=2, reserved=0)
    add_item(session_id="a", product_id=inv.product_id, quantity=2)

    with pytest.raises(InsufficientStock) as exc:
        add_item(session_id="b", product_id=inv.product_id, quantity=2)

    assert exc.value.available == 0
    assert _reserved(inv.product_id) == 2
    assert not CartItem.objects.filter(cart__session_id="b").exists()
