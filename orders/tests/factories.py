from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory
from orders.models import Order, OrderAddress, OrderItem, RefundRequest


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.Faker("email")
    password = factory.PostGenerationMethodCall("set_password", "pass")


class OrderAddressFactory(DjangoModelFactory):
    class Meta:
        model = OrderAddress

    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    address1 = factory.Faker("street_address")
    city = factory.Faker("city")
    postal_code = "00-001"
    country = "PL"


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = Order

    number = factory.Sequence(lambda n: f"ORD-T{n:05d}")
    session_id = factory.Sequence(lambda n: f"order-sess-{n}")
    customer_email = factory.Faker("email")
    shipping_address = factory.SubFactory(OrderAddressFactory)
    billing_address = factory.SelfAttribute("shipping_address")
    payment_method = "stripe"
    subtotal = Decimal("50.00")
    total = Decimal("50.00")


class OrderItemFactory(DjangoModelFactory):
    class Meta:
        model = OrderItem

    order = factory.SubFactory(OrderFactory)
    product = factory.SubFactory("catalog.tests.factories.ProductFactory")
    product_name = factory.LazyAttribute(lambda o: o.product.name)
    sku = factory.LazyAttribute(lambda o: o.product.sku)
    quantity = 2
    unit_price = Decimal("25.00")


class RefundRequestFactory(DjangoModelFactory):
    class Meta:
        model = RefundRequest

    order = factory.SubFactory(OrderFactory, payment_status=Order.PAYMENT_PAID, status=Order.STATUS_PROCESSING)
    user = factory.LazyAttribute(lambda o: o.order.user)
    reason = "Arrived damaged"
    amount = Decimal("10.00")
