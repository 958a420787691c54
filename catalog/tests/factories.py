from decimal import Decimal

import factory
from catalog.models import Product
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    name = Faker("sentence", nb_words=3)
    slug = factory.Sequence(lambda n: f"product-{n}")
    description = Faker("paragraph")
    price = Decimal("25.00")
    is_visible = True
