"""
Product test factories.

ProductFactory builds create payloads for the products API; ProductRowFactory
builds rows as a CSV parser would hand them to the product import (all strings).
"""

import factory
from faker import Faker

fake = Faker()


class ProductFactory(factory.Factory):
    """
    Factory for generating product create payloads.

    Usage:
        product = ProductFactory()
        product = ProductFactory(category="Automotive", stock_level=5)
    """

    class Meta:
        model = dict

    sku = factory.Sequence(lambda n: f"SKU-{n:04d}")
    name = factory.LazyFunction(lambda: fake.word().title())
    description = factory.LazyFunction(fake.sentence)
    category = factory.LazyFunction(
        lambda: fake.random_element(["Electronics", "Clothing", "Home & Garden", "Automotive"])
    )
    price = factory.LazyFunction(lambda: float(fake.pydecimal(left_digits=3, right_digits=2, positive=True)))
    cost_price = factory.LazyAttribute(lambda obj: round(obj.price / 2, 2))
    min_stock = 5
    stock_level = 0


class ProductRowFactory(factory.Factory):
    """Product import row."""

    class Meta:
        model = dict

    sku = factory.Sequence(lambda n: f"IMP-{n:04d}")
    name = factory.LazyFunction(lambda: fake.word().title())
    description = ""
    category = "General"
    price = factory.LazyFunction(lambda: str(fake.pydecimal(left_digits=2, right_digits=2, positive=True)))
    cost_price = ""
    min_stock = ""
    stock_level = "0"
