"""
Bulk movement row factories.

Rows mirror the inbound and outbound CSV templates: every value is a string.
"""

import factory
from faker import Faker

fake = Faker()


class InboundRowFactory(factory.Factory):
    """
    Factory for bulk inbound rows.

    Usage:
        row = InboundRowFactory(reference="INV-1", sku="WID-1")
        rows = InboundRowFactory.create_batch(3, reference="INV-7", sku="WID-1")
    """

    class Meta:
        model = dict

    reference = factory.Sequence(lambda n: f"INV-{n:05d}")
    date = factory.LazyFunction(lambda: fake.date_this_year().isoformat())
    warehouse = "Main"
    supplier = factory.LazyFunction(fake.company)
    sku = "WID-1"
    quantity = factory.LazyFunction(lambda: str(fake.random_int(min=1, max=20)))
    cost = ""


class OutboundRowFactory(factory.Factory):
    """Factory for bulk outbound rows."""

    class Meta:
        model = dict

    reference = factory.Sequence(lambda n: f"SO-{n:05d}")
    date = factory.LazyFunction(lambda: fake.date_this_year().isoformat())
    warehouse = "Main"
    customer = factory.LazyFunction(fake.company)
    sku = "WID-1"
    quantity = "1"
    price = ""
