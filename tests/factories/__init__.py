"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .user import UserFactory
from .product import ProductFactory, ProductRowFactory
from .movement import InboundRowFactory, OutboundRowFactory

__all__ = [
    "UserFactory",
    "ProductFactory",
    "ProductRowFactory",
    # Bulk movement rows
    "InboundRowFactory",
    "OutboundRowFactory",
]
