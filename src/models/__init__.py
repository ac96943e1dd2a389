"""SQLAlchemy models."""

from src.models.category import Category
from src.models.product import Product

__all__ = [
    "Category",
    "Product",
]
