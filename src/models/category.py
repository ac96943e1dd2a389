"""Category model."""

from sqlalchemy import Boolean, Column, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.enums import ProductType
from src.models.mixins import RowVersionMixin, TimestampMixin


class Category(Base, TimestampMixin, RowVersionMixin):
    """Product category, optionally nested under a parent category."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(String(500), nullable=True)
    product_type = Column(
        Enum(
            ProductType,
            name="producttype",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    display_order = Column(Integer, default=0, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)

    # Relationships
    parent = relationship("Category", remote_side=[id], back_populates="subcategories")
    subcategories = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def parent_name(self) -> str | None:
        return self.parent.name if self.parent is not None else None

    @property
    def product_count(self) -> int:
        return len(self.products)
