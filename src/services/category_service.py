"""Authoritative category rules: uniqueness, parent validity, acyclicity, delete dependencies."""

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.models.category import Category
from src.models.enums import ProductType
from src.models.product import Product
from src.schemas.category import CategoryCreate, CategoryUpdate
from src.services.exceptions import (
    CategoryHasProducts,
    CategoryHasSubcategories,
    CategoryNotFound,
    CircularReference,
    ConcurrencyConflict,
    DuplicateCategoryName,
    ParentInactive,
    ParentNotFound,
    SelfParent,
)

logger = logging.getLogger(__name__)


class CategoryService:
    """Service for reading and mutating product categories."""

    def __init__(self, db: Session):
        self.db = db

    # Queries

    def list_all(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.id).all()

    def list_active(self) -> list[Category]:
        return (
            self.db.query(Category)
            .filter(Category.active.is_(True))
            .order_by(Category.display_order, Category.name)
            .all()
        )

    def list_ordered(self) -> list[Category]:
        return self.db.query(Category).order_by(Category.display_order, Category.name).all()

    def list_roots(self) -> list[Category]:
        return (
            self.db.query(Category)
            .filter(Category.parent_id.is_(None))
            .order_by(Category.display_order, Category.name)
            .all()
        )

    def list_subcategories(self, parent_id: int) -> list[Category]:
        return (
            self.db.query(Category)
            .filter(Category.parent_id == parent_id)
            .order_by(Category.display_order, Category.name)
            .all()
        )

    def list_by_type(self, product_type: ProductType) -> list[Category]:
        return (
            self.db.query(Category)
            .filter(Category.product_type == product_type)
            .order_by(Category.display_order, Category.name)
            .all()
        )

    def get(self, category_id: int) -> Category:
        category = self.db.get(Category, category_id)
        if category is None:
            raise CategoryNotFound(category_id)
        return category

    def get_by_name(self, name: str) -> Category:
        category = (
            self.db.query(Category)
            .filter(func.lower(Category.name) == name.strip().lower())
            .first()
        )
        if category is None:
            raise CategoryNotFound(name)
        return category

    def name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        """Case-insensitive name lookup, optionally ignoring the category being edited."""
        query = self.db.query(Category.id).filter(
            func.lower(Category.name) == name.strip().lower()
        )
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    def is_valid_parent(self, category_id: int, candidate_parent_id: int) -> bool:
        """Check that ``candidate_parent_id`` can become the parent of ``category_id``.

        Walks up from the candidate; reaching ``category_id`` means the candidate
        is one of its descendants. A revisited id means the stored chain is
        already cyclic, which is never a valid place to attach.
        """
        if category_id == candidate_parent_id:
            return False

        candidate = self.db.get(Category, candidate_parent_id)
        if candidate is None or not candidate.active:
            return False

        visited: set[int] = set()
        current = candidate
        while current is not None:
            if current.id == category_id or current.id in visited:
                return False
            visited.add(current.id)
            if current.parent_id is None:
                break
            current = self.db.get(Category, current.parent_id)

        return True

    def can_delete(self, category_id: int) -> bool:
        self.get(category_id)
        return not self._has_products(category_id) and not self._has_subcategories(category_id)

    # Mutations

    def create(self, data: CategoryCreate) -> Category:
        if self.name_exists(data.name):
            raise DuplicateCategoryName(data.name)

        if data.parent_id is not None:
            self._require_active_parent(data.parent_id)

        category = Category(
            name=data.name,
            description=data.description,
            product_type=data.product_type,
            parent_id=data.parent_id,
            display_order=data.display_order,
            active=True,
        )
        self.db.add(category)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another request took the name after the uniqueness check
            self.db.rollback()
            raise DuplicateCategoryName(data.name) from e
        self.db.refresh(category)

        logger.info(f"Created category {category.id} '{category.name}' (parent={category.parent_id})")
        return category

    def update(
        self, category_id: int, data: CategoryUpdate, row_version: int | None = None
    ) -> Category:
        """Replace the editable fields of a category.

        ``row_version`` is the version the caller loaded; a mismatch means another
        user saved in between and the caller must reload.
        """
        category = self.get(category_id)

        if row_version is not None and row_version != category.row_version:
            raise ConcurrencyConflict(category_id)

        if self.name_exists(data.name, exclude_id=category_id):
            raise DuplicateCategoryName(data.name)

        if data.parent_id is not None and data.parent_id != category.parent_id:
            if data.parent_id == category_id:
                raise SelfParent()
            self._require_active_parent(data.parent_id)
            if not self.is_valid_parent(category_id, data.parent_id):
                raise CircularReference(category_id, data.parent_id)

        category.name = data.name
        category.description = data.description
        category.product_type = data.product_type
        category.parent_id = data.parent_id
        category.display_order = data.display_order
        category.active = data.active

        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrencyConflict(category_id) from e
        except IntegrityError as e:
            self.db.rollback()
            raise DuplicateCategoryName(data.name) from e
        self.db.refresh(category)

        logger.info(f"Updated category {category.id} to version {category.row_version}")
        return category

    def activate(self, category_id: int) -> Category:
        return self._set_active(category_id, True)

    def deactivate(self, category_id: int) -> Category:
        return self._set_active(category_id, False)

    def delete(self, category_id: int) -> None:
        """Physically remove a category that has no products and no subcategories."""
        category = self.get(category_id)

        if self._has_products(category_id):
            raise CategoryHasProducts(category_id)
        if self._has_subcategories(category_id):
            raise CategoryHasSubcategories(category_id)

        self.db.delete(category)
        self.db.commit()
        logger.info(f"Deleted category {category_id}")

    # Helpers

    def _require_active_parent(self, parent_id: int) -> Category:
        parent = self.db.get(Category, parent_id)
        if parent is None:
            raise ParentNotFound(parent_id)
        if not parent.active:
            raise ParentInactive(parent_id)
        return parent

    def _set_active(self, category_id: int, active: bool) -> Category:
        category = self.get(category_id)
        if category.active != active:
            category.active = active
            self.db.commit()
            self.db.refresh(category)
            logger.info(f"Category {category_id} {'activated' if active else 'deactivated'}")
        return category

    def _has_products(self, category_id: int) -> bool:
        return (
            self.db.query(Product.id).filter(Product.category_id == category_id).first()
            is not None
        )

    def _has_subcategories(self, category_id: int) -> bool:
        return (
            self.db.query(Category.id).filter(Category.parent_id == category_id).first()
            is not None
        )
