"""Category business rule violations raised by the service layer."""

from fastapi import status


class CategoryError(Exception):
    """Base exception for category rule violations."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "CATEGORY_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class CategoryNotFound(CategoryError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "CATEGORY_NOT_FOUND"

    def __init__(self, identifier: int | str):
        super().__init__(f"Category not found: {identifier}")


class DuplicateCategoryName(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CATEGORY_NAME_DUPLICATE"

    def __init__(self, name: str):
        super().__init__(f"A category named '{name}' already exists")


class ParentNotFound(CategoryError):
    error_code = "PARENT_CATEGORY_NOT_FOUND"

    def __init__(self, parent_id: int):
        super().__init__(f"Parent category not found: {parent_id}")


class ParentInactive(CategoryError):
    error_code = "PARENT_CATEGORY_INACTIVE"

    def __init__(self, parent_id: int):
        super().__init__(f"Parent category {parent_id} is inactive")


class SelfParent(CategoryError):
    error_code = "SELF_PARENT"

    def __init__(self):
        super().__init__("A category cannot be its own parent")


class CircularReference(CategoryError):
    error_code = "CIRCULAR_REFERENCE"

    def __init__(self, category_id: int, parent_id: int):
        super().__init__(
            f"Setting {parent_id} as parent of {category_id} would create a circular reference"
        )


class CategoryHasProducts(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CATEGORY_HAS_PRODUCTS"

    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} has associated products")


class CategoryHasSubcategories(CategoryError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CATEGORY_HAS_SUBCATEGORIES"

    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} has subcategories")


class ConcurrencyConflict(CategoryError):
    status_code = status.HTTP_412_PRECONDITION_FAILED
    error_code = "CONCURRENCY_CONFLICT"

    def __init__(self, category_id: int):
        super().__init__(f"Category {category_id} was modified by another user")
