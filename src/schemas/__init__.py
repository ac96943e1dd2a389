"""Pydantic schemas for API requests and responses."""

from src.schemas.category import (
    CanDeleteResponse,
    CategoryCreate,
    CategoryDropdownOption,
    CategoryRecord,
    CategoryResponse,
    CategoryUpdate,
    NameExistsResponse,
    ValidParentResponse,
)

__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryRecord",
    "CategoryDropdownOption",
    "NameExistsResponse",
    "ValidParentResponse",
    "CanDeleteResponse",
]
