"""Category schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.enums import ProductType


class CategoryCreate(BaseModel):
    """Create a new category."""

    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)
    product_type: ProductType
    parent_id: int | None = None
    display_order: int = Field(0, ge=0)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("name must have at least 2 characters")
        return value

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class CategoryUpdate(CategoryCreate):
    """Replace the editable fields of a category."""

    active: bool = True


class CategoryResponse(BaseModel):
    """Category response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    product_type: ProductType
    parent_id: int | None
    parent_name: str | None = None
    display_order: int
    active: bool
    product_count: int = 0
    row_version: int
    created_at: datetime
    updated_at: datetime


class CategoryRecord(BaseModel):
    """A category as held in memory by the admin screen.

    ``children`` is never persisted. It is rebuilt from the flat collection
    every time the hierarchy is built and must not be edited directly.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    product_type: ProductType
    parent_id: int | None = None
    parent_name: str | None = None
    display_order: int = 0
    active: bool = True
    product_count: int = 0
    row_version: int | None = None
    children: list["CategoryRecord"] = Field(default_factory=list)


class CategoryDropdownOption(BaseModel):
    """Parent selection entry, indented by depth."""

    id: int
    name: str
    level: int
    full_name: str
    active: bool


class NameExistsResponse(BaseModel):
    exists: bool


class ValidParentResponse(BaseModel):
    is_valid: bool


class CanDeleteResponse(BaseModel):
    can_delete: bool
