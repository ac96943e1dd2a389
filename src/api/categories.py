"""Category API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from src.api.dependencies import get_category_service
from src.models.enums import ProductType
from src.schemas.category import (
    CanDeleteResponse,
    CategoryCreate,
    CategoryRecord,
    CategoryResponse,
    CategoryUpdate,
    NameExistsResponse,
    ValidParentResponse,
)
from src.services.category_service import CategoryService
from src.services.hierarchy import build_hierarchy

router = APIRouter(prefix="/api/v1/categories", tags=["categories"])

Service = Annotated[CategoryService, Depends(get_category_service)]


def parse_row_version(if_match: str | None) -> int | None:
    """Read the row version a client sent in ``If-Match``."""
    if if_match is None:
        return None
    value = if_match.strip()
    if value.startswith("W/"):
        value = value[2:]
    try:
        return int(value.strip('"'))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="If-Match must be a row version"
        ) from None


@router.get("", response_model=list[CategoryResponse])
def get_categories(service: Service):
    """Get the full flat category collection."""
    return service.list_all()


@router.get("/active", response_model=list[CategoryResponse])
def get_active_categories(service: Service):
    return service.list_active()


@router.get("/roots", response_model=list[CategoryResponse])
def get_root_categories(service: Service):
    """Get categories without a parent."""
    return service.list_roots()


@router.get("/ordered", response_model=list[CategoryResponse])
def get_ordered_categories(service: Service):
    return service.list_ordered()


@router.get("/hierarchy", response_model=list[CategoryRecord])
def get_category_hierarchy(service: Service):
    """Get every category nested under its parent."""
    records = [CategoryRecord.model_validate(category) for category in service.list_ordered()]
    return build_hierarchy(records)


@router.get("/types")
def get_product_types():
    """Get the product types available for categories."""
    return ProductType.options()


@router.get("/type/{product_type}", response_model=list[CategoryResponse])
def get_categories_by_type(product_type: ProductType, service: Service):
    return service.list_by_type(product_type)


@router.get("/name-exists", response_model=NameExistsResponse)
def check_name_exists(
    service: Service,
    name: Annotated[str, Query(min_length=1)],
    exclude_id: int | None = None,
):
    """Check whether a name is already used by another category."""
    return NameExistsResponse(exists=service.name_exists(name, exclude_id))


@router.get("/by-name/{name}", response_model=CategoryResponse)
def get_category_by_name(name: str, service: Service):
    return service.get_by_name(name)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(category_id: int, service: Service):
    return service.get(category_id)


@router.get("/{category_id}/subcategories", response_model=list[CategoryResponse])
def get_subcategories(category_id: int, service: Service):
    """Get the direct children of a category."""
    return service.list_subcategories(category_id)


@router.get("/{category_id}/valid-parent/{parent_id}", response_model=ValidParentResponse)
def check_valid_parent(category_id: int, parent_id: int, service: Service):
    """Check that ``parent_id`` is active and not the category or one of its descendants."""
    return ValidParentResponse(is_valid=service.is_valid_parent(category_id, parent_id))


@router.get("/{category_id}/can-delete", response_model=CanDeleteResponse)
def check_can_delete(category_id: int, service: Service):
    """Check that a category has no products and no subcategories."""
    return CanDeleteResponse(can_delete=service.can_delete(category_id))


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(category_data: CategoryCreate, service: Service):
    """Create a new category."""
    return service.create(category_data)


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    service: Service,
    if_match: Annotated[str | None, Header()] = None,
):
    """Update a category. Send the loaded row version in ``If-Match`` to detect conflicts."""
    return service.update(category_id, category_data, parse_row_version(if_match))


@router.patch("/{category_id}/activate", status_code=status.HTTP_204_NO_CONTENT)
def activate_category(category_id: int, service: Service):
    service.activate(category_id)


@router.patch("/{category_id}/deactivate", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_category(category_id: int, service: Service):
    service.deactivate(category_id)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, service: Service):
    """Delete a category without products or subcategories."""
    service.delete(category_id)
