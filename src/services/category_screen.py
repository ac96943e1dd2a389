"""Session state of the category administration screen.

The flat category list is the only mutable state. The visible tree, the
dropdown options and the descendant sets are derived from it on demand and
thrown away after every load or successful mutation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from enum import Enum

from pydantic import ValidationError

from src.models.enums import ProductType
from src.schemas.category import (
    CategoryCreate,
    CategoryDropdownOption,
    CategoryRecord,
    CategoryUpdate,
)
from src.services.category_client import (
    CategoryApiError,
    CategoryClient,
    ConcurrencyConflictError,
    DependencyConflictError,
    NotFoundError,
    TransportError,
)
from src.services.edit_guard import (
    DebouncedValidator,
    FieldError,
    name_uniqueness_validator,
    parent_reference_validator,
    validate_parent,
)
from src.services.hierarchy import (
    CategoryFilter,
    StatusFilter,
    build_filtered_hierarchy,
    dropdown_options,
    project_dropdown,
)

logger = logging.getLogger(__name__)

# Server error codes that point at a single form field
FIELD_ERROR_CODES = {
    "CATEGORY_NAME_DUPLICATE": ("name", FieldError.NAME_TAKEN),
    "CIRCULAR_REFERENCE": ("parent_id", FieldError.CIRCULAR_REFERENCE),
    "SELF_PARENT": ("parent_id", FieldError.SELF_PARENT),
    "PARENT_CATEGORY_INACTIVE": ("parent_id", FieldError.PARENT_INACTIVE),
    "PARENT_CATEGORY_NOT_FOUND": ("parent_id", FieldError.PARENT_NOT_FOUND),
}


class Severity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    """A message for the user about the outcome of an operation."""

    severity: Severity
    summary: str
    detail: str


@dataclass
class CategoryForm:
    """Values being edited plus the async validators attached to them."""

    name: str = ""
    description: str | None = None
    product_type: ProductType | None = None
    parent_id: int | None = None
    display_order: int = 0
    active: bool = True
    editing_id: int | None = None
    row_version: int | None = None
    name_check: DebouncedValidator | None = None
    parent_check: DebouncedValidator | None = None
    field_errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_edit(self) -> bool:
        return self.editing_id is not None

    @property
    def validation_pending(self) -> bool:
        return any(check is not None and check.pending for check in self._checks())

    def set_name(self, name: str) -> None:
        self.name = name
        self.field_errors.pop("name", None)
        if self.name_check is not None:
            self.name_check.submit(name)

    def set_parent(self, parent_id: int | None) -> None:
        self.parent_id = parent_id
        self.field_errors.pop("parent_id", None)
        if self.parent_check is not None:
            self.parent_check.submit(parent_id)

    async def wait_for_validation(self) -> None:
        for check in self._checks():
            if check is not None:
                await check.wait()

    def async_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for field_name, check in (("name", self.name_check), ("parent_id", self.parent_check)):
            if check is not None and check.state.error is not None:
                errors[field_name] = check.state.error.message
        return errors

    def to_create(self) -> CategoryCreate:
        return CategoryCreate(
            name=self.name,
            description=self.description,
            product_type=self.product_type,
            parent_id=self.parent_id,
            display_order=self.display_order,
        )

    def to_update(self) -> CategoryUpdate:
        return CategoryUpdate(
            name=self.name,
            description=self.description,
            product_type=self.product_type,
            parent_id=self.parent_id,
            display_order=self.display_order,
            active=self.active,
        )

    def _checks(self) -> tuple[DebouncedValidator | None, DebouncedValidator | None]:
        return self.name_check, self.parent_check


ConfirmDelete = Callable[[CategoryRecord], Awaitable[bool]]


class CategoryScreen:
    """Category list, filters and form state for one admin session."""

    def __init__(self, client: CategoryClient, validation_delay: float | None = None) -> None:
        self.client = client
        self.validation_delay = validation_delay
        self.categories: list[CategoryRecord] = []
        self.category_filter = CategoryFilter()
        self.form: CategoryForm | None = None
        self.notices: list[Notice] = []

    # Derived views

    def visible_tree(self) -> list[CategoryRecord]:
        """Roots of the filtered tree, recomputed from the full collection."""
        return build_filtered_hierarchy(self.categories, self.category_filter)

    def all_dropdown_options(self) -> list[CategoryDropdownOption]:
        return dropdown_options(self.categories)

    def parent_options(self) -> list[CategoryDropdownOption]:
        """Parents selectable in the open form."""
        editing_id = self.form.editing_id if self.form is not None else None
        return project_dropdown(self.all_dropdown_options(), self.categories, editing_id)

    def find(self, category_id: int) -> CategoryRecord | None:
        return next((c for c in self.categories if c.id == category_id), None)

    # Filters

    def set_search_text(self, text: str) -> None:
        self.category_filter = replace(self.category_filter, search_text=text)

    def set_product_type(self, product_type: ProductType | None) -> None:
        self.category_filter = replace(self.category_filter, product_type=product_type)

    def set_status(self, status: StatusFilter) -> None:
        self.category_filter = replace(self.category_filter, status=status)

    def clear_filters(self) -> None:
        self.category_filter = CategoryFilter()

    @property
    def has_active_filters(self) -> bool:
        return self.category_filter.is_active

    # Loading

    async def load(self) -> bool:
        """Replace the flat collection with the server's. Returns False on failure."""
        try:
            categories = await self.client.list_all()
        except CategoryApiError as e:
            self._notify(Severity.ERROR, "Error", f"Could not load categories: {e.detail}")
            return False

        self.categories = sorted(categories, key=lambda c: (c.display_order, c.name.lower()))
        logger.debug(f"Loaded {len(self.categories)} categories")
        return True

    # Form

    def open_create(self) -> CategoryForm:
        self.form = CategoryForm(
            name_check=name_uniqueness_validator(self.client, delay=self.validation_delay),
        )
        return self.form

    async def open_edit(self, category_id: int) -> CategoryForm | None:
        """Open a form on the server's current copy of the category."""
        try:
            category = await self.client.get_by_id(category_id)
        except NotFoundError:
            self._notify(
                Severity.WARNING,
                "Category not found",
                "The category may have been removed by another user.",
            )
            await self.load()
            return None
        except CategoryApiError as e:
            self._notify(Severity.ERROR, "Error", f"Could not open the category: {e.detail}")
            return None

        self.form = CategoryForm(
            name=category.name,
            description=category.description,
            product_type=category.product_type,
            parent_id=category.parent_id,
            display_order=category.display_order,
            active=category.active,
            editing_id=category.id,
            row_version=category.row_version,
            name_check=name_uniqueness_validator(
                self.client, exclude_id=category.id, delay=self.validation_delay
            ),
            parent_check=parent_reference_validator(
                self.client, category.id, delay=self.validation_delay
            ),
        )
        return self.form

    def close_form(self) -> None:
        if self.form is not None:
            for check in (self.form.name_check, self.form.parent_check):
                if check is not None:
                    check.reset()
        self.form = None

    def validate_form(self, form: CategoryForm) -> dict[str, str]:
        """Synchronous field errors: schema constraints plus the local parent guard."""
        errors: dict[str, str] = {}
        try:
            form.to_update() if form.is_edit else form.to_create()
        except ValidationError as e:
            for issue in e.errors():
                field_name = str(issue["loc"][0]) if issue["loc"] else "form"
                errors.setdefault(field_name, issue["msg"])

        parent_error = validate_parent(form.parent_id, self.categories, form.editing_id)
        if parent_error is not None:
            errors["parent_id"] = parent_error.message

        # The server answers "not a valid parent" for any reason; the local rule is more precise
        for field_name, message in form.async_errors().items():
            errors.setdefault(field_name, message)
        return errors

    async def save(self, form: CategoryForm | None = None) -> CategoryRecord | None:
        """Submit the form. Returns the saved category, or None if it was not saved."""
        form = form or self.form
        if form is None:
            return None

        if form.validation_pending:
            self._notify(Severity.INFO, "Validating", "Wait for the field checks to finish.")
            return None

        form.field_errors = self.validate_form(form)
        if form.field_errors:
            count = len(form.field_errors)
            self._notify(Severity.WARNING, "Invalid data", f"Fix {count} field(s) before saving.")
            return None

        try:
            if form.is_edit:
                saved = await self.client.update(form.editing_id, form.to_update(), form.row_version)
            else:
                saved = await self.client.create(form.to_create())
        except ConcurrencyConflictError:
            self._notify(
                Severity.WARNING,
                "Concurrency conflict",
                "This category was modified by another user. The list has been reloaded.",
            )
            self.close_form()
            await self.load()
            return None
        except TransportError as e:
            self._notify(Severity.ERROR, "Connection", f"{e.detail}. Try again.")
            return None
        except CategoryApiError as e:
            if e.error_code in FIELD_ERROR_CODES:
                field_name, error = FIELD_ERROR_CODES[e.error_code]
                form.field_errors[field_name] = error.message
                self._notify(Severity.WARNING, "Invalid data", error.message)
            else:
                self._notify(Severity.ERROR, "Error", f"Could not save the category: {e.detail}")
            return None

        action = "updated" if form.is_edit else "created"
        self._notify(Severity.SUCCESS, "Saved", f"Category '{saved.name}' {action}.")
        self.close_form()
        await self.load()
        return saved

    # Status and delete

    async def activate(self, category_id: int) -> bool:
        return await self._toggle(category_id, True)

    async def deactivate(self, category_id: int) -> bool:
        return await self._toggle(category_id, False)

    async def request_delete(self, category_id: int, confirm: ConfirmDelete) -> bool:
        """Delete after the server allows it and ``confirm`` accepts."""
        category = self.find(category_id)
        label = category.name if category is not None else str(category_id)

        try:
            allowed = await self.client.can_delete(category_id)
        except CategoryApiError as e:
            self._notify(Severity.ERROR, "Error", f"Could not check '{label}' for deletion: {e.detail}")
            return False

        if not allowed:
            self._notify(
                Severity.WARNING,
                "Cannot delete",
                f"Category '{label}' has associated products or subcategories.",
            )
            return False

        if category is None or not await confirm(category):
            return False

        try:
            await self.client.delete(category_id)
        except (DependencyConflictError, NotFoundError) as e:
            self._notify(Severity.WARNING, "Cannot delete", e.detail)
            await self.load()
            return False
        except CategoryApiError as e:
            self._notify(Severity.ERROR, "Error", f"Could not delete '{label}': {e.detail}")
            return False

        self._notify(Severity.SUCCESS, "Deleted", f"Category '{label}' deleted.")
        await self.load()
        return True

    async def _toggle(self, category_id: int, active: bool) -> bool:
        verb = "activate" if active else "deactivate"
        try:
            if active:
                await self.client.activate(category_id)
            else:
                await self.client.deactivate(category_id)
        except CategoryApiError as e:
            self._notify(Severity.ERROR, "Error", f"Could not {verb} the category: {e.detail}")
            return False

        self._notify(Severity.SUCCESS, "Saved", f"Category {verb}d.")
        await self.load()
        return True

    def _notify(self, severity: Severity, summary: str, detail: str) -> None:
        if severity == Severity.ERROR:
            logger.error(f"{summary}: {detail}")
        elif severity == Severity.WARNING:
            logger.warning(f"{summary}: {detail}")
        self.notices.append(Notice(severity, summary, detail))
