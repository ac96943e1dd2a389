"""Parent selection guard and debounced server-side field validation."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.config import get_settings
from src.schemas.category import CategoryRecord
from src.services.category_client import CategoryApiError, CategoryClient
from src.services.hierarchy import get_descendant_ids

logger = logging.getLogger(__name__)


class FieldError(str, Enum):
    """Field-level validation failures. They block saving but keep the user's input."""

    NAME_TAKEN = "name_taken"
    PARENT_NOT_FOUND = "parent_not_found"
    PARENT_INACTIVE = "parent_inactive"
    SELF_PARENT = "self_parent"
    CIRCULAR_REFERENCE = "circular_reference"

    @property
    def message(self) -> str:
        return FIELD_ERROR_MESSAGES[self]


FIELD_ERROR_MESSAGES = {
    FieldError.NAME_TAKEN: "This name is already used by another category",
    FieldError.PARENT_NOT_FOUND: "The selected parent category is not valid",
    FieldError.PARENT_INACTIVE: "The selected parent category is inactive",
    FieldError.SELF_PARENT: "A category cannot be its own parent",
    FieldError.CIRCULAR_REFERENCE: "This selection would create a circular reference in the hierarchy",
}


def validate_parent(
    parent_id: int | None,
    categories: Sequence[CategoryRecord],
    editing_id: int | None = None,
) -> FieldError | None:
    """Check a proposed parent against the locally loaded categories.

    Rules apply in order: no parent is always fine; the parent must be a
    loaded, active category; when editing, it can be neither the category
    itself nor one of its descendants.
    """
    if parent_id is None:
        return None

    parent = next((category for category in categories if category.id == parent_id), None)
    if parent is None:
        return FieldError.PARENT_NOT_FOUND
    if not parent.active:
        return FieldError.PARENT_INACTIVE

    if editing_id is not None:
        if parent_id == editing_id:
            return FieldError.SELF_PARENT
        if parent_id in get_descendant_ids(editing_id, categories):
            return FieldError.CIRCULAR_REFERENCE

    return None


class FieldStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class FieldState:
    status: FieldStatus = FieldStatus.IDLE
    request_id: int = 0
    error: FieldError | None = None

    @property
    def blocks_submit(self) -> bool:
        return self.status in (FieldStatus.PENDING, FieldStatus.INVALID)


Check = Callable[[Any], Awaitable[FieldError | None]]


class DebouncedValidator:
    """Validate one form field against the server, last input wins.

    Each ``submit`` moves the field to PENDING with a fresh request id and
    cancels the check still waiting for the previous input. The check runs
    after ``delay`` seconds of quiet. A result whose request id is no longer
    current is dropped. If the server cannot be asked the field resolves to
    VALID, since the server enforces the rule again on save.
    """

    def __init__(
        self,
        check: Check,
        delay: float | None = None,
        skip: Callable[[Any], bool] | None = None,
        on_resolved: Callable[[FieldState], None] | None = None,
    ) -> None:
        self._check = check
        self._skip = skip
        self._on_resolved = on_resolved
        self.delay = get_settings().validation_debounce_seconds if delay is None else delay
        self._request_id = 0
        self._task: asyncio.Task | None = None
        self.state = FieldState()

    @property
    def pending(self) -> bool:
        return self.state.status == FieldStatus.PENDING

    def submit(self, value: Any) -> int:
        """Start validating ``value``; must be called from a running event loop."""
        self._cancel()
        self._request_id += 1
        request_id = self._request_id

        if self._skip is not None and self._skip(value):
            self._resolve(request_id, FieldState(FieldStatus.VALID, request_id))
            return request_id

        self.state = FieldState(FieldStatus.PENDING, request_id)
        self._task = asyncio.get_running_loop().create_task(self._run(value, request_id))
        return request_id

    def reset(self) -> None:
        self._cancel()
        self._request_id += 1
        self.state = FieldState()

    async def wait(self) -> FieldState:
        """Wait until the latest submitted value has been resolved."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self.state

    async def _run(self, value: Any, request_id: int) -> None:
        await asyncio.sleep(self.delay)
        try:
            error = await self._check(value)
        except CategoryApiError as e:
            logger.warning(f"Validation request {request_id} failed, not blocking the field: {e}")
            error = None

        if error is None:
            state = FieldState(FieldStatus.VALID, request_id)
        else:
            state = FieldState(FieldStatus.INVALID, request_id, error)
        self._resolve(request_id, state)

    def _resolve(self, request_id: int, state: FieldState) -> None:
        if request_id != self._request_id:
            logger.debug(f"Dropping stale validation result {request_id} (current {self._request_id})")
            return
        self.state = state
        if self._on_resolved is not None:
            self._on_resolved(state)

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


def name_uniqueness_validator(
    client: CategoryClient,
    exclude_id: int | None = None,
    delay: float | None = None,
    on_resolved: Callable[[FieldState], None] | None = None,
) -> DebouncedValidator:
    """Advisory check that no other category already uses the name."""

    async def check(name: str) -> FieldError | None:
        exists = await client.name_exists(name.strip(), exclude_id)
        return FieldError.NAME_TAKEN if exists else None

    return DebouncedValidator(
        check,
        delay=delay,
        skip=lambda name: not name or len(name.strip()) < 2,
        on_resolved=on_resolved,
    )


def parent_reference_validator(
    client: CategoryClient,
    category_id: int | None,
    delay: float | None = None,
    on_resolved: Callable[[FieldState], None] | None = None,
) -> DebouncedValidator:
    """Server confirmation that the chosen parent does not create a cycle.

    Only meaningful while editing; a new category has no descendants yet.
    """

    async def check(parent_id: int) -> FieldError | None:
        valid = await client.is_valid_parent(category_id, parent_id)
        return None if valid else FieldError.CIRCULAR_REFERENCE

    return DebouncedValidator(
        check,
        delay=delay,
        skip=lambda parent_id: parent_id is None or category_id is None,
        on_resolved=on_resolved,
    )
