"""HTTP client for the category API."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from src.config import get_settings
from src.schemas.category import CategoryCreate, CategoryRecord, CategoryUpdate

logger = logging.getLogger(__name__)

DEPENDENCY_ERROR_CODES = {"CATEGORY_HAS_PRODUCTS", "CATEGORY_HAS_SUBCATEGORIES"}


class CategoryApiError(Exception):
    """The category API rejected a request or could not be reached."""

    def __init__(self, detail: str, status_code: int | None = None, error_code: str | None = None):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class TransportError(CategoryApiError):
    """The request never got an HTTP response (connection refused, timeout, ...)."""


class NotFoundError(CategoryApiError):
    pass


class ConcurrencyConflictError(CategoryApiError):
    """The record changed since it was loaded; reload before retrying."""


class DependencyConflictError(CategoryApiError):
    """Delete refused because of subcategories or referenced products."""


def _error_from_response(response: httpx.Response) -> CategoryApiError:
    detail: Any = response.reason_phrase
    error_code = None
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        detail = body.get("detail", detail)
        error_code = body.get("error_code")

    # FastAPI request validation errors carry a list of issues
    if isinstance(detail, list):
        detail = ", ".join(str(issue.get("msg", issue)) for issue in detail)

    status_code = response.status_code
    if status_code == 412 or error_code == "CONCURRENCY_CONFLICT":
        return ConcurrencyConflictError(str(detail), status_code, error_code)
    if status_code == 404:
        return NotFoundError(str(detail), status_code, error_code)
    if status_code == 409 and error_code in DEPENDENCY_ERROR_CODES:
        return DependencyConflictError(str(detail), status_code, error_code)
    return CategoryApiError(str(detail), status_code, error_code)


class CategoryClient:
    """Async client for the category endpoints."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self.settings = get_settings()
        root = (base_url or self.settings.api_base_url).rstrip("/")
        self.base_url = f"{root}{self.settings.api_prefix}/categories"
        self._client = http_client or httpx.AsyncClient(timeout=self.settings.request_timeout)

    async def __aenter__(self) -> "CategoryClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str = "", **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling {method} {url}: {e}")
            raise TransportError(f"Could not reach the category service: {e}") from e

        if response.is_error:
            error = _error_from_response(response)
            logger.warning(
                f"{method} {url} failed with {response.status_code} ({error.error_code}): {error.detail}"
            )
            raise error
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Undecodable body from {response.request.url}: {e}")
            raise CategoryApiError(
                "Unexpected response from the category service", response.status_code
            ) from e

    def _field(self, response: httpx.Response, key: str) -> Any:
        body = self._json(response)
        if not isinstance(body, dict) or key not in body:
            logger.warning(f"Response from {response.request.url} has no '{key}' field")
            raise CategoryApiError(
                "Unexpected response from the category service", response.status_code
            )
        return body[key]

    def _records(self, response: httpx.Response, many: bool = False) -> Any:
        body = self._json(response)
        try:
            if many:
                return [CategoryRecord.model_validate(item) for item in body]
            return CategoryRecord.model_validate(body)
        except (ValidationError, TypeError) as e:
            logger.warning(f"Invalid category payload from {response.request.url}: {e}")
            raise CategoryApiError(
                "Unexpected response from the category service", response.status_code
            ) from e

    async def list_all(self) -> list[CategoryRecord]:
        response = await self._request("GET")
        return self._records(response, many=True)

    async def get_by_id(self, category_id: int) -> CategoryRecord:
        response = await self._request("GET", f"/{category_id}")
        return self._records(response)

    async def create(self, payload: CategoryCreate) -> CategoryRecord:
        response = await self._request("POST", json=payload.model_dump(mode="json"))
        return self._records(response)

    async def update(
        self, category_id: int, payload: CategoryUpdate, row_version: int | None = None
    ) -> CategoryRecord:
        headers = {"If-Match": str(row_version)} if row_version is not None else {}
        response = await self._request(
            "PUT", f"/{category_id}", json=payload.model_dump(mode="json"), headers=headers
        )
        return self._records(response)

    async def activate(self, category_id: int) -> None:
        await self._request("PATCH", f"/{category_id}/activate")

    async def deactivate(self, category_id: int) -> None:
        await self._request("PATCH", f"/{category_id}/deactivate")

    async def can_delete(self, category_id: int) -> bool:
        response = await self._request("GET", f"/{category_id}/can-delete")
        return self._field(response, "can_delete")

    async def delete(self, category_id: int) -> None:
        await self._request("DELETE", f"/{category_id}")

    async def name_exists(self, name: str, exclude_id: int | None = None) -> bool:
        """Advisory uniqueness check; the server still enforces it on save."""
        params: dict[str, Any] = {"name": name}
        if exclude_id is not None:
            params["exclude_id"] = exclude_id
        response = await self._request("GET", "/name-exists", params=params)
        return self._field(response, "exists")

    async def is_valid_parent(self, category_id: int, candidate_parent_id: int) -> bool:
        response = await self._request("GET", f"/{category_id}/valid-parent/{candidate_parent_id}")
        return self._field(response, "is_valid")


def get_category_client() -> CategoryClient:
    """Get a category client pointed at the configured API."""
    return CategoryClient()
