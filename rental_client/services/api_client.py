from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
import pydantic

from rental_client.core.config import settings
from rental_client.core.errors import (
    ApiError,
    AuthError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ValidationError,
)
from rental_client.core.security import BearerAuth, TokenProvider, static_token

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def _extract_detail(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    detail = body.get("detail", body.get("message"))
    if isinstance(detail, str):
        return detail
    if isinstance(detail, list) and detail:
        # FastAPI request-validation shape: [{"loc": [...], "msg": "...", ...}]
        first = detail[0]
        if isinstance(first, dict) and first.get("msg"):
            return str(first["msg"])
    if isinstance(detail, dict):
        nested = detail.get("message") or detail.get("detail")
        if isinstance(nested, str):
            return nested
    return None


def _extract_conversation_id(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for source in (body, body.get("detail")):
        if isinstance(source, dict) and source.get("conversation_id") is not None:
            return str(source["conversation_id"])
    return None


def error_from_response(response: httpx.Response) -> ApiError:
    """Translate a non-2xx response into the typed failure taxonomy."""
    try:
        body = response.json()
    except ValueError:
        body = None

    status_code = response.status_code
    detail = _extract_detail(body)
    message = detail or f"Request failed with status {status_code}"
    existing_id = _extract_conversation_id(body)

    if status_code == 409 or (status_code == 400 and existing_id):
        return ConflictError(
            message,
            status_code=status_code,
            detail=detail,
            existing_conversation_id=existing_id,
        )
    if status_code in (401, 403):
        return AuthError(message, status_code=status_code, detail=detail)
    if status_code == 404:
        return NotFoundError(message, status_code=status_code, detail=detail)
    if status_code in (400, 422):
        return ValidationError(message, status_code=status_code, detail=detail)
    if status_code == 429 or status_code >= 500:
        return NetworkError(message, status_code=status_code, detail=detail)
    return ApiError(message, status_code=status_code, detail=detail)


def parse_model(model: type[ModelT], data: Any) -> ModelT:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ApiError(f"Malformed {model.__name__} in response: {exc}") from exc


def parse_models(model: type[ModelT], data: Any) -> list[ModelT]:
    if not isinstance(data, list):
        raise ApiError(f"Expected a list of {model.__name__} in response")
    return [parse_model(model, item) for item in data]


def envelope_field(payload: Any, key: str) -> Any:
    if not isinstance(payload, dict) or key not in payload:
        raise ApiError(f"Response is missing '{key}'")
    return payload[key]


class ApiClient:
    """Authenticated async transport shared by every API module.

    It is the single place where transport failures and HTTP status codes
    become typed errors; it does no caching.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
        timeout: float | None = None,
        api_prefix: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._prefix = (settings.api_v1_prefix if api_prefix is None else api_prefix).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            auth=BearerAuth(token_provider or static_token(settings.access_token)),
            timeout=timeout or settings.request_timeout_seconds,
            transport=transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self._prefix}{path}"
        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(method, url, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise NetworkError(f"Request to {url} timed out") from exc
        except httpx.RequestError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

        if response.is_error:
            error = error_from_response(response)
            logger.debug("%s %s -> %s (%s)", method, url, response.status_code, type(error).__name__)
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"Response from {url} is not valid JSON") from exc

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def patch(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
