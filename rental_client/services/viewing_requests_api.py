from __future__ import annotations

from rental_client.schemas.viewing_request import (
    ViewingRequest,
    ViewingRequestCreate,
    ViewingRequestUpdate,
)
from rental_client.services.api_client import (
    ApiClient,
    envelope_field,
    parse_model,
    parse_models,
)


class ViewingRequestsApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(self, status_filter: str | None = None) -> list[ViewingRequest]:
        params = {"status_filter": status_filter} if status_filter else None
        payload = await self._client.get("/viewing-requests", params=params)
        return parse_models(ViewingRequest, envelope_field(payload, "viewing_requests"))

    async def get(self, request_id: str) -> ViewingRequest:
        payload = await self._client.get(f"/viewing-requests/{request_id}")
        return parse_model(ViewingRequest, envelope_field(payload, "viewing_request"))

    async def create(self, data: ViewingRequestCreate) -> ViewingRequest:
        payload = await self._client.post(
            "/viewing-requests",
            json=data.model_dump(mode="json"),
        )
        return parse_model(ViewingRequest, envelope_field(payload, "viewing_request"))

    async def update(self, request_id: str, data: ViewingRequestUpdate) -> ViewingRequest:
        payload = await self._client.patch(
            f"/viewing-requests/{request_id}",
            json=data.model_dump(mode="json", exclude_none=True),
        )
        return parse_model(ViewingRequest, envelope_field(payload, "viewing_request"))

    async def cancel(self, request_id: str) -> ViewingRequest:
        return await self.update(request_id, ViewingRequestUpdate(status="cancelled"))

    async def delete(self, request_id: str) -> None:
        await self._client.delete(f"/viewing-requests/{request_id}")
