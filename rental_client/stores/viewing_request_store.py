from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from rental_client.schemas.viewing_request import (
    ViewingRequest,
    ViewingRequestCreate,
    ViewingRequestUpdate,
    ViewingStatus,
)
from rental_client.services.viewing_requests_api import ViewingRequestsApi
from rental_client.stores.resource_store import ListStore

CLOSED_STATUSES = frozenset({"completed", "rejected", "cancelled"})


@dataclass
class GroupedViewingRequests:
    pending: list[ViewingRequest] = field(default_factory=list)
    upcoming: list[ViewingRequest] = field(default_factory=list)
    past: list[ViewingRequest] = field(default_factory=list)


class ViewingRequestStore(ListStore[ViewingRequest]):
    resource_name = "viewing requests"

    def __init__(self, api: ViewingRequestsApi, *, status_filter: str | None = None) -> None:
        super().__init__()
        self._api = api
        self.status_filter = status_filter

    async def _fetch(self) -> list[ViewingRequest]:
        return await self._api.get_all(self.status_filter)

    def get(self, request_id: str) -> ViewingRequest | None:
        return next((item for item in self._items if item.id == request_id), None)

    async def create(self, data: ViewingRequestCreate) -> ViewingRequest:
        # The server assigns the id, so creation is not optimistic
        created = await self._api.create(data)
        self._items = [item for item in self._items if item.id != created.id] + [created]
        return created

    async def update_status(
        self,
        request_id: str,
        status: ViewingStatus,
        landlord_notes: str | None = None,
    ) -> ViewingRequest:
        changes = {"status": status}
        if landlord_notes is not None:
            changes["landlord_notes"] = landlord_notes

        updated = await self._optimistic(
            lambda items: [
                item.model_copy(update=changes) if item.id == request_id else item
                for item in items
            ],
            lambda: self._api.update(
                request_id,
                ViewingRequestUpdate(status=status, landlord_notes=landlord_notes),
            ),
        )
        self._items = [updated if item.id == request_id else item for item in self._items]
        return updated

    async def cancel(self, request_id: str) -> ViewingRequest:
        return await self.update_status(request_id, "cancelled")

    async def delete(self, request_id: str) -> None:
        await self._optimistic(
            lambda items: [item for item in items if item.id != request_id],
            lambda: self._api.delete(request_id),
        )

    def grouped(self, today: date | None = None) -> GroupedViewingRequests:
        today = today or date.today()
        groups = GroupedViewingRequests()
        for item in self._items:
            if item.status == "pending":
                groups.pending.append(item)
            elif item.status == "confirmed" and item.preferred_date >= today:
                groups.upcoming.append(item)
            elif item.status in CLOSED_STATUSES or item.status == "confirmed":
                groups.past.append(item)
        return groups
