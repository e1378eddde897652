from __future__ import annotations

from rental_client.schemas.favorite import Favorite
from rental_client.services.favorites_api import FavoritesApi
from rental_client.stores.resource_store import ListStore


class FavoritesStore(ListStore[Favorite]):
    resource_name = "favorites"

    def __init__(self, api: FavoritesApi) -> None:
        super().__init__()
        self._api = api

    async def _fetch(self) -> list[Favorite]:
        return await self._api.get_all()

    def is_favorite(self, property_id: str) -> bool:
        return any(item.property_id == property_id for item in self._items)

    async def add(self, property_id: str) -> None:
        if self.is_favorite(property_id):
            return
        await self._optimistic(
            lambda items: [*items, Favorite(property_id=property_id)],
            lambda: self._api.add(property_id),
        )

    async def remove(self, property_id: str) -> None:
        await self._optimistic(
            lambda items: [item for item in items if item.property_id != property_id],
            lambda: self._api.remove(property_id),
        )

    async def toggle(self, property_id: str) -> bool:
        """Flip the favorite state; returns the new state."""
        if self.is_favorite(property_id):
            await self.remove(property_id)
            return False
        await self.add(property_id)
        return True
