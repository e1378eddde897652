from __future__ import annotations

from rental_client.schemas.favorite import Favorite, FavoriteCreate
from rental_client.services.api_client import ApiClient, envelope_field, parse_models


class FavoritesApi:
    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_all(self) -> list[Favorite]:
        payload = await self._client.get("/favorites")
        return parse_models(Favorite, envelope_field(payload, "favorites"))

    async def add(self, property_id: str) -> None:
        await self._client.post("/favorites", json=FavoriteCreate(property_id=property_id).model_dump())

    async def remove(self, property_id: str) -> None:
        await self._client.delete(f"/favorites/{property_id}")

    async def check(self, property_id: str) -> bool:
        payload = await self._client.get(f"/favorites/check/{property_id}")
        return bool(envelope_field(payload, "is_favorite"))
