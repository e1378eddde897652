from typing import Any

from pydantic import Field

from rental_client.schemas.base import ApiModel, UtcDatetime


class Favorite(ApiModel):
    # Locally added favorites carry no id until the list is reloaded
    id: str | None = None
    user_id: str | None = None
    property_id: str
    created_at: UtcDatetime | None = None
    listing: dict[str, Any] | None = Field(default=None, alias="property")


class FavoriteCreate(ApiModel):
    property_id: str
