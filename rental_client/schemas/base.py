from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Backend timestamps sometimes arrive naive; ordering needs them comparable.
UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


class ApiModel(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
