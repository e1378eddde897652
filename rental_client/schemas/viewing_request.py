import calendar
import re
from datetime import date
from typing import Any, Literal

import pydantic
from pydantic import Field, ValidationInfo, field_validator

from rental_client.core.errors import ValidationError
from rental_client.schemas.base import ApiModel, UtcDatetime

TimeSlot = Literal["morning", "afternoon", "evening"]
ViewingStatus = Literal["pending", "confirmed", "cancelled", "completed", "rejected"]

CONTACT_NUMBER_PATTERN = re.compile(r"^[\d\s+\-()]+$")
MAX_VIEWING_MESSAGE_LENGTH = 500
BOOKING_WINDOW_MONTHS = 3


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class ViewingRequest(ApiModel):
    id: str
    tenant_id: str | None = None
    landlord_id: str | None = None
    property_id: str
    preferred_date: date
    time_slot: TimeSlot = "afternoon"
    contact_number: str = ""
    tenant_name: str = ""
    message: str | None = None
    status: ViewingStatus = "pending"
    landlord_notes: str | None = None
    confirmed_date: str | None = None
    confirmed_time: str | None = None
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
    listing: dict[str, Any] | None = Field(default=None, alias="property")


class ViewingRequestCreate(ApiModel):
    property_id: str
    preferred_date: date
    time_slot: TimeSlot = "afternoon"
    contact_number: str
    tenant_name: str
    message: str = Field(default="", max_length=MAX_VIEWING_MESSAGE_LENGTH)

    @field_validator("tenant_name", "message")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("tenant_name")
    @classmethod
    def require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("Please provide your name")
        return value

    @field_validator("contact_number")
    @classmethod
    def validate_contact_number(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Please provide a contact number")
        if not CONTACT_NUMBER_PATTERN.match(cleaned):
            raise ValueError("Please enter a valid phone number")
        return cleaned

    @field_validator("preferred_date")
    @classmethod
    def validate_preferred_date(cls, value: date, info: ValidationInfo) -> date:
        today = (info.context or {}).get("today") or date.today()
        if value < today:
            raise ValueError("Preferred date cannot be in the past")
        if value > add_months(today, BOOKING_WINDOW_MONTHS):
            raise ValueError(
                f"Preferred date must be within {BOOKING_WINDOW_MONTHS} months"
            )
        return value

    @classmethod
    def from_form(cls, today: date | None = None, **fields: Any) -> "ViewingRequestCreate":
        try:
            return cls.model_validate(fields, context={"today": today})
        except pydantic.ValidationError as exc:
            first = exc.errors()[0]
            message = str(first.get("msg", "Invalid viewing request"))
            raise ValidationError(message.removeprefix("Value error, ")) from exc


class ViewingRequestUpdate(ApiModel):
    status: ViewingStatus
    landlord_notes: str | None = None
    confirmed_date: str | None = None
    confirmed_time: str | None = None
