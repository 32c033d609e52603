"""Common types and enums shared across all models."""

import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BeforeValidator, Field

HHMM_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ItemKind(str, Enum):
    """Kind of itinerary item."""

    place = "place"
    accommodation_checkin = "accommodation_checkin"
    accommodation_checkout = "accommodation_checkout"
    accommodation_stay = "accommodation_stay"


def _coerce_date(value: Any) -> Any:
    # Bare dates (objects or YYYY-MM-DD strings) become midnight timestamps
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and _DATE_ONLY.match(value):
        return datetime.combine(date.fromisoformat(value), datetime.min.time())
    return value


def to_utc_naive(value: datetime) -> datetime:
    """Convert a timestamp to naive UTC (the storage convention)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def calendar_date(value: datetime | date) -> date:
    """Date-only view of a timestamp, ignoring time-of-day."""
    if isinstance(value, datetime):
        return to_utc_naive(value).date()
    return value


UtcDateTime = Annotated[datetime, BeforeValidator(_coerce_date), AfterValidator(to_utc_naive)]

Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]
StartTime = Annotated[str, Field(pattern=HHMM_PATTERN)]
