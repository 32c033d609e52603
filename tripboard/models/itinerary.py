"""Itinerary models - days, ordered items, stays and flights."""

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from tripboard.models.common import ItemKind, Latitude, Longitude, StartTime, UtcDateTime


class Itinerary(BaseModel):
    """Trip-level container for one project."""

    model_config = ConfigDict(from_attributes=True)

    itinerary_id: uuid.UUID
    project_id: uuid.UUID
    title: str | None
    start_date: date
    end_date: date
    created_at: datetime | None = None


class ItineraryDay(BaseModel):
    """Single calendar day of an itinerary (1-based day number)."""

    model_config = ConfigDict(from_attributes=True)

    day_id: uuid.UUID
    itinerary_id: uuid.UUID
    day_number: int
    date: date


class ItineraryItem(BaseModel):
    """Ordered entry within a day.

    Exactly one of place_id/accommodation_id is set: place_id for
    ItemKind.place, accommodation_id for the derived accommodation kinds.
    """

    model_config = ConfigDict(from_attributes=True)

    item_id: uuid.UUID
    day_id: uuid.UUID
    item_type: ItemKind
    place_id: uuid.UUID | None = None
    accommodation_id: uuid.UUID | None = None
    order: int
    start_time: str | None = None
    note: str | None = None
    created_at: datetime | None = None


class Accommodation(BaseModel):
    """Lodging stay. Owns one derived item per day it touches."""

    model_config = ConfigDict(from_attributes=True)

    accommodation_id: uuid.UUID
    itinerary_id: uuid.UUID
    name: str
    address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    check_in: datetime
    check_out: datetime
    note: str | None = None


class Flight(BaseModel):
    """Flight leg. Not part of day ordering."""

    model_config = ConfigDict(from_attributes=True)

    flight_id: uuid.UUID
    itinerary_id: uuid.UUID
    departure_city: str
    arrival_city: str
    airline: str | None = None
    flight_number: str | None = None
    departure_at: datetime
    arrival_at: datetime | None = None
    note: str | None = None


class DayWithItems(ItineraryDay):
    """Day with its items in display order."""

    items: list[ItineraryItem] = Field(default_factory=list)


class ItineraryView(Itinerary):
    """Complete itinerary as shown to a user."""

    days: list[DayWithItems]
    accommodations: list[Accommodation]
    flights: list[Flight]


class ItineraryCreate(BaseModel):
    """Input for creating an itinerary."""

    title: str | None = None
    start_date: date
    end_date: date


class ItineraryUpdate(BaseModel):
    """Partial itinerary update; unset fields are left alone."""

    title: str | None = None
    start_date: date | None = None
    end_date: date | None = None


class ItemUpdate(BaseModel):
    """Partial item update; unset fields are left alone."""

    order: int | None = Field(None, ge=0)
    start_time: StartTime | None = None
    note: str | None = None


class AccommodationCreate(BaseModel):
    """Input for creating an accommodation."""

    name: str = Field(..., min_length=1)
    address: str | None = None
    latitude: Latitude | None = None
    longitude: Longitude | None = None
    check_in: UtcDateTime
    check_out: UtcDateTime
    note: str | None = None


class AccommodationUpdate(BaseModel):
    """Partial accommodation update; unset fields are left alone."""

    name: str | None = Field(None, min_length=1)
    address: str | None = None
    latitude: Latitude | None = None
    longitude: Longitude | None = None
    check_in: UtcDateTime | None = None
    check_out: UtcDateTime | None = None
    note: str | None = None


class FlightCreate(BaseModel):
    """Input for creating a flight."""

    departure_city: str = Field(..., min_length=1)
    arrival_city: str = Field(..., min_length=1)
    airline: str | None = None
    flight_number: str | None = None
    departure_at: UtcDateTime
    arrival_at: UtcDateTime | None = None
    note: str | None = None


class FlightUpdate(BaseModel):
    """Partial flight update; unset fields are left alone."""

    departure_city: str | None = Field(None, min_length=1)
    arrival_city: str | None = Field(None, min_length=1)
    airline: str | None = None
    flight_number: str | None = None
    departure_at: UtcDateTime | None = None
    arrival_at: UtcDateTime | None = None
    note: str | None = None


class PlaceRef(BaseModel):
    """Collaborator place as seen by this core."""

    model_config = ConfigDict(from_attributes=True)

    place_id: uuid.UUID
    project_id: uuid.UUID
    name: str
    category: str | None = None
    latitude: float | None = None
    longitude: float | None = None
