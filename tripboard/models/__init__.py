"""Models package - re-exports for convenience."""

from tripboard.models.common import ItemKind, calendar_date, to_utc_naive
from tripboard.models.itinerary import (
    Accommodation,
    AccommodationCreate,
    AccommodationUpdate,
    DayWithItems,
    Flight,
    FlightCreate,
    FlightUpdate,
    ItemUpdate,
    Itinerary,
    ItineraryCreate,
    ItineraryDay,
    ItineraryItem,
    ItineraryUpdate,
    ItineraryView,
    PlaceRef,
)

__all__ = [
    # Common
    "ItemKind",
    "calendar_date",
    "to_utc_naive",
    # Records
    "Itinerary",
    "ItineraryDay",
    "ItineraryItem",
    "Accommodation",
    "Flight",
    "PlaceRef",
    # Views
    "DayWithItems",
    "ItineraryView",
    # Inputs
    "ItineraryCreate",
    "ItineraryUpdate",
    "ItemUpdate",
    "AccommodationCreate",
    "AccommodationUpdate",
    "FlightCreate",
    "FlightUpdate",
]
