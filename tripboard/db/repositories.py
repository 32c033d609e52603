"""Repository protocol interfaces for data access."""

import uuid
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import date
from typing import Any, Protocol

from tripboard.models.common import ItemKind
from tripboard.models.itinerary import (
    Accommodation,
    AccommodationCreate,
    Flight,
    FlightCreate,
    Itinerary,
    ItineraryDay,
    ItineraryItem,
    PlaceRef,
)


class ItineraryStore(Protocol):
    """Persistence boundary for itineraries and everything they own.

    No business logic lives here: callers decide orders, day numbers and
    cascades; the store only reads and writes rows.
    """

    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work.

        Nested units join the outermost one. The outermost unit commits on
        success and rolls back every write on error, re-raising the error
        (driver errors are raised as PersistenceError).
        """
        ...

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the outermost unit of work commits.

        Callbacks of a unit that rolls back are dropped. Outside any unit
        the callback runs immediately.
        """
        ...

    # Itineraries

    async def create_itinerary(
        self,
        project_id: uuid.UUID,
        title: str | None,
        start_date: date,
        end_date: date,
        day_dates: list[date],
    ) -> Itinerary:
        """Create an itinerary with one day per date (day numbers 1..N)."""
        ...

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        ...

    async def get_itinerary_by_project(self, project_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary owned by a project."""
        ...

    async def update_itinerary(
        self, itinerary_id: uuid.UUID, changes: dict[str, Any]
    ) -> Itinerary:
        """Apply column changes to an itinerary."""
        ...

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> None:
        """Delete an itinerary with its items, days, stays and flights."""
        ...

    # Days

    async def list_days(self, itinerary_id: uuid.UUID) -> list[ItineraryDay]:
        """List days ordered by day number."""
        ...

    async def get_day(self, day_id: uuid.UUID) -> ItineraryDay | None:
        """Get day by ID."""
        ...

    async def find_days_in_range(
        self, itinerary_id: uuid.UUID, start: date, end: date
    ) -> list[ItineraryDay]:
        """List days whose date falls in [start, end], ordered by day number."""
        ...

    async def add_day(
        self, itinerary_id: uuid.UUID, day_number: int, day_date: date
    ) -> ItineraryDay:
        """Create a single day."""
        ...

    async def renumber_days(
        self, itinerary_id: uuid.UUID, numbers: dict[uuid.UUID, int]
    ) -> None:
        """Rewrite day numbers for the given days."""
        ...

    async def delete_day(self, day_id: uuid.UUID) -> None:
        """Delete a day and its items."""
        ...

    # Items

    async def list_items(self, day_id: uuid.UUID) -> list[ItineraryItem]:
        """List a day's items by (order, creation)."""
        ...

    async def get_item(self, item_id: uuid.UUID) -> ItineraryItem | None:
        """Get item by ID."""
        ...

    async def list_items_for_accommodation(
        self, accommodation_id: uuid.UUID
    ) -> list[ItineraryItem]:
        """List the items derived from an accommodation."""
        ...

    async def max_order(self, day_id: uuid.UUID) -> int | None:
        """Highest order in a day, or None when the day is empty."""
        ...

    async def shift_orders(self, day_id: uuid.UUID, delta: int) -> None:
        """Add delta to the order of every item in a day."""
        ...

    async def assign_orders(self, day_id: uuid.UUID, orders: dict[uuid.UUID, int]) -> None:
        """Set explicit orders for items of a day."""
        ...

    async def create_item(
        self,
        *,
        day_id: uuid.UUID,
        item_type: ItemKind,
        order: int,
        place_id: uuid.UUID | None = None,
        accommodation_id: uuid.UUID | None = None,
        start_time: str | None = None,
        note: str | None = None,
    ) -> ItineraryItem:
        """Create an item at the given order."""
        ...

    async def update_item(self, item_id: uuid.UUID, changes: dict[str, Any]) -> ItineraryItem:
        """Apply column changes to an item (including day_id for moves)."""
        ...

    async def delete_item(self, item_id: uuid.UUID) -> None:
        """Delete an item."""
        ...

    async def delete_items_for_accommodation(self, accommodation_id: uuid.UUID) -> int:
        """Delete all items derived from an accommodation; returns the count."""
        ...

    # Accommodations

    async def list_accommodations(self, itinerary_id: uuid.UUID) -> list[Accommodation]:
        """List accommodations sorted by check-in."""
        ...

    async def get_accommodation(self, accommodation_id: uuid.UUID) -> Accommodation | None:
        """Get accommodation by ID."""
        ...

    async def create_accommodation(
        self, itinerary_id: uuid.UUID, data: AccommodationCreate
    ) -> Accommodation:
        """Create an accommodation (no derived items)."""
        ...

    async def update_accommodation(
        self, accommodation_id: uuid.UUID, changes: dict[str, Any]
    ) -> Accommodation:
        """Apply column changes to an accommodation."""
        ...

    async def delete_accommodation(self, accommodation_id: uuid.UUID) -> None:
        """Delete an accommodation and its derived items."""
        ...

    # Flights

    async def list_flights(self, itinerary_id: uuid.UUID) -> list[Flight]:
        """List flights sorted by departure."""
        ...

    async def get_flight(self, flight_id: uuid.UUID) -> Flight | None:
        """Get flight by ID."""
        ...

    async def create_flight(self, itinerary_id: uuid.UUID, data: FlightCreate) -> Flight:
        """Create a flight."""
        ...

    async def update_flight(self, flight_id: uuid.UUID, changes: dict[str, Any]) -> Flight:
        """Apply column changes to a flight."""
        ...

    async def delete_flight(self, flight_id: uuid.UUID) -> None:
        """Delete a flight."""
        ...


class PlaceLookup(Protocol):
    """Read access to the place collaborator."""

    async def get_place(self, project_id: uuid.UUID, place_id: uuid.UUID) -> PlaceRef | None:
        """Get a place if it belongs to the project."""
        ...
