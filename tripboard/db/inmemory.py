"""In-memory implementations of repository interfaces."""

import itertools
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

from tripboard.errors import NotFoundError
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


class InMemoryItineraryStore:
    """In-memory implementation of ItineraryStore.

    Records are immutable once stored: updates replace the model, so a
    unit-of-work snapshot only needs shallow copies of the tables.
    """

    _TABLES = ("_itineraries", "_days", "_items", "_accommodations", "_flights", "_item_seq")

    def __init__(self) -> None:
        self._itineraries: dict[uuid.UUID, Itinerary] = {}
        self._days: dict[uuid.UUID, ItineraryDay] = {}
        self._items: dict[uuid.UUID, ItineraryItem] = {}
        self._accommodations: dict[uuid.UUID, Accommodation] = {}
        self._flights: dict[uuid.UUID, Flight] = {}
        # Insertion sequence breaks order ties the way created_at does in SQL
        self._item_seq: dict[uuid.UUID, int] = {}
        self._counter = itertools.count()
        self._depth = 0
        self._on_commit: list[Callable[[], None]] = []

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Unit of work; the outermost unit restores its snapshot on error."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        snapshot = {name: dict(getattr(self, name)) for name in self._TABLES}
        self._depth = 1
        try:
            yield
        except Exception:
            for name, table in snapshot.items():
                setattr(self, name, table)
            raise
        finally:
            self._depth = 0
            callbacks, self._on_commit = self._on_commit, []

        for callback in callbacks:
            callback()

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run callback once the outermost unit commits (now if none is open)."""
        if self._depth:
            self._on_commit.append(callback)
        else:
            callback()

    # Itineraries

    async def create_itinerary(
        self,
        project_id: uuid.UUID,
        title: str | None,
        start_date: date,
        end_date: date,
        day_dates: list[date],
    ) -> Itinerary:
        """Create an itinerary with one day per date."""
        itin = Itinerary(
            itinerary_id=uuid.uuid4(),
            project_id=project_id,
            title=title,
            start_date=start_date,
            end_date=end_date,
            created_at=datetime.now(),
        )
        self._itineraries[itin.itinerary_id] = itin
        for number, day_date in enumerate(day_dates, start=1):
            await self.add_day(itin.itinerary_id, number, day_date)
        return itin.model_copy()

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        itin = self._itineraries.get(itinerary_id)
        return itin.model_copy() if itin else None

    async def get_itinerary_by_project(self, project_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary owned by a project."""
        for itin in self._itineraries.values():
            if itin.project_id == project_id:
                return itin.model_copy()
        return None

    async def update_itinerary(
        self, itinerary_id: uuid.UUID, changes: dict[str, Any]
    ) -> Itinerary:
        """Apply column changes to an itinerary."""
        itin = self._require(self._itineraries, itinerary_id, "itinerary")
        self._itineraries[itinerary_id] = itin.model_copy(update=changes)
        return self._itineraries[itinerary_id].model_copy()

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> None:
        """Delete an itinerary with everything it owns."""
        for day in await self.list_days(itinerary_id):
            await self.delete_day(day.day_id)
        for acc in await self.list_accommodations(itinerary_id):
            await self.delete_accommodation(acc.accommodation_id)
        for flight in await self.list_flights(itinerary_id):
            await self.delete_flight(flight.flight_id)
        self._itineraries.pop(itinerary_id, None)

    # Days

    async def list_days(self, itinerary_id: uuid.UUID) -> list[ItineraryDay]:
        """List days ordered by day number."""
        days = [d for d in self._days.values() if d.itinerary_id == itinerary_id]
        days.sort(key=lambda d: d.day_number)
        return [d.model_copy() for d in days]

    async def get_day(self, day_id: uuid.UUID) -> ItineraryDay | None:
        """Get day by ID."""
        day = self._days.get(day_id)
        return day.model_copy() if day else None

    async def find_days_in_range(
        self, itinerary_id: uuid.UUID, start: date, end: date
    ) -> list[ItineraryDay]:
        """List days whose date falls in [start, end], ordered by day number."""
        return [d for d in await self.list_days(itinerary_id) if start <= d.date <= end]

    async def add_day(
        self, itinerary_id: uuid.UUID, day_number: int, day_date: date
    ) -> ItineraryDay:
        """Create a single day."""
        day = ItineraryDay(
            day_id=uuid.uuid4(),
            itinerary_id=itinerary_id,
            day_number=day_number,
            date=day_date,
        )
        self._days[day.day_id] = day
        return day.model_copy()

    async def renumber_days(
        self, itinerary_id: uuid.UUID, numbers: dict[uuid.UUID, int]
    ) -> None:
        """Rewrite day numbers for the given days."""
        for day_id, number in numbers.items():
            day = self._require(self._days, day_id, "day")
            self._days[day_id] = day.model_copy(update={"day_number": number})

    async def delete_day(self, day_id: uuid.UUID) -> None:
        """Delete a day and its items."""
        for item_id in [i.item_id for i in self._items.values() if i.day_id == day_id]:
            await self.delete_item(item_id)
        self._days.pop(day_id, None)

    # Items

    async def list_items(self, day_id: uuid.UUID) -> list[ItineraryItem]:
        """List a day's items by (order, creation)."""
        items = [i for i in self._items.values() if i.day_id == day_id]
        items.sort(key=lambda i: (i.order, self._item_seq[i.item_id]))
        return [i.model_copy() for i in items]

    async def get_item(self, item_id: uuid.UUID) -> ItineraryItem | None:
        """Get item by ID."""
        item = self._items.get(item_id)
        return item.model_copy() if item else None

    async def list_items_for_accommodation(
        self, accommodation_id: uuid.UUID
    ) -> list[ItineraryItem]:
        """List the items derived from an accommodation."""
        return [
            i.model_copy() for i in self._items.values() if i.accommodation_id == accommodation_id
        ]

    async def max_order(self, day_id: uuid.UUID) -> int | None:
        """Highest order in a day, or None when the day is empty."""
        orders = [i.order for i in self._items.values() if i.day_id == day_id]
        return max(orders) if orders else None

    async def shift_orders(self, day_id: uuid.UUID, delta: int) -> None:
        """Add delta to the order of every item in a day."""
        for item in list(self._items.values()):
            if item.day_id == day_id:
                self._items[item.item_id] = item.model_copy(update={"order": item.order + delta})

    async def assign_orders(self, day_id: uuid.UUID, orders: dict[uuid.UUID, int]) -> None:
        """Set explicit orders for items of a day."""
        for item_id, order in orders.items():
            item = self._items.get(item_id)
            if item is not None and item.day_id == day_id:
                self._items[item_id] = item.model_copy(update={"order": order})

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
        item = ItineraryItem(
            item_id=uuid.uuid4(),
            day_id=day_id,
            item_type=item_type,
            place_id=place_id,
            accommodation_id=accommodation_id,
            order=order,
            start_time=start_time,
            note=note,
            created_at=datetime.now(),
        )
        self._items[item.item_id] = item
        self._item_seq[item.item_id] = next(self._counter)
        return item.model_copy()

    async def update_item(self, item_id: uuid.UUID, changes: dict[str, Any]) -> ItineraryItem:
        """Apply column changes to an item."""
        item = self._require(self._items, item_id, "item")
        self._items[item_id] = item.model_copy(update=changes)
        return self._items[item_id].model_copy()

    async def delete_item(self, item_id: uuid.UUID) -> None:
        """Delete an item."""
        self._items.pop(item_id, None)
        self._item_seq.pop(item_id, None)

    async def delete_items_for_accommodation(self, accommodation_id: uuid.UUID) -> int:
        """Delete all items derived from an accommodation; returns the count."""
        owned = [i.item_id for i in self._items.values() if i.accommodation_id == accommodation_id]
        for item_id in owned:
            await self.delete_item(item_id)
        return len(owned)

    # Accommodations

    async def list_accommodations(self, itinerary_id: uuid.UUID) -> list[Accommodation]:
        """List accommodations sorted by check-in."""
        accs = [a for a in self._accommodations.values() if a.itinerary_id == itinerary_id]
        accs.sort(key=lambda a: a.check_in)
        return [a.model_copy() for a in accs]

    async def get_accommodation(self, accommodation_id: uuid.UUID) -> Accommodation | None:
        """Get accommodation by ID."""
        acc = self._accommodations.get(accommodation_id)
        return acc.model_copy() if acc else None

    async def create_accommodation(
        self, itinerary_id: uuid.UUID, data: AccommodationCreate
    ) -> Accommodation:
        """Create an accommodation (no derived items)."""
        acc = Accommodation(
            accommodation_id=uuid.uuid4(),
            itinerary_id=itinerary_id,
            **data.model_dump(),
        )
        self._accommodations[acc.accommodation_id] = acc
        return acc.model_copy()

    async def update_accommodation(
        self, accommodation_id: uuid.UUID, changes: dict[str, Any]
    ) -> Accommodation:
        """Apply column changes to an accommodation."""
        acc = self._require(self._accommodations, accommodation_id, "accommodation")
        self._accommodations[accommodation_id] = acc.model_copy(update=changes)
        return self._accommodations[accommodation_id].model_copy()

    async def delete_accommodation(self, accommodation_id: uuid.UUID) -> None:
        """Delete an accommodation and its derived items."""
        await self.delete_items_for_accommodation(accommodation_id)
        self._accommodations.pop(accommodation_id, None)

    # Flights

    async def list_flights(self, itinerary_id: uuid.UUID) -> list[Flight]:
        """List flights sorted by departure."""
        flights = [f for f in self._flights.values() if f.itinerary_id == itinerary_id]
        flights.sort(key=lambda f: f.departure_at)
        return [f.model_copy() for f in flights]

    async def get_flight(self, flight_id: uuid.UUID) -> Flight | None:
        """Get flight by ID."""
        flight = self._flights.get(flight_id)
        return flight.model_copy() if flight else None

    async def create_flight(self, itinerary_id: uuid.UUID, data: FlightCreate) -> Flight:
        """Create a flight."""
        flight = Flight(flight_id=uuid.uuid4(), itinerary_id=itinerary_id, **data.model_dump())
        self._flights[flight.flight_id] = flight
        return flight.model_copy()

    async def update_flight(self, flight_id: uuid.UUID, changes: dict[str, Any]) -> Flight:
        """Apply column changes to a flight."""
        flight = self._require(self._flights, flight_id, "flight")
        self._flights[flight_id] = flight.model_copy(update=changes)
        return self._flights[flight_id].model_copy()

    async def delete_flight(self, flight_id: uuid.UUID) -> None:
        """Delete a flight."""
        self._flights.pop(flight_id, None)

    @staticmethod
    def _require(table: dict[uuid.UUID, Any], key: uuid.UUID, resource: str) -> Any:
        row = table.get(key)
        if row is None:
            raise NotFoundError(resource, key)
        return row


class InMemoryPlaceLookup:
    """In-memory implementation of PlaceLookup."""

    def __init__(self) -> None:
        self._places: dict[uuid.UUID, PlaceRef] = {}

    def add_place(
        self,
        project_id: uuid.UUID,
        name: str,
        category: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> PlaceRef:
        """Register a place for a project."""
        place = PlaceRef(
            place_id=uuid.uuid4(),
            project_id=project_id,
            name=name,
            category=category,
            latitude=latitude,
            longitude=longitude,
        )
        self._places[place.place_id] = place
        return place

    async def get_place(self, project_id: uuid.UUID, place_id: uuid.UUID) -> PlaceRef | None:
        """Get a place if it belongs to the project."""
        place = self._places.get(place_id)
        if place is None or place.project_id != project_id:
            return None
        return place
