"""SQL implementations of repository interfaces."""

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import date
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.db.models import Accommodation as AccommodationDB
from tripboard.db.models import Flight as FlightDB
from tripboard.db.models import Itinerary as ItineraryDB
from tripboard.db.models import ItineraryDay as ItineraryDayDB
from tripboard.db.models import ItineraryItem as ItineraryItemDB
from tripboard.db.models import Place as PlaceDB
from tripboard.errors import NotFoundError, PersistenceError
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

logger = logging.getLogger(__name__)


class SqlItineraryStore:
    """SQL implementation of ItineraryStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._depth = 0
        self._on_commit: list[Callable[[], None]] = []

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Unit of work over the session; nested units join the outer one."""
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            logger.warning("Unit of work rolled back: %s", type(e).__name__)
            raise PersistenceError(f"transaction aborted: {type(e).__name__}") from e
        except Exception:
            await self._session.rollback()
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
        itin = ItineraryDB(
            itinerary_id=uuid.uuid4(),
            project_id=project_id,
            title=title,
            start_date=start_date,
            end_date=end_date,
        )
        self._session.add(itin)
        self._session.add_all(
            [
                ItineraryDayDB(
                    day_id=uuid.uuid4(),
                    itinerary_id=itin.itinerary_id,
                    day_number=number,
                    date=day_date,
                )
                for number, day_date in enumerate(day_dates, start=1)
            ]
        )
        await self._session.flush()
        return Itinerary.model_validate(itin)

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary | None:
        """Get itinerary by ID."""
        itin = await self._session.get(ItineraryDB, itinerary_id)
        return Itinerary.model_validate(itin) if itin else None

    async def get_itinerary_by_project(self, project_id: uuid.UUID) -> Itinerary | None:
        """Get the itinerary owned by a project."""
        result = await self._session.execute(
            select(ItineraryDB).where(ItineraryDB.project_id == project_id)
        )
        itin = result.scalar_one_or_none()
        return Itinerary.model_validate(itin) if itin else None

    async def update_itinerary(
        self, itinerary_id: uuid.UUID, changes: dict[str, Any]
    ) -> Itinerary:
        """Apply column changes to an itinerary."""
        itin = await self._require(ItineraryDB, itinerary_id, "itinerary")
        for key, value in changes.items():
            setattr(itin, key, value)
        await self._session.flush()
        return Itinerary.model_validate(itin)

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> None:
        """Delete an itinerary with everything it owns."""
        day_ids = select(ItineraryDayDB.day_id).where(ItineraryDayDB.itinerary_id == itinerary_id)
        await self._session.execute(
            delete(ItineraryItemDB).where(ItineraryItemDB.day_id.in_(day_ids))
        )
        await self._session.execute(
            delete(ItineraryDayDB).where(ItineraryDayDB.itinerary_id == itinerary_id)
        )
        await self._session.execute(
            delete(AccommodationDB).where(AccommodationDB.itinerary_id == itinerary_id)
        )
        await self._session.execute(
            delete(FlightDB).where(FlightDB.itinerary_id == itinerary_id)
        )
        await self._session.execute(
            delete(ItineraryDB).where(ItineraryDB.itinerary_id == itinerary_id)
        )

    # Days

    async def list_days(self, itinerary_id: uuid.UUID) -> list[ItineraryDay]:
        """List days ordered by day number."""
        result = await self._session.execute(
            select(ItineraryDayDB)
            .where(ItineraryDayDB.itinerary_id == itinerary_id)
            .order_by(ItineraryDayDB.day_number)
            .execution_options(populate_existing=True)
        )
        return [ItineraryDay.model_validate(row) for row in result.scalars().all()]

    async def get_day(self, day_id: uuid.UUID) -> ItineraryDay | None:
        """Get day by ID."""
        day = await self._session.get(ItineraryDayDB, day_id, populate_existing=True)
        return ItineraryDay.model_validate(day) if day else None

    async def find_days_in_range(
        self, itinerary_id: uuid.UUID, start: date, end: date
    ) -> list[ItineraryDay]:
        """List days whose date falls in [start, end], ordered by day number."""
        result = await self._session.execute(
            select(ItineraryDayDB)
            .where(
                ItineraryDayDB.itinerary_id == itinerary_id,
                ItineraryDayDB.date >= start,
                ItineraryDayDB.date <= end,
            )
            .order_by(ItineraryDayDB.day_number)
            .execution_options(populate_existing=True)
        )
        return [ItineraryDay.model_validate(row) for row in result.scalars().all()]

    async def add_day(
        self, itinerary_id: uuid.UUID, day_number: int, day_date: date
    ) -> ItineraryDay:
        """Create a single day."""
        day = ItineraryDayDB(
            day_id=uuid.uuid4(),
            itinerary_id=itinerary_id,
            day_number=day_number,
            date=day_date,
        )
        self._session.add(day)
        await self._session.flush()
        return ItineraryDay.model_validate(day)

    async def renumber_days(
        self, itinerary_id: uuid.UUID, numbers: dict[uuid.UUID, int]
    ) -> None:
        """Rewrite day numbers in two passes to stay clear of the unique constraint."""
        for day_id, number in numbers.items():
            await self._session.execute(
                update(ItineraryDayDB)
                .where(ItineraryDayDB.day_id == day_id)
                .values(day_number=-number)
            )
        for day_id, number in numbers.items():
            await self._session.execute(
                update(ItineraryDayDB)
                .where(ItineraryDayDB.day_id == day_id)
                .values(day_number=number)
            )

    async def delete_day(self, day_id: uuid.UUID) -> None:
        """Delete a day and its items."""
        await self._session.execute(delete(ItineraryItemDB).where(ItineraryItemDB.day_id == day_id))
        await self._session.execute(delete(ItineraryDayDB).where(ItineraryDayDB.day_id == day_id))

    # Items

    async def list_items(self, day_id: uuid.UUID) -> list[ItineraryItem]:
        """List a day's items by (order, creation)."""
        result = await self._session.execute(
            select(ItineraryItemDB)
            .where(ItineraryItemDB.day_id == day_id)
            .order_by(ItineraryItemDB.order, ItineraryItemDB.created_at, ItineraryItemDB.item_id)
            .execution_options(populate_existing=True)
        )
        return [ItineraryItem.model_validate(row) for row in result.scalars().all()]

    async def get_item(self, item_id: uuid.UUID) -> ItineraryItem | None:
        """Get item by ID."""
        item = await self._session.get(ItineraryItemDB, item_id, populate_existing=True)
        return ItineraryItem.model_validate(item) if item else None

    async def list_items_for_accommodation(
        self, accommodation_id: uuid.UUID
    ) -> list[ItineraryItem]:
        """List the items derived from an accommodation."""
        result = await self._session.execute(
            select(ItineraryItemDB)
            .where(ItineraryItemDB.accommodation_id == accommodation_id)
            .execution_options(populate_existing=True)
        )
        return [ItineraryItem.model_validate(row) for row in result.scalars().all()]

    async def max_order(self, day_id: uuid.UUID) -> int | None:
        """Highest order in a day, or None when the day is empty."""
        result = await self._session.execute(
            select(func.max(ItineraryItemDB.order)).where(ItineraryItemDB.day_id == day_id)
        )
        return result.scalar_one_or_none()

    async def shift_orders(self, day_id: uuid.UUID, delta: int) -> None:
        """Add delta to the order of every item in a day."""
        await self._session.execute(
            update(ItineraryItemDB)
            .where(ItineraryItemDB.day_id == day_id)
            .values(order=ItineraryItemDB.order + delta)
        )

    async def assign_orders(self, day_id: uuid.UUID, orders: dict[uuid.UUID, int]) -> None:
        """Set explicit orders for items of a day."""
        for item_id, order in orders.items():
            await self._session.execute(
                update(ItineraryItemDB)
                .where(ItineraryItemDB.item_id == item_id, ItineraryItemDB.day_id == day_id)
                .values(order=order)
            )

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
        item = ItineraryItemDB(
            item_id=uuid.uuid4(),
            day_id=day_id,
            item_type=item_type.value,
            place_id=place_id,
            accommodation_id=accommodation_id,
            order=order,
            start_time=start_time,
            note=note,
        )
        self._session.add(item)
        await self._session.flush()
        return ItineraryItem.model_validate(item)

    async def update_item(self, item_id: uuid.UUID, changes: dict[str, Any]) -> ItineraryItem:
        """Apply column changes to an item."""
        item = await self._require(ItineraryItemDB, item_id, "item")
        for key, value in changes.items():
            setattr(item, key, value)
        await self._session.flush()
        return ItineraryItem.model_validate(item)

    async def delete_item(self, item_id: uuid.UUID) -> None:
        """Delete an item."""
        await self._session.execute(
            delete(ItineraryItemDB).where(ItineraryItemDB.item_id == item_id)
        )

    async def delete_items_for_accommodation(self, accommodation_id: uuid.UUID) -> int:
        """Delete all items derived from an accommodation; returns the count."""
        result = await self._session.execute(
            delete(ItineraryItemDB).where(ItineraryItemDB.accommodation_id == accommodation_id)
        )
        return result.rowcount or 0

    # Accommodations

    async def list_accommodations(self, itinerary_id: uuid.UUID) -> list[Accommodation]:
        """List accommodations sorted by check-in."""
        result = await self._session.execute(
            select(AccommodationDB)
            .where(AccommodationDB.itinerary_id == itinerary_id)
            .order_by(AccommodationDB.check_in)
        )
        return [Accommodation.model_validate(row) for row in result.scalars().all()]

    async def get_accommodation(self, accommodation_id: uuid.UUID) -> Accommodation | None:
        """Get accommodation by ID."""
        acc = await self._session.get(AccommodationDB, accommodation_id)
        return Accommodation.model_validate(acc) if acc else None

    async def create_accommodation(
        self, itinerary_id: uuid.UUID, data: AccommodationCreate
    ) -> Accommodation:
        """Create an accommodation (no derived items)."""
        acc = AccommodationDB(
            accommodation_id=uuid.uuid4(),
            itinerary_id=itinerary_id,
            **data.model_dump(),
        )
        self._session.add(acc)
        await self._session.flush()
        return Accommodation.model_validate(acc)

    async def update_accommodation(
        self, accommodation_id: uuid.UUID, changes: dict[str, Any]
    ) -> Accommodation:
        """Apply column changes to an accommodation."""
        acc = await self._require(AccommodationDB, accommodation_id, "accommodation")
        for key, value in changes.items():
            setattr(acc, key, value)
        await self._session.flush()
        return Accommodation.model_validate(acc)

    async def delete_accommodation(self, accommodation_id: uuid.UUID) -> None:
        """Delete an accommodation and its derived items."""
        await self.delete_items_for_accommodation(accommodation_id)
        await self._session.execute(
            delete(AccommodationDB).where(AccommodationDB.accommodation_id == accommodation_id)
        )

    # Flights

    async def list_flights(self, itinerary_id: uuid.UUID) -> list[Flight]:
        """List flights sorted by departure."""
        result = await self._session.execute(
            select(FlightDB)
            .where(FlightDB.itinerary_id == itinerary_id)
            .order_by(FlightDB.departure_at)
        )
        return [Flight.model_validate(row) for row in result.scalars().all()]

    async def get_flight(self, flight_id: uuid.UUID) -> Flight | None:
        """Get flight by ID."""
        flight = await self._session.get(FlightDB, flight_id)
        return Flight.model_validate(flight) if flight else None

    async def create_flight(self, itinerary_id: uuid.UUID, data: FlightCreate) -> Flight:
        """Create a flight."""
        flight = FlightDB(flight_id=uuid.uuid4(), itinerary_id=itinerary_id, **data.model_dump())
        self._session.add(flight)
        await self._session.flush()
        return Flight.model_validate(flight)

    async def update_flight(self, flight_id: uuid.UUID, changes: dict[str, Any]) -> Flight:
        """Apply column changes to a flight."""
        flight = await self._require(FlightDB, flight_id, "flight")
        for key, value in changes.items():
            setattr(flight, key, value)
        await self._session.flush()
        return Flight.model_validate(flight)

    async def delete_flight(self, flight_id: uuid.UUID) -> None:
        """Delete a flight."""
        await self._session.execute(delete(FlightDB).where(FlightDB.flight_id == flight_id))

    async def _require(self, model: type[Any], key: uuid.UUID, resource: str) -> Any:
        row = await self._session.get(model, key, populate_existing=True)
        if row is None:
            raise NotFoundError(resource, key)
        return row


class SqlPlaceLookup:
    """SQL implementation of PlaceLookup over the place table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_place(self, project_id: uuid.UUID, place_id: uuid.UUID) -> PlaceRef | None:
        """Get a place if it belongs to the project."""
        result = await self._session.execute(
            select(PlaceDB).where(PlaceDB.place_id == place_id, PlaceDB.project_id == project_id)
        )
        place = result.scalar_one_or_none()
        return PlaceRef.model_validate(place) if place else None
