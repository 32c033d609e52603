"""Itinerary application service.

Each public operation runs in one unit of work: validation happens before
the first write, and on any error every write of the operation is rolled
back by the store.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Any

from tripboard.config import Settings, get_settings
from tripboard.db.repositories import ItineraryStore, PlaceLookup
from tripboard.errors import ConflictError, InvalidInputError, ItineraryError, NotFoundError
from tripboard.models.common import ItemKind
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
    ItineraryDay,
    ItineraryItem,
    ItineraryUpdate,
    ItineraryView,
)
from tripboard.services import ordering
from tripboard.services.accommodation_sync import AccommodationSyncService
from tripboard.utils.metrics import metrics

logger = logging.getLogger(__name__)

# Columns that may be explicitly cleared by a partial update
_NULLABLE_ACCOMMODATION_FIELDS = {"address", "latitude", "longitude", "note"}
_NULLABLE_FLIGHT_FIELDS = {"airline", "flight_number", "arrival_at", "note"}


class ItineraryService:
    """Operations on itineraries, their items, stays and flights."""

    def __init__(
        self,
        store: ItineraryStore,
        places: PlaceLookup,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._places = places
        self._settings = settings or get_settings()
        self.sync = AccommodationSyncService(store, self._settings)

    # Itineraries

    async def create_itinerary(
        self,
        project_id: uuid.UUID,
        start_date: date,
        end_date: date,
        title: str | None = None,
    ) -> Itinerary:
        """Create the project's itinerary with days 1..N.

        Raises:
            InvalidInputError: end_date before start_date, or trip too long
            ConflictError: the project already has an itinerary
        """
        day_dates = self._trip_dates(start_date, end_date)

        async with self._store.transaction():
            existing = await self._store.get_itinerary_by_project(project_id)
            if existing is not None:
                raise ConflictError(
                    "Itinerary already exists for this project",
                    code="ITINERARY_EXISTS",
                    resource_id=str(existing.itinerary_id),
                )
            itin = await self._store.create_itinerary(
                project_id, title, start_date, end_date, day_dates
            )

        logger.info(
            "Itinerary created",
            extra={
                "structured": {
                    "itinerary_id": str(itin.itinerary_id),
                    "project_id": str(project_id),
                    "days": len(day_dates),
                }
            },
        )
        return itin

    async def get_itinerary(self, itinerary_id: uuid.UUID) -> ItineraryView:
        """Full itinerary view; item orders are normalized on read."""
        itin = await self._require_itinerary(itinerary_id)
        return await self._build_view(itin)

    async def get_itinerary_for_project(self, project_id: uuid.UUID) -> ItineraryView:
        """Full itinerary view for a project."""
        itin = await self._store.get_itinerary_by_project(project_id)
        if itin is None:
            raise NotFoundError("itinerary", project_id)
        return await self._build_view(itin)

    async def update_itinerary(
        self, itinerary_id: uuid.UUID, changes: ItineraryUpdate
    ) -> Itinerary:
        """Update title and/or trip dates.

        A date change rebuilds the day list: days whose date survives keep
        their id and items, new dates get fresh days, dropped days are
        deleted with their items, and every accommodation is re-derived.
        """
        fields = changes.model_dump(exclude_unset=True)

        async with self._store.transaction():
            itin = await self._require_itinerary(itinerary_id)
            start = fields.get("start_date") or itin.start_date
            end = fields.get("end_date") or itin.end_date
            day_dates = self._trip_dates(start, end)

            column_changes: dict[str, Any] = {"start_date": start, "end_date": end}
            if "title" in fields:
                column_changes["title"] = fields["title"]
            updated = await self._store.update_itinerary(itinerary_id, column_changes)

            if (start, end) != (itin.start_date, itin.end_date):
                await self._rebuild_days(itinerary_id, day_dates)
                for acc in await self._store.list_accommodations(itinerary_id):
                    await self.sync.resync_items_for_accommodation(acc)
                logger.info(
                    "Itinerary dates changed",
                    extra={
                        "structured": {
                            "itinerary_id": str(itinerary_id),
                            "start_date": start.isoformat(),
                            "end_date": end.isoformat(),
                        }
                    },
                )

        return updated

    async def delete_itinerary(self, itinerary_id: uuid.UUID) -> None:
        """Delete an itinerary and everything it owns."""
        async with self._store.transaction():
            await self._require_itinerary(itinerary_id)
            await self._store.delete_itinerary(itinerary_id)

        logger.info(
            "Itinerary deleted",
            extra={"structured": {"itinerary_id": str(itinerary_id)}},
        )

    # Items

    async def add_item(
        self,
        day_id: uuid.UUID,
        place_id: uuid.UUID,
        order: int | None = None,
        start_time: str | None = None,
        note: str | None = None,
        itinerary_id: uuid.UUID | None = None,
    ) -> ItineraryItem:
        """Add a place to a day, appended or at a given position.

        When itinerary_id is given, the day must belong to it.
        """
        if order is not None and order < 0:
            raise InvalidInputError("order must be >= 0", field="order")

        async with self._store.transaction():
            day = await self._require_day(day_id)
            if itinerary_id is not None and day.itinerary_id != itinerary_id:
                raise NotFoundError("day", day_id)
            itin = await self._require_itinerary(day.itinerary_id)
            if await self._places.get_place(itin.project_id, place_id) is None:
                raise NotFoundError("place", place_id)

            item = await self._store.create_item(
                day_id=day_id,
                item_type=ItemKind.place,
                place_id=place_id,
                order=await ordering.insert_at_end(self._store, day_id),
                start_time=start_time,
                note=note,
            )
            if order is not None and order < item.order:
                item = await self._move_within_day(item, order)

        return item

    async def update_item(self, item_id: uuid.UUID, changes: ItemUpdate) -> ItineraryItem:
        """Update time/note; an order change moves the item within its day."""
        fields = changes.model_dump(exclude_unset=True)
        order = fields.pop("order", None)

        async with self._store.transaction():
            item = await self._require_item(item_id)
            if fields:
                item = await self._store.update_item(item_id, fields)
            if order is not None:
                item = await self._move_within_day(item, order)

        return item

    async def delete_item(self, item_id: uuid.UUID) -> None:
        """Delete an item and close the gap in its day."""
        async with self._store.transaction():
            item = await self._require_item(item_id)
            await self._store.delete_item(item_id)
            await ordering.compact(self._store, item.day_id)

    async def reorder_items(
        self,
        itinerary_id: uuid.UUID,
        day_id: uuid.UUID,
        ordered_item_ids: Sequence[uuid.UUID],
    ) -> list[ItineraryItem]:
        """Renumber a day to follow the given id sequence.

        Raises:
            NotFoundError: itinerary missing, or day not in the itinerary
            InvalidInputError: ids are not exactly the day's items
        """
        try:
            if len(set(ordered_item_ids)) != len(ordered_item_ids):
                raise InvalidInputError("item_ids contains duplicates", field="item_ids")

            async with self._store.transaction():
                await self._require_itinerary(itinerary_id)
                day = await self._store.get_day(day_id)
                if day is None or day.itinerary_id != itinerary_id:
                    raise NotFoundError("day", day_id)

                current = {item.item_id for item in await self._store.list_items(day_id)}
                if current != set(ordered_item_ids):
                    raise InvalidInputError(
                        "item_ids must list every item of the day exactly once",
                        field="item_ids",
                    )

                await ordering.renumber(self._store, day_id, ordered_item_ids)
                items = await self._store.list_items(day_id)
        except ItineraryError:
            metrics.inc_reorder("rejected")
            raise

        metrics.inc_reorder("committed")
        logger.info(
            "Day reordered",
            extra={"structured": {"day_id": str(day_id), "items": len(items)}},
        )
        return items

    async def move_item_to_day(
        self,
        item_id: uuid.UUID,
        target_day_id: uuid.UUID,
        order: int | None = None,
    ) -> ItineraryItem:
        """Move an item to another day of the same itinerary.

        Removal from the source day and insertion into the target day run
        in one unit of work. Moving to the item's own day is a no-op.
        """
        if order is not None and order < 0:
            raise InvalidInputError("order must be >= 0", field="order")

        async with self._store.transaction():
            item = await self._require_item(item_id)
            source = await self._require_day(item.day_id)
            target = await self._require_day(target_day_id)
            if target.itinerary_id != source.itinerary_id:
                raise InvalidInputError(
                    "target day belongs to a different itinerary", field="target_day_id"
                )
            if target.day_id == source.day_id:
                return item

            new_order = await ordering.insert_at_end(self._store, target.day_id)
            moved = await self._store.update_item(
                item_id, {"day_id": target.day_id, "order": new_order}
            )
            await ordering.compact(self._store, source.day_id)
            if order is not None and order < moved.order:
                moved = await self._move_within_day(moved, order)

        logger.info(
            "Item moved between days",
            extra={
                "structured": {
                    "item_id": str(item_id),
                    "from_day_id": str(source.day_id),
                    "to_day_id": str(target.day_id),
                }
            },
        )
        return moved

    # Accommodations

    async def list_accommodations(self, itinerary_id: uuid.UUID) -> list[Accommodation]:
        """Accommodations of an itinerary sorted by check-in."""
        await self._require_itinerary(itinerary_id)
        return await self._store.list_accommodations(itinerary_id)

    async def get_accommodation(self, accommodation_id: uuid.UUID) -> Accommodation:
        """Get accommodation by ID."""
        acc = await self._store.get_accommodation(accommodation_id)
        if acc is None:
            raise NotFoundError("accommodation", accommodation_id)
        return acc

    async def create_accommodation(
        self, itinerary_id: uuid.UUID, data: AccommodationCreate
    ) -> Accommodation:
        """Create a stay and its derived items."""
        if data.check_out < data.check_in:
            raise InvalidInputError("check_out must not be before check_in", field="check_out")

        async with self._store.transaction():
            await self._require_itinerary(itinerary_id)
            acc = await self._store.create_accommodation(itinerary_id, data)
            await self.sync.create_items_for_accommodation(acc)

        return acc

    async def update_accommodation(
        self, accommodation_id: uuid.UUID, data: AccommodationUpdate
    ) -> Accommodation:
        """Update a stay; changed dates re-derive its items."""
        fields = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_ACCOMMODATION_FIELDS
        }

        async with self._store.transaction():
            previous = await self.get_accommodation(accommodation_id)
            check_in = fields.get("check_in", previous.check_in)
            check_out = fields.get("check_out", previous.check_out)
            if check_out < check_in:
                raise InvalidInputError(
                    "check_out must not be before check_in", field="check_out"
                )

            acc = await self._store.update_accommodation(accommodation_id, fields)
            await self.sync.sync_items_for_accommodation(
                acc, previous.check_in, previous.check_out
            )

        return acc

    async def delete_accommodation(self, accommodation_id: uuid.UUID) -> None:
        """Delete a stay together with its derived items."""
        async with self._store.transaction():
            await self.get_accommodation(accommodation_id)
            await self.sync.delete_items_for_accommodation(accommodation_id)
            await self._store.delete_accommodation(accommodation_id)

    # Flights

    async def list_flights(self, itinerary_id: uuid.UUID) -> list[Flight]:
        """Flights of an itinerary sorted by departure."""
        await self._require_itinerary(itinerary_id)
        return await self._store.list_flights(itinerary_id)

    async def get_flight(self, flight_id: uuid.UUID) -> Flight:
        """Get flight by ID."""
        flight = await self._store.get_flight(flight_id)
        if flight is None:
            raise NotFoundError("flight", flight_id)
        return flight

    async def create_flight(self, itinerary_id: uuid.UUID, data: FlightCreate) -> Flight:
        """Create a flight."""
        if data.arrival_at is not None and data.arrival_at < data.departure_at:
            raise InvalidInputError(
                "arrival_at must not be before departure_at", field="arrival_at"
            )

        async with self._store.transaction():
            await self._require_itinerary(itinerary_id)
            return await self._store.create_flight(itinerary_id, data)

    async def update_flight(self, flight_id: uuid.UUID, data: FlightUpdate) -> Flight:
        """Update a flight."""
        fields = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key in _NULLABLE_FLIGHT_FIELDS
        }

        async with self._store.transaction():
            previous = await self.get_flight(flight_id)
            departure = fields.get("departure_at", previous.departure_at)
            arrival = fields.get("arrival_at", previous.arrival_at)
            if arrival is not None and arrival < departure:
                raise InvalidInputError(
                    "arrival_at must not be before departure_at", field="arrival_at"
                )
            return await self._store.update_flight(flight_id, fields)

    async def delete_flight(self, flight_id: uuid.UUID) -> None:
        """Delete a flight."""
        async with self._store.transaction():
            await self.get_flight(flight_id)
            await self._store.delete_flight(flight_id)

    # Helpers

    def _trip_dates(self, start_date: date, end_date: date) -> list[date]:
        if end_date < start_date:
            raise InvalidInputError("end_date must not be before start_date", field="end_date")
        count = (end_date - start_date).days + 1
        if count > self._settings.max_trip_days:
            raise InvalidInputError(
                f"trip is longer than {self._settings.max_trip_days} days", field="end_date"
            )
        return [start_date + timedelta(days=offset) for offset in range(count)]

    async def _rebuild_days(self, itinerary_id: uuid.UUID, day_dates: list[date]) -> None:
        existing = {day.date: day for day in await self._store.list_days(itinerary_id)}
        wanted = set(day_dates)

        for day_date, day in existing.items():
            if day_date not in wanted:
                await self._store.delete_day(day.day_id)

        # Survivors first, so new days never collide with an old number
        await self._store.renumber_days(
            itinerary_id,
            {
                existing[day_date].day_id: number
                for number, day_date in enumerate(day_dates, start=1)
                if day_date in existing
            },
        )
        for number, day_date in enumerate(day_dates, start=1):
            if day_date not in existing:
                await self._store.add_day(itinerary_id, number, day_date)

    async def _move_within_day(self, item: ItineraryItem, index: int) -> ItineraryItem:
        items = ordering.normalize(await self._store.list_items(item.day_id))
        ids = ordering.move_id([i.item_id for i in items], item.item_id, index)
        await ordering.renumber(self._store, item.day_id, ids)
        return await self._require_item(item.item_id)

    async def _build_view(self, itin: Itinerary) -> ItineraryView:
        days = [
            DayWithItems(
                **day.model_dump(),
                items=ordering.normalize(await self._store.list_items(day.day_id)),
            )
            for day in await self._store.list_days(itin.itinerary_id)
        ]
        return ItineraryView(
            **itin.model_dump(),
            days=days,
            accommodations=await self._store.list_accommodations(itin.itinerary_id),
            flights=await self._store.list_flights(itin.itinerary_id),
        )

    async def _require_itinerary(self, itinerary_id: uuid.UUID) -> Itinerary:
        itin = await self._store.get_itinerary(itinerary_id)
        if itin is None:
            raise NotFoundError("itinerary", itinerary_id)
        return itin

    async def _require_day(self, day_id: uuid.UUID) -> ItineraryDay:
        day = await self._store.get_day(day_id)
        if day is None:
            raise NotFoundError("day", day_id)
        return day

    async def _require_item(self, item_id: uuid.UUID) -> ItineraryItem:
        item = await self._store.get_item(item_id)
        if item is None:
            raise NotFoundError("item", item_id)
        return item
