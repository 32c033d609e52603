"""Accommodation synchronization engine.

Keeps the derived check-in / check-out / overnight-stay items of an
accommodation consistent with its dates:

- resolve_days: days whose date is within [date(check_in), date(check_out)]
- classify_day: check-in day first, then check-out day, otherwise stay
- place_item: check-out goes to the start of the day, the rest are appended

Days are processed one at a time; each placement reads the day's current
max order, so two placements for the same day must not interleave.
"""

import logging
import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime

from tripboard.config import Settings, get_settings
from tripboard.db.repositories import ItineraryStore
from tripboard.models.common import ItemKind, calendar_date
from tripboard.models.itinerary import Accommodation, ItineraryDay, ItineraryItem
from tripboard.services import ordering
from tripboard.utils.metrics import metrics

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Counts of derived items touched by one synchronization."""

    created: int = 0
    updated: int = 0
    deleted: int = 0


class AccommodationSyncService:
    """Derive itinerary items from accommodation stays."""

    def __init__(self, store: ItineraryStore, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    async def resolve_days(self, accommodation: Accommodation) -> list[ItineraryDay]:
        """Days touched by the stay, ordered by day number."""
        return await self._store.find_days_in_range(
            accommodation.itinerary_id,
            calendar_date(accommodation.check_in),
            calendar_date(accommodation.check_out),
        )

    @staticmethod
    def classify_day(day_date: date, check_in: datetime, check_out: datetime) -> ItemKind:
        """Kind of derived item for a day.

        The check-in comparison comes first, so a same-day stay yields a
        single check-in item and no check-out.
        """
        if day_date == calendar_date(check_in):
            return ItemKind.accommodation_checkin
        if day_date == calendar_date(check_out):
            return ItemKind.accommodation_checkout
        return ItemKind.accommodation_stay

    def default_start_time(self, kind: ItemKind) -> str | None:
        """Default HH:MM for a derived item (stays have none)."""
        if kind == ItemKind.accommodation_checkin:
            return self._settings.checkin_time
        if kind == ItemKind.accommodation_checkout:
            return self._settings.checkout_time
        return None

    async def place_item(
        self, day: ItineraryDay, kind: ItemKind, accommodation_id: uuid.UUID
    ) -> ItineraryItem:
        """Create one derived item in a day at the position its kind requires."""
        if kind == ItemKind.accommodation_checkout:
            order = await ordering.insert_at_start(self._store, day.day_id)
        else:
            order = await ordering.insert_at_end(self._store, day.day_id)

        return await self._store.create_item(
            day_id=day.day_id,
            item_type=kind,
            order=order,
            accommodation_id=accommodation_id,
            start_time=self.default_start_time(kind),
        )

    async def create_items_for_accommodation(self, accommodation: Accommodation) -> SyncResult:
        """Create one derived item per day the stay touches."""
        async with self._store.transaction():
            kinds = await self._create_items(accommodation)
            self._store.after_commit(
                lambda: self._report(
                    "Derived items created for accommodation",
                    accommodation.accommodation_id,
                    created=kinds,
                )
            )
        return SyncResult(created=sum(kinds.values()))

    async def sync_items_for_accommodation(
        self,
        accommodation: Accommodation,
        previous_check_in: datetime | None,
        previous_check_out: datetime | None,
    ) -> SyncResult:
        """Re-derive items when the stay's dates changed (date-only).

        A missing previous value counts as unchanged. When either date
        changed, every owned item is deleted and the set is recreated in
        the same unit of work.
        """
        check_in_changed = previous_check_in is not None and calendar_date(
            previous_check_in
        ) != calendar_date(accommodation.check_in)
        check_out_changed = previous_check_out is not None and calendar_date(
            previous_check_out
        ) != calendar_date(accommodation.check_out)

        if not check_in_changed and not check_out_changed:
            logger.debug(
                "Accommodation dates unchanged, skipping sync",
                extra={"structured": {"accommodation_id": str(accommodation.accommodation_id)}},
            )
            return SyncResult()

        return await self.resync_items_for_accommodation(accommodation)

    async def resync_items_for_accommodation(self, accommodation: Accommodation) -> SyncResult:
        """Unconditionally delete and recreate the derived items."""
        async with self._store.transaction():
            deleted = await self._delete_items(accommodation.accommodation_id)
            created = await self._create_items(accommodation)
            self._store.after_commit(
                lambda: self._report(
                    "Derived items re-synchronized for accommodation",
                    accommodation.accommodation_id,
                    created=created,
                    deleted=deleted,
                )
            )
        return SyncResult(created=sum(created.values()), deleted=sum(deleted.values()))

    async def delete_items_for_accommodation(self, accommodation_id: uuid.UUID) -> SyncResult:
        """Delete every derived item of an accommodation and compact their days."""
        async with self._store.transaction():
            deleted = await self._delete_items(accommodation_id)
            self._store.after_commit(
                lambda: self._report(
                    "Derived items deleted for accommodation", accommodation_id, deleted=deleted
                )
            )
        return SyncResult(deleted=sum(deleted.values()))

    async def _create_items(self, accommodation: Accommodation) -> Counter[ItemKind]:
        kinds: Counter[ItemKind] = Counter()
        # Sequential on purpose: each placement reads the day's max order
        for day in await self.resolve_days(accommodation):
            kind = self.classify_day(day.date, accommodation.check_in, accommodation.check_out)
            await self.place_item(day, kind, accommodation.accommodation_id)
            kinds[kind] += 1
        return kinds

    async def _delete_items(self, accommodation_id: uuid.UUID) -> Counter[ItemKind]:
        owned = await self._store.list_items_for_accommodation(accommodation_id)
        if not owned:
            return Counter()

        await self._store.delete_items_for_accommodation(accommodation_id)
        for day_id in dict.fromkeys(item.day_id for item in owned):
            await ordering.compact(self._store, day_id)
        return Counter(item.item_type for item in owned)

    @staticmethod
    def _report(
        message: str,
        accommodation_id: uuid.UUID,
        created: Counter[ItemKind] | None = None,
        deleted: Counter[ItemKind] | None = None,
    ) -> None:
        # Runs only after the outermost unit of work has committed
        structured: dict[str, str | int] = {"accommodation_id": str(accommodation_id)}
        for action, kinds in (("created", created), ("deleted", deleted)):
            if kinds is None:
                continue
            for kind, count in kinds.items():
                metrics.inc_sync_items(action, kind.value, count)
            structured[action] = sum(kinds.values())
        logger.info(message, extra={"structured": structured})
