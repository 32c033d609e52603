"""Unit tests for the accommodation synchronization engine."""

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from prometheus_client import REGISTRY

from tripboard.config import Settings
from tripboard.db.inmemory import InMemoryItineraryStore
from tripboard.models.common import ItemKind
from tripboard.models.itinerary import Accommodation, AccommodationCreate, Itinerary
from tripboard.services.accommodation_sync import AccommodationSyncService

TRIP_START = date(2026, 6, 1)
TRIP_DAYS = 7


async def _itinerary(store: InMemoryItineraryStore) -> Itinerary:
    dates = [TRIP_START + timedelta(days=i) for i in range(TRIP_DAYS)]
    return await store.create_itinerary(uuid.uuid4(), "Lisbon", dates[0], dates[-1], dates)


async def _accommodation(
    store: InMemoryItineraryStore, itin: Itinerary, check_in: datetime, check_out: datetime
) -> Accommodation:
    data = AccommodationCreate(name="Hotel Avenida", check_in=check_in, check_out=check_out)
    return await store.create_accommodation(itin.itinerary_id, data)


async def _place_item(store: InMemoryItineraryStore, day_id: uuid.UUID, order: int) -> uuid.UUID:
    item = await store.create_item(
        day_id=day_id, item_type=ItemKind.place, order=order, place_id=uuid.uuid4()
    )
    return item.item_id


async def _derived(store: InMemoryItineraryStore, acc: Accommodation) -> dict[date, ItemKind]:
    days = {d.day_id: d.date for d in await store.list_days(acc.itinerary_id)}
    items = await store.list_items_for_accommodation(acc.accommodation_id)
    return {days[i.day_id]: i.item_type for i in items}


@pytest.fixture
def sync(memory_store: InMemoryItineraryStore, settings: Settings) -> AccommodationSyncService:
    return AccommodationSyncService(memory_store, settings)


class TestClassifyDay:
    """Date-only classification."""

    def test_check_in_day(self) -> None:
        kind = AccommodationSyncService.classify_day(
            date(2026, 6, 2), datetime(2026, 6, 2, 18), datetime(2026, 6, 4, 9)
        )
        assert kind == ItemKind.accommodation_checkin

    def test_check_out_day(self) -> None:
        kind = AccommodationSyncService.classify_day(
            date(2026, 6, 4), datetime(2026, 6, 2, 18), datetime(2026, 6, 4, 9)
        )
        assert kind == ItemKind.accommodation_checkout

    def test_middle_day_is_stay(self) -> None:
        kind = AccommodationSyncService.classify_day(
            date(2026, 6, 3), datetime(2026, 6, 2), datetime(2026, 6, 4)
        )
        assert kind == ItemKind.accommodation_stay

    def test_same_day_stay_is_check_in(self) -> None:
        kind = AccommodationSyncService.classify_day(
            date(2026, 6, 2), datetime(2026, 6, 2, 8), datetime(2026, 6, 2, 20)
        )
        assert kind == ItemKind.accommodation_checkin


class TestCreateItems:
    """createItemsForAccommodation behavior."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("nights", [1, 2, 4])
    async def test_k_nights_produce_k_plus_one_items(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService, nights: int
    ) -> None:
        itin = await _itinerary(memory_store)
        check_in = datetime(2026, 6, 2)
        acc = await _accommodation(
            memory_store, itin, check_in, check_in + timedelta(days=nights)
        )

        result = await sync.create_items_for_accommodation(acc)

        kinds = list((await _derived(memory_store, acc)).values())
        assert result.created == nights + 1
        assert kinds.count(ItemKind.accommodation_checkin) == 1
        assert kinds.count(ItemKind.accommodation_checkout) == 1
        assert kinds.count(ItemKind.accommodation_stay) == nights - 1

    @pytest.mark.asyncio
    async def test_same_day_stay_yields_single_check_in(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 3, 9), datetime(2026, 6, 3, 21)
        )

        result = await sync.create_items_for_accommodation(acc)

        assert result.created == 1
        assert await _derived(memory_store, acc) == {
            date(2026, 6, 3): ItemKind.accommodation_checkin
        }

    @pytest.mark.asyncio
    async def test_check_out_goes_first_and_shifts_existing(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        checkout_day = (await memory_store.list_days(itin.itinerary_id))[3]
        existing = [await _place_item(memory_store, checkout_day.day_id, n) for n in range(2)]
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 4)
        )

        await sync.create_items_for_accommodation(acc)

        items = await memory_store.list_items(checkout_day.day_id)
        assert items[0].item_type == ItemKind.accommodation_checkout
        assert items[0].order == 0
        assert [i.item_id for i in items[1:]] == existing
        assert [i.order for i in items[1:]] == [1, 2]

    @pytest.mark.asyncio
    async def test_check_in_is_appended(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        checkin_day = (await memory_store.list_days(itin.itinerary_id))[1]
        await _place_item(memory_store, checkin_day.day_id, 0)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 4)
        )

        await sync.create_items_for_accommodation(acc)

        items = await memory_store.list_items(checkin_day.day_id)
        assert items[-1].item_type == ItemKind.accommodation_checkin
        assert items[-1].order == 1

    @pytest.mark.asyncio
    async def test_default_start_times(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 4)
        )

        await sync.create_items_for_accommodation(acc)

        items = await memory_store.list_items_for_accommodation(acc.accommodation_id)
        times = {i.item_type: i.start_time for i in items}
        assert times == {
            ItemKind.accommodation_checkin: "15:00",
            ItemKind.accommodation_stay: None,
            ItemKind.accommodation_checkout: "11:00",
        }

    @pytest.mark.asyncio
    async def test_start_times_come_from_settings(
        self, memory_store: InMemoryItineraryStore
    ) -> None:
        custom = Settings(checkin_time="14:00", checkout_time="10:30", _env_file=None)
        sync = AccommodationSyncService(memory_store, custom)
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 3)
        )

        await sync.create_items_for_accommodation(acc)

        items = await memory_store.list_items_for_accommodation(acc.accommodation_id)
        assert sorted(i.start_time for i in items) == ["10:30", "14:00"]

    @pytest.mark.asyncio
    async def test_only_days_inside_trip_are_touched(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        # Checked in before the trip starts
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 5, 30), datetime(2026, 6, 2)
        )

        result = await sync.create_items_for_accommodation(acc)

        assert result.created == 2
        assert await _derived(memory_store, acc) == {
            date(2026, 6, 1): ItemKind.accommodation_stay,
            date(2026, 6, 2): ItemKind.accommodation_checkout,
        }

    @pytest.mark.asyncio
    async def test_aware_timestamps_use_utc_date(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        plus_nine = timezone(timedelta(hours=9))
        # 2026-06-03 07:00 +09:00 is 2026-06-02 22:00 UTC
        acc = await _accommodation(
            memory_store,
            itin,
            datetime(2026, 6, 3, 7, tzinfo=plus_nine),
            datetime(2026, 6, 4, 10, tzinfo=plus_nine),
        )

        await sync.create_items_for_accommodation(acc)

        derived = await _derived(memory_store, acc)
        assert derived[date(2026, 6, 2)] == ItemKind.accommodation_checkin
        assert derived[date(2026, 6, 4)] == ItemKind.accommodation_checkout

    @pytest.mark.asyncio
    async def test_metrics_count_created_kinds(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        labels = {"action": "created", "kind": "accommodation_stay"}
        before = REGISTRY.get_sample_value("itinerary_sync_items_total", labels) or 0.0
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 1), datetime(2026, 6, 5)
        )

        await sync.create_items_for_accommodation(acc)

        after = REGISTRY.get_sample_value("itinerary_sync_items_total", labels)
        assert after == before + 3


class TestSyncItems:
    """syncItemsForAccommodation behavior."""

    @pytest.mark.asyncio
    async def test_unchanged_dates_are_noop(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2, 15), datetime(2026, 6, 4, 11)
        )
        await sync.create_items_for_accommodation(acc)
        ids_before = {
            i.item_id for i in await memory_store.list_items_for_accommodation(acc.accommodation_id)
        }

        # Time-of-day changes only
        moved = await memory_store.update_accommodation(
            acc.accommodation_id,
            {"check_in": datetime(2026, 6, 2, 9), "check_out": datetime(2026, 6, 4, 23)},
        )
        result = await sync.sync_items_for_accommodation(moved, acc.check_in, acc.check_out)

        ids_after = {
            i.item_id for i in await memory_store.list_items_for_accommodation(acc.accommodation_id)
        }
        assert (result.created, result.deleted) == (0, 0)
        assert ids_after == ids_before

    @pytest.mark.asyncio
    async def test_changed_dates_recreate_items(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 4)
        )
        await sync.create_items_for_accommodation(acc)
        old_ids = {
            i.item_id for i in await memory_store.list_items_for_accommodation(acc.accommodation_id)
        }

        moved = await memory_store.update_accommodation(
            acc.accommodation_id, {"check_out": datetime(2026, 6, 6)}
        )
        result = await sync.sync_items_for_accommodation(moved, acc.check_in, acc.check_out)

        derived = await _derived(memory_store, moved)
        new_ids = {
            i.item_id for i in await memory_store.list_items_for_accommodation(acc.accommodation_id)
        }
        assert (result.created, result.deleted) == (5, 3)
        assert old_ids.isdisjoint(new_ids)
        assert derived == {
            date(2026, 6, 2): ItemKind.accommodation_checkin,
            date(2026, 6, 3): ItemKind.accommodation_stay,
            date(2026, 6, 4): ItemKind.accommodation_stay,
            date(2026, 6, 5): ItemKind.accommodation_stay,
            date(2026, 6, 6): ItemKind.accommodation_checkout,
        }

    @pytest.mark.asyncio
    async def test_recreate_keeps_days_dense(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        day = (await memory_store.list_days(itin.itinerary_id))[3]
        await _place_item(memory_store, day.day_id, 0)
        await _place_item(memory_store, day.day_id, 1)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 2), datetime(2026, 6, 4)
        )
        await sync.create_items_for_accommodation(acc)

        moved = await memory_store.update_accommodation(
            acc.accommodation_id, {"check_out": datetime(2026, 6, 3)}
        )
        await sync.sync_items_for_accommodation(moved, acc.check_in, acc.check_out)

        items = await memory_store.list_items(day.day_id)
        assert [i.item_type for i in items] == [ItemKind.place, ItemKind.place]
        assert [i.order for i in items] == [0, 1]


class TestDeleteItems:
    """deleteItemsForAccommodation behavior."""

    @pytest.mark.asyncio
    async def test_delete_removes_items_and_compacts(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        itin = await _itinerary(memory_store)
        day = (await memory_store.list_days(itin.itinerary_id))[2]
        place_id = await _place_item(memory_store, day.day_id, 0)
        acc = await _accommodation(
            memory_store, itin, datetime(2026, 6, 1), datetime(2026, 6, 3)
        )
        await sync.create_items_for_accommodation(acc)

        result = await sync.delete_items_for_accommodation(acc.accommodation_id)

        items = await memory_store.list_items(day.day_id)
        assert result.deleted == 3
        assert [(i.item_id, i.order) for i in items] == [(place_id, 0)]
        assert await memory_store.list_items_for_accommodation(acc.accommodation_id) == []

    @pytest.mark.asyncio
    async def test_delete_without_items(
        self, memory_store: InMemoryItineraryStore, sync: AccommodationSyncService
    ) -> None:
        result = await sync.delete_items_for_accommodation(uuid.uuid4())

        assert result.deleted == 0
