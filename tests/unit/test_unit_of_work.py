"""Failures mid-operation leave no partial writes behind."""

import uuid
from collections import Counter
from datetime import date
from typing import Any

import pytest
from prometheus_client import REGISTRY

from tripboard.config import Settings
from tripboard.db.inmemory import InMemoryItineraryStore, InMemoryPlaceLookup
from tripboard.errors import PersistenceError
from tripboard.models.common import ItemKind
from tripboard.models.itinerary import AccommodationCreate, AccommodationUpdate, ItineraryUpdate
from tripboard.services.itinerary import ItineraryService

PROJECT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000c1")


class FlakyStore(InMemoryItineraryStore):
    """Store whose Nth call of an armed write method fails."""

    def __init__(self) -> None:
        super().__init__()
        self._fail_at: dict[str, int] = {}
        self._calls: Counter[str] = Counter()

    def arm(self, method: str, at: int = 1) -> None:
        """Fail the Nth call of method, counted from now."""
        self._fail_at[method] = at
        self._calls[method] = 0

    def _tick(self, method: str) -> None:
        self._calls[method] += 1
        if self._calls[method] == self._fail_at.get(method):
            raise PersistenceError(f"{method} failed")

    async def create_item(self, **kwargs: Any) -> Any:
        self._tick("create_item")
        return await super().create_item(**kwargs)

    async def update_item(self, item_id: uuid.UUID, changes: dict[str, Any]) -> Any:
        self._tick("update_item")
        return await super().update_item(item_id, changes)

    async def assign_orders(self, day_id: uuid.UUID, orders: dict[uuid.UUID, int]) -> None:
        self._tick("assign_orders")
        await super().assign_orders(day_id, orders)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def places() -> InMemoryPlaceLookup:
    return InMemoryPlaceLookup()


@pytest.fixture
def service(
    store: FlakyStore, places: InMemoryPlaceLookup, settings: Settings
) -> ItineraryService:
    return ItineraryService(store, places, settings)


async def _snapshot(store: InMemoryItineraryStore, itinerary_id: uuid.UUID) -> dict[str, Any]:
    days = await store.list_days(itinerary_id)
    return {
        "itinerary": await store.get_itinerary(itinerary_id),
        "days": days,
        "items": {day.day_id: await store.list_items(day.day_id) for day in days},
        "accommodations": await store.list_accommodations(itinerary_id),
    }


def _sync_counts(*label_sets: dict[str, str]) -> list[float | None]:
    return [
        REGISTRY.get_sample_value("itinerary_sync_items_total", labels) for labels in label_sets
    ]


class TestRollback:
    """A failing write rolls back the whole operation."""

    @pytest.mark.asyncio
    async def test_accommodation_create_is_all_or_nothing(
        self, service: ItineraryService, store: FlakyStore, places: InMemoryPlaceLookup
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 5))
        day = (await store.list_days(itin.itinerary_id))[3]
        place = places.add_place(PROJECT_ID, "Castle")
        await service.add_item(day.day_id, place.place_id)
        before = await _snapshot(store, itin.itinerary_id)
        # Third derived item is the check-out, after the place was shifted
        store.arm("create_item", at=3)

        with pytest.raises(PersistenceError):
            await service.create_accommodation(
                itin.itinerary_id,
                AccommodationCreate(name="Inn", check_in="2026-06-02", check_out="2026-06-04"),
            )

        assert await _snapshot(store, itin.itinerary_id) == before

    @pytest.mark.asyncio
    async def test_failed_date_change_keeps_old_items(
        self, service: ItineraryService, store: FlakyStore
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 5))
        acc = await service.create_accommodation(
            itin.itinerary_id,
            AccommodationCreate(name="Inn", check_in="2026-06-01", check_out="2026-06-03"),
        )
        before = await _snapshot(store, itin.itinerary_id)
        store.arm("create_item", at=2)

        with pytest.raises(PersistenceError):
            await service.update_accommodation(
                acc.accommodation_id, AccommodationUpdate(check_out="2026-06-05")
            )

        assert await _snapshot(store, itin.itinerary_id) == before
        owned = await store.list_items_for_accommodation(acc.accommodation_id)
        assert {i.item_type for i in owned} == {
            ItemKind.accommodation_checkin,
            ItemKind.accommodation_stay,
            ItemKind.accommodation_checkout,
        }

    @pytest.mark.asyncio
    async def test_failed_move_leaves_both_days(
        self, service: ItineraryService, store: FlakyStore, places: InMemoryPlaceLookup
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 2))
        source, target = await store.list_days(itin.itinerary_id)
        place = places.add_place(PROJECT_ID, "Market")
        first = await service.add_item(source.day_id, place.place_id)
        await service.add_item(source.day_id, place.place_id)
        before = await _snapshot(store, itin.itinerary_id)
        # The item has already changed day when the source is compacted
        store.arm("assign_orders")

        with pytest.raises(PersistenceError):
            await service.move_item_to_day(first.item_id, target.day_id)

        assert await _snapshot(store, itin.itinerary_id) == before
        assert (await store.get_item(first.item_id)).day_id == source.day_id

    @pytest.mark.asyncio
    async def test_failed_resize_keeps_days(
        self, service: ItineraryService, store: FlakyStore
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 4))
        await service.create_accommodation(
            itin.itinerary_id,
            AccommodationCreate(name="Inn", check_in="2026-06-02", check_out="2026-06-04"),
        )
        before = await _snapshot(store, itin.itinerary_id)
        store.arm("create_item")

        with pytest.raises(PersistenceError):
            await service.update_itinerary(
                itin.itinerary_id, ItineraryUpdate(end_date=date(2026, 6, 3))
            )

        assert await _snapshot(store, itin.itinerary_id) == before

    @pytest.mark.asyncio
    async def test_store_usable_after_rollback(
        self, service: ItineraryService, store: FlakyStore, places: InMemoryPlaceLookup
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 1))
        day = (await store.list_days(itin.itinerary_id))[0]
        place = places.add_place(PROJECT_ID, "Garden")
        store.arm("create_item")

        with pytest.raises(PersistenceError):
            await service.add_item(day.day_id, place.place_id)

        item = await service.add_item(day.day_id, place.place_id)
        assert item.order == 0
        assert len(await store.list_items(day.day_id)) == 1


class TestAfterCommit:
    """Commit callbacks and the sync counters that depend on them."""

    @pytest.mark.asyncio
    async def test_callbacks_wait_for_outermost_unit(self, store: FlakyStore) -> None:
        calls: list[str] = []

        async with store.transaction():
            async with store.transaction():
                store.after_commit(lambda: calls.append("inner"))
            assert calls == []
        store.after_commit(lambda: calls.append("outside"))

        assert calls == ["inner", "outside"]

    @pytest.mark.asyncio
    async def test_callbacks_dropped_on_rollback(self, store: FlakyStore) -> None:
        calls: list[str] = []

        with pytest.raises(PersistenceError):
            async with store.transaction():
                store.after_commit(lambda: calls.append("lost"))
                raise PersistenceError("boom")
        async with store.transaction():
            pass

        assert calls == []

    @pytest.mark.asyncio
    async def test_rolled_back_resync_is_not_counted(
        self, service: ItineraryService, store: FlakyStore
    ) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 5))
        for check_in, check_out in (("2026-06-01", "2026-06-02"), ("2026-06-03", "2026-06-05")):
            await service.create_accommodation(
                itin.itinerary_id,
                AccommodationCreate(name="Inn", check_in=check_in, check_out=check_out),
            )
        created = {"action": "created", "kind": "accommodation_checkin"}
        deleted = {"action": "deleted", "kind": "accommodation_checkout"}
        before = _sync_counts(created, deleted)
        # The first stay re-derives both its items, the second fails on its check-in
        store.arm("create_item", at=3)

        with pytest.raises(PersistenceError):
            await service.update_itinerary(
                itin.itinerary_id, ItineraryUpdate(end_date=date(2026, 6, 4))
            )

        assert _sync_counts(created, deleted) == before

    @pytest.mark.asyncio
    async def test_committed_sync_is_counted(self, service: ItineraryService) -> None:
        itin = await service.create_itinerary(PROJECT_ID, date(2026, 6, 1), date(2026, 6, 3))
        labels = {"action": "created", "kind": "accommodation_stay"}
        before = REGISTRY.get_sample_value("itinerary_sync_items_total", labels) or 0.0

        await service.create_accommodation(
            itin.itinerary_id,
            AccommodationCreate(name="Inn", check_in="2026-06-01", check_out="2026-06-03"),
        )

        assert REGISTRY.get_sample_value("itinerary_sync_items_total", labels) == before + 1
