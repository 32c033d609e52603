"""Day-scoped item ordering.

Every day keeps its item orders dense: exactly 0..n-1, unique, no gaps,
regardless of item kind. The pure helpers compute positions; the async
helpers apply them through an ItineraryStore and must run inside the
caller's unit of work.
"""

import uuid
from collections.abc import Hashable, Iterable, Sequence
from datetime import datetime
from typing import TypeVar

from tripboard.db.repositories import ItineraryStore
from tripboard.models.itinerary import ItineraryItem

K = TypeVar("K", bound=Hashable)


def next_order(orders: Iterable[int]) -> int:
    """Order for an item appended after the given ones (0 for an empty day)."""
    return max(orders, default=-1) + 1


def dense_assignment(ids: Sequence[K]) -> dict[K, int]:
    """Map each id to its index in the sequence."""
    return {item_id: index for index, item_id in enumerate(ids)}


def move_id(ids: Sequence[K], item_id: K, index: int) -> list[K]:
    """Return ids with item_id relocated to index (clamped to the end)."""
    remaining = [i for i in ids if i != item_id]
    index = max(0, min(index, len(remaining)))
    remaining.insert(index, item_id)
    return remaining


def is_dense(orders: Iterable[int]) -> bool:
    """True when orders are exactly 0..n-1."""
    values = sorted(orders)
    return values == list(range(len(values)))


def normalize(items: Iterable[ItineraryItem]) -> list[ItineraryItem]:
    """Sort by (order, created_at, item_id) and renumber densely."""
    ordered = sorted(items, key=lambda i: (i.order, i.created_at or datetime.min, i.item_id))
    return [
        item if item.order == index else item.model_copy(update={"order": index})
        for index, item in enumerate(ordered)
    ]


async def insert_at_end(store: ItineraryStore, day_id: uuid.UUID) -> int:
    """Order for appending to a day: max + 1, or 0 when empty."""
    current = await store.max_order(day_id)
    return 0 if current is None else current + 1


async def insert_at_start(store: ItineraryStore, day_id: uuid.UUID) -> int:
    """Shift every item of the day by +1 and return 0."""
    await store.shift_orders(day_id, 1)
    return 0


async def renumber(
    store: ItineraryStore, day_id: uuid.UUID, ordered_ids: Sequence[uuid.UUID]
) -> None:
    """Assign order = index for each id, for the whole day at once."""
    await store.assign_orders(day_id, dense_assignment(ordered_ids))


async def compact(store: ItineraryStore, day_id: uuid.UUID) -> list[ItineraryItem]:
    """Renumber a day in its current order and return its items."""
    items = normalize(await store.list_items(day_id))
    await renumber(store, day_id, [item.item_id for item in items])
    return items
