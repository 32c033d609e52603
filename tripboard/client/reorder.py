"""Client-side reorder/move protocol.

Per day: idle -> dragging -> committing -> idle, or on failure
committing -> rolling_back -> idle.

Intermediate drag positions are never persisted. On drop the new order is
applied locally right away and sent to the server; a failed commit restores
the last order the server confirmed. Each drop gets a sequence number and
only the latest commit for a day may change local state, so a slow stale
response never overwrites a newer optimistic order.
"""

import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from tripboard.errors import ItineraryError

logger = logging.getLogger(__name__)

T = TypeVar("T")

PersistReorder = Callable[[uuid.UUID, list[uuid.UUID]], Awaitable[Any]]
PersistMove = Callable[[uuid.UUID, uuid.UUID], Awaitable[Any]]


class DragPhase(str, Enum):
    """Reorder state of one day."""

    idle = "idle"
    dragging = "dragging"
    committing = "committing"
    rolling_back = "rolling_back"


class CommitOutcome(str, Enum):
    """Result of a commit that did not fail."""

    committed = "committed"
    superseded = "superseded"


class ReorderRollbackError(ItineraryError):
    """Persisting an optimistic change failed; local state was restored."""

    def __init__(self, message: str, day_ids: Sequence[uuid.UUID]) -> None:
        super().__init__(message)
        self.day_ids = tuple(day_ids)


@dataclass(frozen=True)
class ReorderProposal:
    """Snapshot before the drag and the proposed order after it."""

    day_id: uuid.UUID
    before: tuple[uuid.UUID, ...]
    after: tuple[uuid.UUID, ...]
    sequence: int


def apply_move(items: Sequence[T], active: T, over: T) -> list[T]:
    """Move active to the index currently held by over.

    Raises:
        ValueError: If either element is not in items
    """
    result = list(items)
    old_index = result.index(active)
    new_index = result.index(over)
    result.insert(new_index, result.pop(old_index))
    return result


def rollback(proposal: ReorderProposal) -> list[uuid.UUID]:
    """Order to restore when a proposal fails."""
    return list(proposal.before)


class DayTimeline:
    """Local item order of one day and its reorder state machine."""

    def __init__(self, day_id: uuid.UUID, item_ids: Sequence[uuid.UUID]) -> None:
        self.day_id = day_id
        self.phase = DragPhase.idle
        self._items = list(item_ids)
        self._snapshot: tuple[uuid.UUID, ...] | None = None
        self._sequence = 0
        # Last order the server accepted, and whether local state shows it
        self._confirmed = tuple(self._items)
        self._confirmed_seq = 0
        self._settled = True

    @property
    def items(self) -> list[uuid.UUID]:
        """Current local order (optimistic while a commit is in flight)."""
        return list(self._items)

    @property
    def sequence(self) -> int:
        """Sequence number of the latest local change."""
        return self._sequence

    def load(self, item_ids: Sequence[uuid.UUID]) -> None:
        """Replace local state with server state; in-flight commits become stale."""
        self._items = list(item_ids)
        self._snapshot = None
        self._sequence += 1
        self._confirm(self._items, self._sequence)
        self._settled = True
        self.phase = DragPhase.idle

    def begin_drag(self) -> None:
        """Start a gesture; the current order becomes the rollback snapshot."""
        if self.phase == DragPhase.dragging:
            raise RuntimeError(f"day {self.day_id} is already being dragged")
        self._snapshot = tuple(self._items)
        self.phase = DragPhase.dragging

    def cancel_drag(self) -> None:
        """Abandon a gesture without changes."""
        self._snapshot = None
        self.phase = DragPhase.idle

    def drop(self, active_id: uuid.UUID, over_id: uuid.UUID) -> ReorderProposal | None:
        """End a gesture.

        Returns None (and goes back to idle) when nothing moved.
        """
        if self.phase != DragPhase.dragging or self._snapshot is None:
            raise RuntimeError(f"drop on day {self.day_id} without an active drag")

        before = self._snapshot
        self._snapshot = None
        if active_id == over_id or active_id not in before or over_id not in before:
            self.phase = DragPhase.idle
            return None

        self._sequence += 1
        self._settled = False
        self.phase = DragPhase.committing
        return ReorderProposal(
            day_id=self.day_id,
            before=before,
            after=tuple(apply_move(before, active_id, over_id)),
            sequence=self._sequence,
        )

    async def commit(self, proposal: ReorderProposal, persist: PersistReorder) -> CommitOutcome:
        """Apply the proposal locally, then persist it.

        Any failure of the latest proposal restores the last confirmed order
        before the error propagates.

        Raises:
            ReorderRollbackError: persist failed with an ItineraryError
        """
        if proposal.sequence == self._sequence:
            self._items = list(proposal.after)

        try:
            await persist(self.day_id, list(proposal.after))
        except BaseException as e:
            if proposal.sequence != self._sequence:
                if not isinstance(e, ItineraryError):
                    raise
                logger.info(
                    "Discarding failed stale reorder",
                    extra={"structured": {"day_id": str(self.day_id), "seq": proposal.sequence}},
                )
                return CommitOutcome.superseded

            self._restore(proposal)
            logger.warning(
                "Reorder rolled back",
                extra={
                    "structured": {
                        "day_id": str(self.day_id),
                        "seq": proposal.sequence,
                        "error": type(e).__name__,
                    }
                },
            )
            if isinstance(e, ItineraryError):
                raise ReorderRollbackError(
                    f"reorder of day {self.day_id} failed", [self.day_id]
                ) from e
            raise

        self._confirm(proposal.after, proposal.sequence)
        if proposal.sequence != self._sequence:
            if self._settled and self.phase == DragPhase.idle:
                # Nothing optimistic on screen: show what the server now holds
                self._items = list(self._confirmed)
            return CommitOutcome.superseded

        self._settled = True
        if self.phase == DragPhase.committing:
            self.phase = DragPhase.idle
        return CommitOutcome.committed

    def _confirm(self, item_ids: Sequence[uuid.UUID], sequence: int) -> None:
        if sequence >= self._confirmed_seq:
            self._confirmed = tuple(item_ids)
            self._confirmed_seq = sequence

    def _restore(self, proposal: ReorderProposal) -> None:
        dragging = self.phase == DragPhase.dragging
        if not dragging:
            self.phase = DragPhase.rolling_back
        if proposal.before == self._confirmed:
            self._items = rollback(proposal)
        else:
            # The proposal was built on an order the server never accepted
            self._items = list(self._confirmed)
        self._settled = True
        if dragging:
            # A gesture started meanwhile continues from the restored order
            self._snapshot = tuple(self._items)
        else:
            self.phase = DragPhase.idle

    async def move_to_day(
        self, item_id: uuid.UUID, target: "DayTimeline", persist: PersistMove
    ) -> None:
        """Move an item to the end of another day, optimistically.

        Any failure restores both days before the error propagates.

        Raises:
            ValueError: item is not in this day or target is this day
            ReorderRollbackError: persist failed with an ItineraryError
        """
        if target is self or target.day_id == self.day_id:
            raise ValueError("target day must differ from the source day")
        if item_id not in self._items:
            raise ValueError(f"item {item_id} is not in day {self.day_id}")

        source_before, target_before = list(self._items), list(target._items)
        self._items.remove(item_id)
        target._items.append(item_id)
        self._sequence += 1
        target._sequence += 1
        source_seq, target_seq = self._sequence, target._sequence

        try:
            await persist(item_id, target.day_id)
        except BaseException as e:
            # Only restore days nobody has touched since
            if self._sequence == source_seq:
                self._items = source_before
            if target._sequence == target_seq:
                target._items = target_before
            logger.warning(
                "Move between days rolled back",
                extra={
                    "structured": {
                        "item_id": str(item_id),
                        "from_day_id": str(self.day_id),
                        "to_day_id": str(target.day_id),
                        "error": type(e).__name__,
                    }
                },
            )
            if isinstance(e, ItineraryError):
                raise ReorderRollbackError(
                    f"move of item {item_id} failed", [self.day_id, target.day_id]
                ) from e
            raise

        for day, sequence in ((self, source_seq), (target, target_seq)):
            if day._sequence == sequence:
                day._confirm(day._items, sequence)
                day._settled = True
