"""Itinerary item endpoints - add, edit, delete, reorder and move."""

import uuid

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from tripboard.api.deps import ServiceDep
from tripboard.models.common import StartTime
from tripboard.models.itinerary import ItemUpdate, ItineraryItem

router = APIRouter(prefix="/itineraries", tags=["items"])


class AddItemRequest(BaseModel):
    """Request body for POST /itineraries/{itinerary_id}/items."""

    day_id: uuid.UUID
    place_id: uuid.UUID
    order: int | None = Field(None, ge=0, description="Position in the day; appended if omitted")
    start_time: StartTime | None = None
    note: str | None = None


class MoveItemRequest(BaseModel):
    """Request body for PUT /itineraries/items/{item_id}/move."""

    target_day_id: uuid.UUID
    order: int | None = Field(None, ge=0, description="Position in the target day")


class ReorderRequest(BaseModel):
    """Request body for PUT /itineraries/{itinerary_id}/reorder."""

    day_id: uuid.UUID
    item_ids: list[uuid.UUID] = Field(..., description="Every item of the day, in the new order")


class ReorderResponse(BaseModel):
    """Response for PUT /itineraries/{itinerary_id}/reorder."""

    day_id: uuid.UUID
    items: list[ItineraryItem]


@router.post(
    "/{itinerary_id}/items",
    response_model=ItineraryItem,
    status_code=status.HTTP_201_CREATED,
)
async def add_item(
    itinerary_id: uuid.UUID, request: AddItemRequest, service: ServiceDep
) -> ItineraryItem:
    """Add a place to a day of the itinerary."""
    return await service.add_item(
        request.day_id,
        request.place_id,
        order=request.order,
        start_time=request.start_time,
        note=request.note,
        itinerary_id=itinerary_id,
    )


@router.put("/items/{item_id}", response_model=ItineraryItem)
async def update_item(
    item_id: uuid.UUID, request: ItemUpdate, service: ServiceDep
) -> ItineraryItem:
    """Update an item's order, start time or note."""
    return await service.update_item(item_id, request)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(item_id: uuid.UUID, service: ServiceDep) -> Response:
    """Delete an item; the rest of its day is renumbered."""
    await service.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/items/{item_id}/move", response_model=ItineraryItem)
async def move_item(
    item_id: uuid.UUID, request: MoveItemRequest, service: ServiceDep
) -> ItineraryItem:
    """Move an item to another day of the same itinerary."""
    return await service.move_item_to_day(item_id, request.target_day_id, order=request.order)


@router.put("/{itinerary_id}/reorder", response_model=ReorderResponse)
async def reorder_items(
    itinerary_id: uuid.UUID, request: ReorderRequest, service: ServiceDep
) -> ReorderResponse:
    """Persist a whole-day order (dense renumber)."""
    items = await service.reorder_items(itinerary_id, request.day_id, request.item_ids)
    return ReorderResponse(day_id=request.day_id, items=items)
