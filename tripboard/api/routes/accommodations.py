"""Accommodation endpoints - every write re-derives the stay's items."""

import uuid

from fastapi import APIRouter, Response, status

from tripboard.api.deps import ServiceDep
from tripboard.models.itinerary import Accommodation, AccommodationCreate, AccommodationUpdate

router = APIRouter(prefix="/itineraries", tags=["accommodations"])


@router.get("/{itinerary_id}/accommodations", response_model=list[Accommodation])
async def list_accommodations(
    itinerary_id: uuid.UUID, service: ServiceDep
) -> list[Accommodation]:
    """Accommodations sorted by check-in."""
    return await service.list_accommodations(itinerary_id)


@router.post(
    "/{itinerary_id}/accommodations",
    response_model=Accommodation,
    status_code=status.HTTP_201_CREATED,
)
async def create_accommodation(
    itinerary_id: uuid.UUID, request: AccommodationCreate, service: ServiceDep
) -> Accommodation:
    """Create a stay and its check-in, stay and check-out items."""
    return await service.create_accommodation(itinerary_id, request)


@router.get("/accommodations/{accommodation_id}", response_model=Accommodation)
async def get_accommodation(accommodation_id: uuid.UUID, service: ServiceDep) -> Accommodation:
    """Get accommodation by ID."""
    return await service.get_accommodation(accommodation_id)


@router.put("/accommodations/{accommodation_id}", response_model=Accommodation)
async def update_accommodation(
    accommodation_id: uuid.UUID, request: AccommodationUpdate, service: ServiceDep
) -> Accommodation:
    """Update a stay; changed dates replace its derived items."""
    return await service.update_accommodation(accommodation_id, request)


@router.delete("/accommodations/{accommodation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_accommodation(accommodation_id: uuid.UUID, service: ServiceDep) -> Response:
    """Delete a stay and its derived items."""
    await service.delete_accommodation(accommodation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
