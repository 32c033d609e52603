"""Project itinerary endpoints - one itinerary per project."""

import uuid

from fastapi import APIRouter, Response, status

from tripboard.api.deps import ServiceDep
from tripboard.models.itinerary import ItineraryCreate, ItineraryUpdate, ItineraryView

router = APIRouter(prefix="/projects/{project_id}/itinerary", tags=["itinerary"])


@router.post("", response_model=ItineraryView, status_code=status.HTTP_201_CREATED)
async def create_itinerary(
    project_id: uuid.UUID, request: ItineraryCreate, service: ServiceDep
) -> ItineraryView:
    """Create the project's itinerary and its day list.

    Returns 409 when the project already has one.
    """
    itin = await service.create_itinerary(
        project_id, request.start_date, request.end_date, title=request.title
    )
    return await service.get_itinerary(itin.itinerary_id)


@router.get("", response_model=ItineraryView)
async def get_itinerary(project_id: uuid.UUID, service: ServiceDep) -> ItineraryView:
    """Full itinerary with days, items, accommodations and flights."""
    return await service.get_itinerary_for_project(project_id)


@router.put("", response_model=ItineraryView)
async def update_itinerary(
    project_id: uuid.UUID, request: ItineraryUpdate, service: ServiceDep
) -> ItineraryView:
    """Update title or trip dates (dates rebuild the day list)."""
    current = await service.get_itinerary_for_project(project_id)
    await service.update_itinerary(current.itinerary_id, request)
    return await service.get_itinerary(current.itinerary_id)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_itinerary(project_id: uuid.UUID, service: ServiceDep) -> Response:
    """Delete the itinerary and everything it owns."""
    current = await service.get_itinerary_for_project(project_id)
    await service.delete_itinerary(current.itinerary_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
