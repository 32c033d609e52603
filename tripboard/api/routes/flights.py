"""Flight endpoints - no ordering side effects."""

import uuid

from fastapi import APIRouter, Response, status

from tripboard.api.deps import ServiceDep
from tripboard.models.itinerary import Flight, FlightCreate, FlightUpdate

router = APIRouter(prefix="/itineraries", tags=["flights"])


@router.get("/{itinerary_id}/flights", response_model=list[Flight])
async def list_flights(itinerary_id: uuid.UUID, service: ServiceDep) -> list[Flight]:
    """Flights sorted by departure."""
    return await service.list_flights(itinerary_id)


@router.post("/{itinerary_id}/flights", response_model=Flight, status_code=status.HTTP_201_CREATED)
async def create_flight(
    itinerary_id: uuid.UUID, request: FlightCreate, service: ServiceDep
) -> Flight:
    """Create a flight."""
    return await service.create_flight(itinerary_id, request)


@router.put("/flights/{flight_id}", response_model=Flight)
async def update_flight(flight_id: uuid.UUID, request: FlightUpdate, service: ServiceDep) -> Flight:
    """Update a flight."""
    return await service.update_flight(flight_id, request)


@router.delete("/flights/{flight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_flight(flight_id: uuid.UUID, service: ServiceDep) -> Response:
    """Delete a flight."""
    await service.delete_flight(flight_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
