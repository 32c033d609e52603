"""Async HTTP client for the itinerary API.

HTTP failures are raised as the same error classes the server uses, so
callers (including the reorder protocol) handle one taxonomy.
"""

import functools
import logging
import uuid
from datetime import date
from types import TracebackType
from typing import Any

import httpx
from pydantic import BaseModel

from tripboard.client.reorder import PersistMove, PersistReorder
from tripboard.config import Settings, get_settings
from tripboard.errors import (
    ConflictError,
    InvalidInputError,
    ItineraryError,
    NotFoundError,
    PersistenceError,
)
from tripboard.models.itinerary import (
    Accommodation,
    AccommodationCreate,
    AccommodationUpdate,
    Flight,
    FlightCreate,
    FlightUpdate,
    ItemUpdate,
    ItineraryItem,
    ItineraryUpdate,
    ItineraryView,
)

logger = logging.getLogger(__name__)


def error_from_response(response: httpx.Response) -> ItineraryError:
    """Map an error response to the itinerary error taxonomy."""
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    detail = str(body.get("detail", response.text))
    code = response.status_code

    if code in (400, 422):
        return InvalidInputError(detail, field=body.get("field"))
    if code == 404:
        return NotFoundError(body.get("resource", "resource"), body.get("resource_id", ""))
    if code == 409:
        return ConflictError(
            detail, code=body.get("code", "CONFLICT"), resource_id=body.get("resource_id")
        )
    if code >= 500:
        return PersistenceError(detail)
    return ItineraryError(f"unexpected status {code}: {detail}")


class TripboardClient:
    """Typed wrapper over the itinerary HTTP endpoints."""

    def __init__(
        self,
        base_url: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._client = client or httpx.AsyncClient(
            base_url=base_url, timeout=settings.client_timeout_seconds
        )

    async def __aenter__(self) -> "TripboardClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def _request(self, method: str, url: str, json: Any = None) -> httpx.Response:
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.TransportError as e:
            logger.warning("Request failed: %s %s (%s)", method, url, type(e).__name__)
            raise PersistenceError(f"request failed: {type(e).__name__}") from e

        if response.is_success:
            return response
        raise error_from_response(response)

    @staticmethod
    def _body(model: BaseModel) -> dict[str, Any]:
        return model.model_dump(mode="json", exclude_unset=True)

    # Itinerary

    async def create_itinerary(
        self,
        project_id: uuid.UUID,
        start_date: date,
        end_date: date,
        title: str | None = None,
    ) -> ItineraryView:
        """POST /projects/{project_id}/itinerary"""
        response = await self._request(
            "POST",
            f"/projects/{project_id}/itinerary",
            json={
                "title": title,
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
            },
        )
        return ItineraryView.model_validate(response.json())

    async def get_itinerary(self, project_id: uuid.UUID) -> ItineraryView:
        """GET /projects/{project_id}/itinerary"""
        response = await self._request("GET", f"/projects/{project_id}/itinerary")
        return ItineraryView.model_validate(response.json())

    async def update_itinerary(
        self, project_id: uuid.UUID, changes: ItineraryUpdate
    ) -> ItineraryView:
        """PUT /projects/{project_id}/itinerary"""
        response = await self._request(
            "PUT", f"/projects/{project_id}/itinerary", json=self._body(changes)
        )
        return ItineraryView.model_validate(response.json())

    async def delete_itinerary(self, project_id: uuid.UUID) -> None:
        """DELETE /projects/{project_id}/itinerary"""
        await self._request("DELETE", f"/projects/{project_id}/itinerary")

    # Items

    async def add_item(
        self,
        itinerary_id: uuid.UUID,
        day_id: uuid.UUID,
        place_id: uuid.UUID,
        order: int | None = None,
        start_time: str | None = None,
        note: str | None = None,
    ) -> ItineraryItem:
        """POST /itineraries/{itinerary_id}/items"""
        response = await self._request(
            "POST",
            f"/itineraries/{itinerary_id}/items",
            json={
                "day_id": str(day_id),
                "place_id": str(place_id),
                "order": order,
                "start_time": start_time,
                "note": note,
            },
        )
        return ItineraryItem.model_validate(response.json())

    async def update_item(self, item_id: uuid.UUID, changes: ItemUpdate) -> ItineraryItem:
        """PUT /itineraries/items/{item_id}"""
        response = await self._request(
            "PUT", f"/itineraries/items/{item_id}", json=self._body(changes)
        )
        return ItineraryItem.model_validate(response.json())

    async def delete_item(self, item_id: uuid.UUID) -> None:
        """DELETE /itineraries/items/{item_id}"""
        await self._request("DELETE", f"/itineraries/items/{item_id}")

    async def move_item(
        self, item_id: uuid.UUID, target_day_id: uuid.UUID, order: int | None = None
    ) -> ItineraryItem:
        """PUT /itineraries/items/{item_id}/move"""
        response = await self._request(
            "PUT",
            f"/itineraries/items/{item_id}/move",
            json={"target_day_id": str(target_day_id), "order": order},
        )
        return ItineraryItem.model_validate(response.json())

    async def reorder_items(
        self, itinerary_id: uuid.UUID, day_id: uuid.UUID, item_ids: list[uuid.UUID]
    ) -> list[ItineraryItem]:
        """PUT /itineraries/{itinerary_id}/reorder"""
        response = await self._request(
            "PUT",
            f"/itineraries/{itinerary_id}/reorder",
            json={"day_id": str(day_id), "item_ids": [str(i) for i in item_ids]},
        )
        return [ItineraryItem.model_validate(item) for item in response.json()["items"]]

    def reorder_persister(self, itinerary_id: uuid.UUID) -> PersistReorder:
        """Persist callable for DayTimeline.commit."""
        return functools.partial(self.reorder_items, itinerary_id)

    def move_persister(self) -> PersistMove:
        """Persist callable for DayTimeline.move_to_day."""
        return self.move_item

    # Accommodations

    async def list_accommodations(self, itinerary_id: uuid.UUID) -> list[Accommodation]:
        """GET /itineraries/{itinerary_id}/accommodations"""
        response = await self._request("GET", f"/itineraries/{itinerary_id}/accommodations")
        return [Accommodation.model_validate(acc) for acc in response.json()]

    async def get_accommodation(self, accommodation_id: uuid.UUID) -> Accommodation:
        """GET /itineraries/accommodations/{accommodation_id}"""
        response = await self._request("GET", f"/itineraries/accommodations/{accommodation_id}")
        return Accommodation.model_validate(response.json())

    async def create_accommodation(
        self, itinerary_id: uuid.UUID, data: AccommodationCreate
    ) -> Accommodation:
        """POST /itineraries/{itinerary_id}/accommodations"""
        response = await self._request(
            "POST", f"/itineraries/{itinerary_id}/accommodations", json=self._body(data)
        )
        return Accommodation.model_validate(response.json())

    async def update_accommodation(
        self, accommodation_id: uuid.UUID, changes: AccommodationUpdate
    ) -> Accommodation:
        """PUT /itineraries/accommodations/{accommodation_id}"""
        response = await self._request(
            "PUT", f"/itineraries/accommodations/{accommodation_id}", json=self._body(changes)
        )
        return Accommodation.model_validate(response.json())

    async def delete_accommodation(self, accommodation_id: uuid.UUID) -> None:
        """DELETE /itineraries/accommodations/{accommodation_id}"""
        await self._request("DELETE", f"/itineraries/accommodations/{accommodation_id}")

    # Flights

    async def list_flights(self, itinerary_id: uuid.UUID) -> list[Flight]:
        """GET /itineraries/{itinerary_id}/flights"""
        response = await self._request("GET", f"/itineraries/{itinerary_id}/flights")
        return [Flight.model_validate(flight) for flight in response.json()]

    async def create_flight(self, itinerary_id: uuid.UUID, data: FlightCreate) -> Flight:
        """POST /itineraries/{itinerary_id}/flights"""
        response = await self._request(
            "POST", f"/itineraries/{itinerary_id}/flights", json=self._body(data)
        )
        return Flight.model_validate(response.json())

    async def update_flight(self, flight_id: uuid.UUID, changes: FlightUpdate) -> Flight:
        """PUT /itineraries/flights/{flight_id}"""
        response = await self._request(
            "PUT", f"/itineraries/flights/{flight_id}", json=self._body(changes)
        )
        return Flight.model_validate(response.json())

    async def delete_flight(self, flight_id: uuid.UUID) -> None:
        """DELETE /itineraries/flights/{flight_id}"""
        await self._request("DELETE", f"/itineraries/flights/{flight_id}")
