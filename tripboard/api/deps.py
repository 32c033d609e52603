"""FastAPI dependencies wiring the service to a request-scoped session."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.config import get_settings
from tripboard.db.engine import get_session
from tripboard.db.sql_repositories import SqlItineraryStore, SqlPlaceLookup
from tripboard.services.itinerary import ItineraryService


async def get_itinerary_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> ItineraryService:
    """Itinerary service bound to the request's session."""
    return ItineraryService(SqlItineraryStore(session), SqlPlaceLookup(session), get_settings())


ServiceDep = Annotated[ItineraryService, Depends(get_itinerary_service)]
