"""FastAPI application."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from tripboard.api.routes.accommodations import router as accommodations_router
from tripboard.api.routes.flights import router as flights_router
from tripboard.api.routes.health import router as health_router
from tripboard.api.routes.items import router as items_router
from tripboard.api.routes.itineraries import router as itineraries_router
from tripboard.api.routes.metrics import router as metrics_router
from tripboard.config import get_settings
from tripboard.errors import ConflictError, InvalidInputError, NotFoundError, PersistenceError
from tripboard.utils.metrics import metrics

logging.basicConfig(level=get_settings().log_level.upper())
logger = logging.getLogger(__name__)

app = FastAPI(title="Tripboard Itinerary API", version="0.1.0")

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(itineraries_router)
app.include_router(items_router)
app.include_router(accommodations_router)
app.include_router(flights_router)


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    """Validation failure: 400 with the offending field."""
    metrics.inc_error("InvalidInputError")
    logger.info(
        "Rejected invalid input on %s %s: %s", request.method, request.url.path, exc.message
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": exc.message, "field": exc.field},
    )


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    """Conflict with existing state: 409, caller should reload."""
    metrics.inc_error("ConflictError")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": exc.message, "code": exc.code, "resource_id": exc.resource_id},
    )


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Stale or unknown id: 404."""
    metrics.inc_error("NotFoundError")
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc), "resource": exc.resource, "resource_id": exc.resource_id},
    )


@app.exception_handler(PersistenceError)
async def persistence_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Unit of work aborted and rolled back: 503."""
    metrics.inc_error("PersistenceError")
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Tripboard Itinerary API", "version": "0.1.0"}
