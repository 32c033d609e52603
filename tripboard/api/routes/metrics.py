"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes:
    - itinerary_sync_items_total{action, kind}
    - itinerary_reorders_total{outcome}
    - itinerary_mutation_errors_total{error}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
