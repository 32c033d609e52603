"""Health check endpoint."""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tripboard.db.engine import get_session

router = APIRouter()


async def check_db(session: AsyncSession) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        await session.execute(text("SELECT 1"))
        return (True, "ok")
    except SQLAlchemyError as e:
        return (False, f"error: {type(e).__name__}")


@router.get("/health", response_model=None)
async def health(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> dict[str, Any] | Response:
    """Health check with database status.

    Returns:
        200 with component status when the database answers
        503 otherwise
    """
    db_ok, db_status = await check_db(session)
    body = {"status": "ok" if db_ok else "degraded", "components": {"db": db_status}}

    if not db_ok:
        return JSONResponse(content=body, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return body
