"""Health check endpoints."""

import structlog
from fastapi import APIRouter, HTTPException
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gophermart.api.v1.dependencies import SessionDep

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/ping", operation_id="ping")
async def ping(session: SessionDep) -> dict[str, str]:
    """Report whether the database answers."""
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Database ping failed", error=str(e))
        raise HTTPException(status_code=500, detail="Database connection error")
    return {"status": "healthy"}
