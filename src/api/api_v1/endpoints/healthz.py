from datetime import datetime, timezone
import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from api.api_v1.deps import SessionDep
from schemas.health import HealthStatus

router = APIRouter()

logger = logging.getLogger(__name__)


@router.get("", response_model=HealthStatus, status_code=status.HTTP_200_OK)
async def health_check(session: SessionDep):
    """Liveness plus a round trip to the snapshot database."""
    try:
        await session.exec(select(1))
    except SQLAlchemyError as exc:
        logger.error("Health check database query failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )
    return HealthStatus(
        status="ok", database="ok", checked_at=datetime.now(timezone.utc)
    )
