import hmac
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from cavgo.core.config import settings
from cavgo.core.dependencies import AsyncDbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def verify_health_token(x_health_token: Annotated[str | None, Header()] = None) -> None:
    """
    Verify the health check token if one is configured.

    When HEALTH_TOKEN is unset the health endpoints stay public so that
    orchestrator probes keep working.
    """
    expected_token = settings.health_token
    if not expected_token:
        return
    if not x_health_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Health token required",
        )
    if not hmac.compare_digest(x_health_token, expected_token):
        logger.warning(
            "Unauthorized health check attempt",
            extra={"security_event": True, "event_type": "HEALTH_ACCESS_DENIED"},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid health token",
        )


async def _database_ok(db: AsyncDbSession) -> bool:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Database check failed: %s", exc, exc_info=True)
        return False
    return True


@router.get("/health", dependencies=[Depends(verify_health_token)])
async def health(db: AsyncDbSession) -> JSONResponse:
    """Liveness check including database connectivity."""
    db_ok = await _database_ok(db)
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"ok": True, "db": "ok" if db_ok else "unavailable"},
    )


@router.get("/readyz", dependencies=[Depends(verify_health_token)])
async def readyz(db: AsyncDbSession) -> JSONResponse:
    """Readiness probe.

    Returns:
      - 200 when the database is reachable
      - 503 when it is not
    """
    if await _database_ok(db):
        return JSONResponse(status_code=status.HTTP_200_OK, content={"ok": True, "db": "ok"})
    # Don't expose internal error details to callers
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ok": False, "db": "unavailable"},
    )
