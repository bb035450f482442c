"""
MR-ROBOT API - Health Endpoints

- GET /healthz     per-store connectivity (operators)
- GET /api/health  liveness through the mediated query path (site monitor)
"""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog

from mrrobot import __version__
from mrrobot.api.dependencies import get_mediator
from mrrobot.config import get_config
from mrrobot.storage import DualStoreMediator

logger = structlog.get_logger()

router = APIRouter()


class StoreCheckResult(BaseModel):
    """Health check result for a single store."""
    status: str  # "up" or "down"
    configured: bool


class HealthResponse(BaseModel):
    """
    Health check response.

    status is "healthy" with both stores up, "degraded" with one,
    "unhealthy" with none.
    """
    status: str
    checks: Dict[str, StoreCheckResult]
    version: str


@router.get("/healthz", response_model=HealthResponse)
def health_check(mediator: DualStoreMediator = Depends(get_mediator)):
    """
    Health check endpoint.

    Reports up/down only. Driver messages are served by the API-key
    gated admin status endpoint.

    Returns:
        - 200 OK if at least one store is reachable
        - 503 Service Unavailable if neither is
    """
    status = mediator.get_status()

    checks = {
        key: StoreCheckResult(
            status="up" if store.connected else "down",
            configured=store.configured
        )
        for key, store in status.items()
    }

    up = sum(1 for check in checks.values() if check.status == "up")
    if up == len(checks):
        overall_status = "healthy"
    elif up:
        overall_status = "degraded"
    else:
        overall_status = "unhealthy"

    if overall_status != "healthy":
        logger.warning("health.stores", status=overall_status, up=up)

    response = HealthResponse(
        status=overall_status,
        checks=checks,
        version=__version__
    )

    if overall_status == "unhealthy":
        return JSONResponse(status_code=503, content=response.model_dump())

    return response


@router.get("/api/health")
def api_health(mediator: DualStoreMediator = Depends(get_mediator)):
    """
    Site liveness check.

    Runs SELECT 1 through the mediated path, so it fails exactly when
    route handlers would.
    """
    mediator.execute_query("SELECT 1 AS ok")

    return {
        "status": "OK",
        "message": "MR-ROBOT Computer Repair API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": get_config().environment
    }
