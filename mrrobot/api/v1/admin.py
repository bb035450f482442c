"""
MR-ROBOT API - Admin Endpoints

Administrative endpoints requiring API key authentication.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
import structlog

from mrrobot.api.dependencies import get_mediator, verify_api_key
from mrrobot.storage import DualStoreMediator, StoreIdentity

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/admin")


class StoreStatusModel(BaseModel):
    """Status of one store for the admin database panel."""
    provider: str
    connected: bool
    configured: bool
    error: Optional[str] = None
    last_query_error: Optional[str] = None


class DatabaseStatusResponse(BaseModel):
    stores: Dict[str, StoreStatusModel]
    preferred: str
    connected_count: int


@router.get("/database/status", response_model=DatabaseStatusResponse)
def database_status(
    request: Request,
    api_key: str = Depends(verify_api_key),
    mediator: DualStoreMediator = Depends(get_mediator)
):
    """
    Report connectivity of both stores (admin-only).

    last_query_error shows the most recent statement a store rejected while
    the other store carried the request.

    Authentication:
        Requires X-API-Key header

    Raises:
        401: Missing or invalid API key
    """
    request_id = getattr(request.state, "request_id", "unknown")

    logger.info("admin.database.status", request_id=request_id)

    status = mediator.get_status()

    stores = {
        identity.key: StoreStatusModel(
            provider=identity.provider,
            **status[identity.key].to_dict()
        )
        for identity in StoreIdentity
    }

    return DatabaseStatusResponse(
        stores=stores,
        preferred=StoreIdentity.B.key,
        connected_count=sum(1 for store in stores.values() if store.connected)
    )
