"""
MR-ROBOT - API Dependencies

Shared dependencies for the FastAPI application:
- Dual-store mediator access (created in the app lifespan)
- API key authentication for admin endpoints
- Request ID generation
"""

import os
import uuid
from typing import Optional

from fastapi import Header, HTTPException, Request
import structlog

from mrrobot.config import get_config
from mrrobot.storage import DualStoreMediator

logger = structlog.get_logger()


def build_mediator() -> DualStoreMediator:
    """Construct the mediator from environment configuration (not initialized)."""
    return DualStoreMediator(get_config().database)


def get_mediator(request: Request) -> DualStoreMediator:
    """
    Get the mediator owned by the running application.

    Raises:
        HTTPException: 503 if the lifespan has not set it up
    """
    mediator = getattr(request.app.state, "mediator", None)

    if mediator is None or not mediator.initialized:
        logger.error("database.mediator.not_initialized")
        raise HTTPException(
            status_code=503,
            detail="Database temporarily unavailable"
        )

    return mediator


# API Key validation
def get_valid_api_keys() -> set:
    """
    Get valid API keys from environment.

    Returns:
        Set of valid API keys
    """
    api_keys_str = os.getenv("VALID_API_KEYS", "")
    if not api_keys_str:
        logger.warning("auth.no_api_keys_configured")
        return set()

    return set(key.strip() for key in api_keys_str.split(",") if key.strip())


def get_auth_mode() -> str:
    return os.getenv("AUTH_MODE", "api_key")  # api_key, disabled


async def verify_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key")
) -> str:
    """
    Verify API key from X-API-Key header.

    Returns:
        API key if valid

    Raises:
        HTTPException: 401 if missing or invalid
    """
    request_id = getattr(request.state, "request_id", "unknown")

    if get_auth_mode() == "disabled":
        logger.warning("auth.disabled", request_id=request_id)
        return "disabled"

    if not x_api_key:
        logger.warning("auth.missing_api_key", request_id=request_id)
        raise HTTPException(
            status_code=401,
            detail="API key required. Provide X-API-Key header."
        )

    if x_api_key not in get_valid_api_keys():
        logger.warning(
            "auth.invalid_api_key",
            request_id=request_id,
            api_key_prefix=x_api_key[:8] + "..."
        )
        raise HTTPException(
            status_code=401,
            detail="Invalid API key"
        )

    logger.debug("auth.valid_api_key", request_id=request_id)
    return x_api_key


def generate_request_id() -> str:
    """
    Generate unique request ID for tracing.

    Returns:
        Request ID (UUID4)
    """
    return f"req_{uuid.uuid4().hex[:12]}"
