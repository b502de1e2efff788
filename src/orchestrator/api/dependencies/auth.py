"""Service-to-service authentication."""

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from src.orchestrator.core.config import get_settings
from src.orchestrator.core.security import INTERNAL_KEY_HEADER, verify_internal_key

internal_key_header = APIKeyHeader(name=INTERNAL_KEY_HEADER, auto_error=False)


async def require_internal_key(api_key: str | None = Depends(internal_key_header)) -> None:
    """Reject billing/dashboard calls without the shared key, when one is configured."""
    if not verify_internal_key(api_key, get_settings().internal_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key",
        )
