"""Health check endpoints."""

import logging

from fastapi import APIRouter

from solcustody.config import get_settings
from solcustody.context import get_context
from solcustody.signing.factory import get_signer_info

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "solcustody"}


@router.get("/health/detailed")
async def detailed_health():
    """Detailed health check with configuration and signer status."""
    settings = get_settings()
    context = get_context()

    signer = await get_signer_info(context.signer)
    bridge_healthy = await context.bridge.health_check()
    healthy = signer["healthy"] and bridge_healthy
    if not healthy:
        logger.warning(f"Degraded: signer={signer['healthy']}, dlmm_bridge={bridge_healthy}")

    return {
        "status": "healthy" if healthy else "degraded",
        "service": "solcustody",
        "version": "0.1.0",
        "signer": signer,
        "dlmm_bridge": {"url": settings.dlmm_bridge_url, "healthy": bridge_healthy},
        "config": settings.get_safe_dict(),
    }
