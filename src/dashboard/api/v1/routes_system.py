from fastapi import APIRouter

from src.dashboard.config import settings

router = APIRouter(prefix="", tags=["system"])


@router.get("/health")
async def health_check_v1() -> dict:
    """API v1 health endpoint."""
    return {"status": "ok", "version": "v1"}


@router.get("/system/gateway")
async def gateway_info_v1() -> dict:
    """Report which remote data gateway backend is configured (no secrets)."""

    return {
        "backend": settings.gateway_backend,
        "url": settings.gateway_url if settings.gateway_backend == "http" else None,
        "auth_enabled": settings.enable_api_auth,
    }
