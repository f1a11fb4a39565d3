# unistore/api/admin/health.py
"""
Health endpoints for shallow and deep readiness checks.
"""
from fastapi import APIRouter, Depends
from starlette.status import HTTP_200_OK

from unistore import __version__
from unistore.api.dependencies import get_storage
from unistore.file_access.storage import Storage

router = APIRouter(prefix="/admin", tags=["health"])


@router.get("/health", status_code=HTTP_200_OK)
async def health() -> dict:
    """Shallow health endpoint."""
    return {"status": "ok", "version": __version__}


@router.get("/health/deep", status_code=HTTP_200_OK)
async def health_deep(storage: Storage = Depends(get_storage)) -> dict:
    """
    Deep health endpoint running the bound backend's health check.

    Checks:
    - Backend reachability / base path access
    - Read and write permissions
    """
    try:
        backend_health = await storage.health_check()
    except Exception as exc:
        backend_health = {
            "healthy": False,
            "provider": storage.backend.provider_name,
            "message": f"Health check failed: {exc}",
            "details": {"error": str(exc)},
        }

    healthy = bool(backend_health.get("healthy", False))
    result = {
        "status": "ready" if healthy else "degraded",
        "storage": {
            "name": storage.name,
            "provider": backend_health.get("provider"),
            "healthy": healthy,
            "message": backend_health.get("message", ""),
            "details": backend_health.get("details", {}),
        },
    }
    if not healthy:
        result["warnings"] = [f"Storage {storage.name}: {backend_health.get('message', '')}"]
    return result
