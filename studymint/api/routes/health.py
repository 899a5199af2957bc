from fastapi import APIRouter, Depends, Response

from studymint.api.deps import get_services
from studymint.db.session import ping
from studymint.services.container import Services


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
async def readiness(response: Response, services: Services = Depends(get_services)) -> dict:
    """Readiness probe - returns 503 if the database is unavailable."""
    try:
        await ping(services.session_factory)
        return {"status": "ready"}
    except Exception as e:
        response.status_code = 503
        return {"status": "not_ready", "error": str(e)}
