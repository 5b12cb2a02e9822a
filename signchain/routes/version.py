from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request

from signchain.backends import get_app_settings
from signchain.config import Settings

router = APIRouter(tags=["meta"])


@router.get("/version")
def version(request: Request, settings: Settings = Depends(get_app_settings)):
    """
    Build info for the running app, taken from the app itself and its settings.
    """
    return {
        "name": settings.app_name,
        "version": request.app.version,
        "build_sha": settings.git_sha,
        "environment": settings.environment,
        "backend_mode": settings.backend_mode,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
