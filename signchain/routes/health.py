from fastapi import APIRouter, Request
import datetime as dt

router = APIRouter(tags=["health"])

@router.get("/health")
def health(request: Request):
    backends = request.app.state.backends
    return {
        "ok": True,
        "status": "healthy",
        "backends": {
            "generator": type(backends.generator).__name__,
            "storage": type(backends.storage).__name__,
            "ledger": type(backends.ledger).__name__,
        },
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat().replace("+00:00", "Z"),
    }
