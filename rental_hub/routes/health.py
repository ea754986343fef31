# rental_hub/routes/health.py
"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse

from rental_hub.config import settings
from rental_hub.realtime.presence import PresenceRegistryError

router = APIRouter()


@router.get("/test-backend", response_class=PlainTextResponse)
async def test_backend():
    return "Backend is working!"


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "rental-hub"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness check: token secrets configured and presence registry running."""
    checks = {}

    missing = [
        name
        for name in ("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
        if not getattr(settings, name)
    ]
    if missing:
        checks["auth"] = {"ok": False, "error": f"{', '.join(missing)} not set"}
    else:
        checks["auth"] = {"ok": True}

    t0 = time.time()
    registry = getattr(request.app.state, "presence", None)
    if registry is None or not registry.is_running:
        checks["presence"] = {"ok": False, "error": "Presence registry not running"}
    else:
        try:
            stats = await registry.stats()
            checks["presence"] = {
                "ok": True,
                "latency_ms": round((time.time() - t0) * 1000, 1),
                **stats,
            }
        except PresenceRegistryError as e:
            checks["presence"] = {"ok": False, "error": str(e)}

    overall_ok = all(check["ok"] for check in checks.values())
    return {"overall_ok": overall_ok, "checks": checks}
