"""Health and observability routes."""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from core.health import Status
from utils.timestamp import format_timestamp

router = APIRouter(prefix="/api/v1", tags=["health"])

# These will be set by app.py
_generator = None
_health_checker = None
_started_at = time.time()


def init(generator, health_checker):
    """Initialize with generator and health checker references."""
    global _generator, _health_checker, _started_at
    _generator = generator
    _health_checker = health_checker
    _started_at = time.time()


@router.get("/health")
async def health():
    """Health check with component status."""
    report = await _health_checker.check()
    status_code = 200 if report.status != Status.FAIL else 503
    return JSONResponse(content=report.to_dict(), status_code=status_code)


@router.get("/heartbeat")
async def heartbeat():
    """Lightweight heartbeat for frequent polling."""
    return {
        "status": "ok",
        "timestamp": format_timestamp(),
        "uptime_s": round(time.time() - _started_at, 1),
        "machine_id": _generator.settings.machine_id,
    }
