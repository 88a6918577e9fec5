"""API routes for service statistics."""

from fastapi import APIRouter, Depends

from utils.timestamp import format_timestamp
from ui.auth import verify_basic_auth

router = APIRouter(prefix="/api/v1", tags=["api"])

# These will be set by app.py
_generator = None
_repository = None
_file_logger = None


def init(generator, repository, file_logger):
    """Initialize with generator, repository, and audit logger references."""
    global _generator, _repository, _file_logger
    _generator = generator
    _repository = repository
    _file_logger = file_logger


@router.get("/stats")
async def stats(username=Depends(verify_basic_auth)):
    """Return generator, storage and audit log statistics (requires basic auth)."""
    return {
        "timestamp": format_timestamp(),
        "generator": _generator.stats(),
        "urls": {"mappings": _repository.count()},
        "audit_log": _file_logger.get_stats(),
    }
