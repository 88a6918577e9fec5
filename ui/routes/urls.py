"""URL shortener routes."""

from fastapi import APIRouter, Response
from fastapi.responses import RedirectResponse

from shortener.models import ErrorResponse, ShortUrlRequest, ShortUrlResponse

router = APIRouter(prefix="/api/v1/urls", tags=["urls"])

# Set by app.py
_service = None


def init(service):
    """Initialize with the shortener service."""
    global _service
    _service = service


@router.post("", status_code=201, response_model=ShortUrlResponse,
             responses={400: {"model": ErrorResponse, "description": "Invalid URL format"}})
async def create_short_url(request: ShortUrlRequest, response: Response):
    """Shorten a URL; known URLs return their existing short key."""
    # issuing the id may block the loop for up to one 10 ms unit
    result = _service.create_short_url(request.long_url)
    response.headers["Location"] = f"{router.prefix}/{result.short_key}"
    return result


@router.get("/{short_key}/meta",
            responses={404: {"model": ErrorResponse, "description": "Short URL not found"}})
async def original_url_meta(short_key: str):
    """Original URL for a short key, without redirecting."""
    return {"original_url": _service.get_long_url(short_key)}


@router.get("/{short_key}", status_code=301,
            responses={404: {"model": ErrorResponse, "description": "Short URL not found"}})
async def redirect_to_original_url(short_key: str):
    """Permanent redirect to the original URL."""
    return RedirectResponse(_service.get_long_url(short_key), status_code=301)
