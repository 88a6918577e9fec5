from shortener.models import ShortUrlRequest, ShortUrlResponse, UrlMapping
from shortener.repository import UrlMappingRepository
from shortener.service import UrlShortenerService

__all__ = [
    "ShortUrlRequest",
    "ShortUrlResponse",
    "UrlMapping",
    "UrlMappingRepository",
    "UrlShortenerService",
]
