"""URL shortening on top of the id generator."""

from urllib.parse import urlsplit

from core.errors import InvalidUrlError, MappingConflictError, UrlNotFoundError
from internal.logging import get_logger
from shortener.models import ShortUrlResponse, UrlMapping
from utils import base62

ALLOWED_SCHEMES = ("http", "https")


class UrlShortenerService:
    def __init__(self, repository, generator, domain="http://localhost:8080", audit=None):
        self.repository = repository
        self.generator = generator
        self.domain = domain.rstrip("/")
        self.audit = audit
        self._log = get_logger("shortener.service")

    def create_short_url(self, long_url):
        """Return the short URL for ``long_url``, creating a mapping if needed.

        Known URLs return their existing mapping. A concurrent writer that
        wins the race for the same URL is resolved by re-reading its mapping.
        """
        self.validate_url(long_url)
        existing = self.repository.find_by_original_url(long_url)
        if existing is not None:
            return self._to_response(existing)

        flake_id = self.generator.next_id()
        mapping = UrlMapping(id=flake_id, short_key=self.generate_short_key(flake_id), original_url=long_url)
        try:
            saved = self.repository.save(mapping)
        except MappingConflictError as exc:
            self._log.warn("Possible race while saving mapping", error=exc, url=long_url)
            fallback = self.repository.find_by_original_url(long_url)
            if fallback is None:
                self._log.error("Fallback failed, no mapping for URL", url=long_url)
                raise MappingConflictError(f"Failed to save or recover mapping for URL: {long_url}",
                                           context={"url": long_url}, cause=exc) from exc
            return self._to_response(fallback)

        self._log.info("Saved mapping", short_key=saved.short_key, id=saved.id)
        if self.audit is not None:
            self.audit.try_log("url_created", saved.to_dict())
        return self._to_response(saved)

    def get_long_url(self, short_key):
        mapping = self.repository.find_by_short_key(short_key)
        if mapping is None:
            raise UrlNotFoundError(short_key)
        return mapping.original_url

    def validate_url(self, url):
        try:
            parts = urlsplit(url)
        except ValueError as exc:
            raise InvalidUrlError(url, cause=exc) from exc
        if parts.scheme not in ALLOWED_SCHEMES or not parts.hostname:
            self._log.debug("Rejected URL", url=url)
            raise InvalidUrlError(url)

    @staticmethod
    def generate_short_key(flake_id):
        return base62.encode(flake_id)

    def _to_response(self, mapping):
        return ShortUrlResponse(short_key=mapping.short_key, short_url=f"{self.domain}/{mapping.short_key}")
