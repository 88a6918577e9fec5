import threading

from core.errors import MappingConflictError


class UrlMappingRepository:
    """In-memory store indexed by short key and by original URL.

    Both keys are unique; save() refuses to overwrite either.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._by_key = {}
        self._by_url = {}

    def find_by_short_key(self, short_key):
        with self._lock:
            return self._by_key.get(short_key)

    def find_by_original_url(self, original_url):
        with self._lock:
            return self._by_url.get(original_url)

    def save(self, mapping):
        with self._lock:
            if mapping.short_key in self._by_key:
                raise MappingConflictError(f"Short key already in use: {mapping.short_key}",
                                           context={"short_key": mapping.short_key})
            if mapping.original_url in self._by_url:
                raise MappingConflictError(f"Mapping already exists for URL: {mapping.original_url}",
                                           context={"url": mapping.original_url})
            self._by_key[mapping.short_key] = mapping
            self._by_url[mapping.original_url] = mapping
            return mapping

    def count(self):
        with self._lock:
            return len(self._by_key)
