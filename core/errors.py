"""Custom errors with tracking IDs."""

import uuid
from enum import Enum

from utils.timestamp import format_timestamp


class ErrorKind(Enum):
    INVALID_START_TIME = "invalid_start_time"
    INVALID_MACHINE_ID = "invalid_machine_id"
    NO_PRIVATE_ADDRESS = "no_private_address"
    OVER_TIME_LIMIT = "over_time_limit"
    INVALID_URL = "invalid_url"
    URL_NOT_FOUND = "url_not_found"
    MAPPING_CONFLICT = "mapping_conflict"
    INTERNAL = "internal"


class BaseFlakeError(Exception):
    """Base error with unique ID and timestamp for tracking.

    ``kind`` is a closed set of failure categories, so callers can branch on
    ``err.kind`` instead of on the class hierarchy.
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message, context=None, cause=None):
        super().__init__(message)
        self.error_id = uuid.uuid4().hex[:12]
        self.timestamp = format_timestamp()
        self.context = context or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def message(self):
        return self.args[0] if self.args else ""

    def __str__(self):
        return f"[{self.error_id}] {super().__str__()}"


# --- generator ---

class InvalidStartTimeError(BaseFlakeError):
    """Start time missing, of the wrong type, or in the future."""

    kind = ErrorKind.INVALID_START_TIME

    def __init__(self, message, start_time=None, **kwargs):
        context = kwargs.pop("context", {})
        if start_time is not None:
            context["start_time"] = str(start_time)
        super().__init__(message, context=context, **kwargs)


class InvalidMachineIdError(BaseFlakeError):
    """Machine id outside 16 bits, or derivation of one failed."""

    kind = ErrorKind.INVALID_MACHINE_ID

    def __init__(self, message, machine_id=None, **kwargs):
        context = kwargs.pop("context", {})
        if machine_id is not None:
            context["machine_id"] = machine_id
        super().__init__(message, context=context, **kwargs)


class NoPrivateAddressError(BaseFlakeError):
    kind = ErrorKind.NO_PRIVATE_ADDRESS


class OverTimeLimitError(BaseFlakeError):
    """The 39-bit elapsed time budget of a generator is used up."""

    kind = ErrorKind.OVER_TIME_LIMIT

    def __init__(self, message, elapsed_time=None, **kwargs):
        context = kwargs.pop("context", {})
        if elapsed_time is not None:
            context["elapsed_time"] = elapsed_time
        super().__init__(message, context=context, **kwargs)


# --- shortener ---

class InvalidUrlError(BaseFlakeError):
    kind = ErrorKind.INVALID_URL

    def __init__(self, url, **kwargs):
        super().__init__(f"Invalid URL: {url}", context={"url": url}, **kwargs)


class UrlNotFoundError(BaseFlakeError):
    kind = ErrorKind.URL_NOT_FOUND

    def __init__(self, short_key, **kwargs):
        super().__init__(f"URL not found for short key: {short_key}",
                         context={"short_key": short_key}, **kwargs)


class MappingConflictError(BaseFlakeError):
    """A mapping with the same short key or original URL already exists."""

    kind = ErrorKind.MAPPING_CONFLICT
