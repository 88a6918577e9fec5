from datetime import datetime, timezone

from pydantic import BaseModel, Field


class UrlMapping:
    __slots__ = ("id", "short_key", "original_url", "created_at")

    def __init__(self, id, short_key, original_url, created_at=None):
        self.id = id
        self.short_key = short_key
        self.original_url = original_url
        self.created_at = created_at or datetime.now(timezone.utc)

    def to_dict(self):
        return {
            "id": self.id,
            "short_key": self.short_key,
            "original_url": self.original_url,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self):
        return f"UrlMapping(id={self.id}, short_key={self.short_key!r}, original_url={self.original_url!r})"


class ShortUrlRequest(BaseModel):
    long_url: str = Field(min_length=1, examples=["https://example.com/long-path"])


class ShortUrlResponse(BaseModel):
    short_key: str = Field(examples=["abc123"])
    short_url: str = Field(examples=["http://localhost:8080/abc123"])


class ErrorResponse(BaseModel):
    status: int
    code: str
    message: str
    error_id: str | None = None
