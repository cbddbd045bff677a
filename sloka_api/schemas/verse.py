"""
Sloka API — Pydantic Request/Response Schemas
==============================================

What:  Pydantic models defining the JSON contract of the API and the shape of
       seed-file entries.
How:   Response models serialize with camelCase aliases (`createdAt`,
       `dayOfYear`, `hasNextPage`), which FastAPI applies because routes
       declare `response_model`. Only public fields exist here, so internal
       columns such as `position` never leak.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sloka_api.models.verse import (
    SLOKA_MAX_LENGTH,
    SOURCE_MAX_LENGTH,
    TRANSLATION_MAX_LENGTH,
    TRANSLITERATION_MAX_LENGTH,
)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-15T12:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Records
# ══════════════════════════════════════════════════════════════════════════


class VerseOut(CamelModel):
    """Public representation of one VerseRecord."""

    id: uuid.UUID = Field(description="Unique verse identifier (UUID)")
    sloka: str = Field(description="Verse text in the original script")
    transliteration: Optional[str] = Field(default=None, description="Romanized text")
    translation: Optional[str] = Field(default=None, description="English translation")
    source: Optional[str] = Field(default=None, description="Scripture or work the verse comes from")
    created_at: datetime = Field(description="When the record was loaded (UTC)")
    updated_at: datetime = Field(description="When the record last changed (UTC)")


class VerseIn(BaseModel):
    """
    One entry of the seed file.

    Text is trimmed before the length checks; blank optional fields become
    None. Unknown keys are ignored.
    """

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    sloka: str = Field(min_length=1, max_length=SLOKA_MAX_LENGTH)
    transliteration: Optional[str] = Field(default=None, max_length=TRANSLITERATION_MAX_LENGTH)
    translation: Optional[str] = Field(default=None, max_length=TRANSLATION_MAX_LENGTH)
    source: Optional[str] = Field(default=None, max_length=SOURCE_MAX_LENGTH)

    @field_validator("transliteration", "translation", "source")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None


# ══════════════════════════════════════════════════════════════════════════
# Envelopes
# ══════════════════════════════════════════════════════════════════════════


class Envelope(CamelModel):
    success: bool = True
    timestamp: str = Field(default_factory=utc_timestamp)


class QuoteResponse(Envelope):
    """GET /api/quote/random and GET /api/quote/{id}"""

    data: VerseOut


class DailyQuoteResponse(QuoteResponse):
    """GET /api/quote/daily"""

    day_of_year: int = Field(description="1-based day of the year used to pick the verse")


class SearchResponse(Envelope):
    """GET /api/quotes/search"""

    count: int
    data: List[VerseOut]


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int
    has_next_page: bool
    has_prev_page: bool


class QuoteListResponse(Envelope):
    """GET /api/quotes"""

    data: List[VerseOut]
    pagination: Pagination


class ApiInfoResponse(Envelope):
    """GET /api"""

    message: str
    version: str
    endpoints: Dict[str, str]


class HealthResponse(CamelModel):
    """
    GET /health. Always 200; `mongodb` reports connectivity so monitors can
    tell a degraded instance from a dead one. The key name predates the
    relational store and is kept for existing monitors; `database` carries
    the same value.
    """

    success: bool = True
    uptime: float = Field(description="Seconds since the process started")
    timestamp: str = Field(default_factory=utc_timestamp)
    mongodb: str = Field(description="connected or disconnected")
    database: str = Field(description="Same value as mongodb")


class ErrorResponse(BaseModel):
    """
    Error envelope shared by every failing response.

    Example:
        {"success": false, "error": "Invalid quote ID format"}
    """

    success: bool = False
    error: str
    details: Optional[list] = None
    path: Optional[str] = None
