"""
Sloka API — Quote Route Handlers
=================================

What:  The verse-serving endpoints under /api.

    GET /api/quote/random        one uniformly random verse
    GET /api/quote/daily         the verse of the day (+ dayOfYear)
    GET /api/quote/{id}          one verse by UUID
    GET /api/quotes/search       literal, case-insensitive source search
    GET /api/quotes              paginated listing

How:   Each handler asks the store for a count or a slice, uses the pure
       selection functions for offsets and page math, and returns an
       envelope model. Domain failures are raised as ValidationError /
       NotFoundError and rendered by the global handlers in main.py.

The literal /quote/random and /quote/daily routes are declared before
/quote/{quote_id} so they win the match.
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from sloka_api.exceptions import NotFoundError, ValidationError
from sloka_api.routes.deps import get_store
from sloka_api.schemas.verse import (
    DailyQuoteResponse,
    ErrorResponse,
    Pagination,
    QuoteListResponse,
    QuoteResponse,
    SearchResponse,
)
from sloka_api.services.selection import daily_offset, pagination_bounds, random_offset
from sloka_api.services.verse_store import SEARCH_MAX_RESULTS, VerseStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Quotes"])

NO_QUOTES_MESSAGE = "No quotes found in database"

_errors = {
    404: {"description": "No matching quote", "model": ErrorResponse},
    429: {"description": "Rate limit exceeded", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}


async def _require_count(store: VerseStore) -> int:
    count = await store.count()
    if count == 0:
        raise NotFoundError(message=NO_QUOTES_MESSAGE)
    return count


async def _fetch_at(store: VerseStore, offset: int):
    quote = await store.find_at_offset(offset)
    if quote is None:
        # The collection shrank between count() and the fetch (a reseed).
        raise NotFoundError(message=NO_QUOTES_MESSAGE, context={"offset": offset})
    return quote


@router.get(
    "/quote/random",
    response_model=QuoteResponse,
    responses=_errors,
    summary="Get a random verse",
)
async def random_quote(store: VerseStore = Depends(get_store)) -> QuoteResponse:
    count = await _require_count(store)
    quote = await _fetch_at(store, random_offset(count))
    return QuoteResponse(data=quote)


@router.get(
    "/quote/daily",
    response_model=DailyQuoteResponse,
    responses=_errors,
    summary="Get the verse of the day",
    description=(
        "The verse at position (day of year mod total verses). Every caller "
        "gets the same verse for the whole calendar day."
    ),
)
async def daily_quote(store: VerseStore = Depends(get_store)) -> DailyQuoteResponse:
    count = await _require_count(store)
    offset, day = daily_offset(count)
    quote = await _fetch_at(store, offset)
    return DailyQuoteResponse(data=quote, day_of_year=day)


@router.get(
    "/quote/{quote_id}",
    response_model=QuoteResponse,
    responses={400: {"description": "Invalid ID format", "model": ErrorResponse}, **_errors},
    summary="Get a verse by ID",
)
async def get_quote(quote_id: str, store: VerseStore = Depends(get_store)) -> QuoteResponse:
    # find_by_id raises ValidationError for non-UUID input before querying
    quote = await store.find_by_id(quote_id)
    if quote is None:
        raise NotFoundError(message="Quote not found", resource_id=quote_id)
    return QuoteResponse(data=quote)


@router.get(
    "/quotes/search",
    response_model=SearchResponse,
    responses={400: {"description": "Missing source", "model": ErrorResponse}, **_errors},
    summary="Search verses by source",
    description=(
        "Case-insensitive substring match on the source label. The term is "
        "matched literally; regex characters have no special meaning. "
        f"Returns at most {SEARCH_MAX_RESULTS} verses."
    ),
)
async def search_quotes(
    request: Request,
    source: Optional[str] = Query(default=None, description="Text to look for in the source label"),
    store: VerseStore = Depends(get_store),
) -> SearchResponse:
    values = request.query_params.getlist("source")
    if len(values) != 1 or not source:
        raise ValidationError(message="Source query parameter is required", field="source")

    quotes = await store.find_by_source_substring(source, limit=SEARCH_MAX_RESULTS)
    return SearchResponse(count=len(quotes), data=quotes)


@router.get(
    "/quotes",
    response_model=QuoteListResponse,
    responses=_errors,
    summary="List verses with pagination",
    description="page defaults to 1; limit defaults to 10 and is clamped to 1..50.",
)
async def list_quotes(
    page: Optional[str] = Query(default=None, description="1-based page number"),
    limit: Optional[str] = Query(default=None, description="Items per page (1-50)"),
    store: VerseStore = Depends(get_store),
) -> QuoteListResponse:
    bounds = pagination_bounds(page, limit)

    total = await store.count()
    # Past the end the slice is empty; skipping the query also keeps huge
    # page numbers away from the driver's integer range.
    quotes = await store.find_page(skip=bounds.skip, take=bounds.limit) if bounds.skip < total else []

    return QuoteListResponse(
        data=quotes,
        pagination=Pagination(
            current_page=bounds.page,
            total_pages=math.ceil(total / bounds.limit),
            total_items=total,
            items_per_page=bounds.limit,
            has_next_page=bounds.page * bounds.limit < total,
            has_prev_page=bounds.page > 1,
        ),
    )
