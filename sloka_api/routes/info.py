"""
Sloka API — Capability Listing and Legacy Redirects
====================================================

What:  GET /api describes the available endpoints; GET /quote/random and
       GET /quote/daily permanently redirect to their /api equivalents.
"""

from fastapi import APIRouter
from fastapi.responses import RedirectResponse

from sloka_api import __version__
from sloka_api.schemas.verse import ApiInfoResponse

router = APIRouter(tags=["Info"])

ENDPOINTS = {
    "health": "GET /health",
    "random": "GET /api/quote/random",
    "daily": "GET /api/quote/daily",
    "byId": "GET /api/quote/:id",
    "search": "GET /api/quotes/search?source=<source>",
    "all": "GET /api/quotes?page=1&limit=10",
}


@router.get("/api", response_model=ApiInfoResponse, summary="List API capabilities")
async def api_info() -> ApiInfoResponse:
    return ApiInfoResponse(
        message="Sloka API - Ancient Wisdom for Modern Times",
        version=__version__,
        endpoints=ENDPOINTS,
    )


@router.get("/quote/random", include_in_schema=False)
async def legacy_random() -> RedirectResponse:
    return RedirectResponse(url="/api/quote/random", status_code=301)


@router.get("/quote/daily", include_in_schema=False)
async def legacy_daily() -> RedirectResponse:
    return RedirectResponse(url="/api/quote/daily", status_code=301)
