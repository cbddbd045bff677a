"""
Sloka API — Route Dependencies
===============================

What:  FastAPI dependencies that hand route handlers a VerseStore.
How:   Reads the `Database` handle from app.state, connects it if the initial
       connection failed (serverless mode), opens one session for the request
       and closes it afterwards.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request

from sloka_api.database import Database
from sloka_api.exceptions import DatabaseError
from sloka_api.services.verse_store import VerseStore

logger = logging.getLogger(__name__)


def get_database(request: Request) -> Database:
    return request.app.state.database


async def get_store(request: Request) -> AsyncGenerator[VerseStore, None]:
    """
    Yield a VerseStore bound to a fresh session.

    Raises:
        DatabaseError: the database could not be reached (→ 500)
    """
    database = get_database(request)
    if not database.is_connected:
        try:
            await database.connect()
        except Exception as e:
            logger.error("Database connection failed: %s", str(e))
            raise DatabaseError(
                message="Database is unavailable",
                context={"error_type": type(e).__name__},
            )

    async with database.session() as session:
        yield VerseStore(session)
