"""
Sloka API — Verse Store
========================

What:  Read-only query methods over the `slokas` table.
How:   Wraps one AsyncSession. Every method returns public `VerseOut` models
       (never ORM rows), so internal columns stay inside this module.
       Driver failures are converted to DatabaseError.
Who:   Built per request by `get_store()` in routes/deps.py; the seed CLI uses
       `count()` on its own session.

Enumeration Order:
    Offsets and pages follow ORDER BY position, the order records appeared in
    the seed file. The order is stable between requests as long as nobody
    reseeds, which is what makes page concatenation gap- and duplicate-free.

Known Limitation:
    Offset queries are OFFSET n LIMIT 1, which scans n index entries. That is
    fine for a few thousand verses; a much larger collection would need a
    different sampling strategy.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sloka_api.exceptions import DatabaseError, ValidationError
from sloka_api.models.verse import VerseRecord
from sloka_api.schemas.verse import VerseOut
from sloka_api.services.selection import MAX_LIMIT, escape_regex

logger = logging.getLogger(__name__)

SEARCH_MAX_RESULTS = 50


def parse_verse_id(raw_id: str) -> uuid.UUID:
    """
    Parse a path identifier, raising ValidationError on anything that is not
    a UUID. Runs before the query so the driver never sees a bad value.
    """
    try:
        return uuid.UUID(str(raw_id))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError(
            message="Invalid quote ID format",
            field="id",
            context={"value": str(raw_id)[:64]},
        )


class VerseStore:
    """
    Query methods for verse records.

    Methods:
        count()                          total number of records
        find_by_id(raw_id)               one record or None
        find_at_offset(offset)           record at a zero-based position or None
        find_by_source_substring(text)   literal, case-insensitive source match
        find_page(skip, take)            a slice in enumeration order
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count(self) -> int:
        try:
            result = await self.session.execute(select(func.count()).select_from(VerseRecord))
            return result.scalar() or 0
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("count", e)

    async def find_by_id(self, raw_id: str) -> Optional[VerseOut]:
        verse_id = parse_verse_id(raw_id)
        try:
            result = await self.session.execute(
                select(VerseRecord).where(VerseRecord.id == verse_id)
            )
            record = result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("find_by_id", e)
        return VerseOut.model_validate(record) if record is not None else None

    async def find_at_offset(self, offset: int) -> Optional[VerseOut]:
        if offset < 0:
            return None
        page = await self.find_page(skip=offset, take=1)
        return page[0] if page else None

    async def find_by_source_substring(
        self, text: str, limit: int = SEARCH_MAX_RESULTS
    ) -> List[VerseOut]:
        """
        Case-insensitive substring match on `source`.

        The term is regex-escaped first, so `Gita.*` only matches the literal
        characters "Gita.*". At most 50 rows are returned whatever `limit` says.

        PostgreSQL gets the `~*` operator. SQLite drops regex flags, so there
        the pattern carries an inline `(?i)` for its Python `re` based REGEXP.
        """
        pattern = escape_regex(text)
        take = max(1, min(limit, SEARCH_MAX_RESULTS))
        if self._dialect_name() == "postgresql":
            condition = VerseRecord.source.regexp_match(pattern, flags="i")
        else:
            condition = VerseRecord.source.regexp_match("(?i)" + pattern)
        query = (
            select(VerseRecord)
            .where(condition)
            .order_by(VerseRecord.position)
            .limit(take)
        )
        try:
            result = await self.session.execute(query)
            records = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("find_by_source_substring", e)
        return [VerseOut.model_validate(r) for r in records]

    async def find_page(self, skip: int, take: int) -> List[VerseOut]:
        take = max(1, min(take, MAX_LIMIT))
        query = (
            select(VerseRecord)
            .order_by(VerseRecord.position)
            .offset(max(0, skip))
            .limit(take)
        )
        try:
            result = await self.session.execute(query)
            records = result.scalars().all()
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable("find_page", e)
        return [VerseOut.model_validate(r) for r in records]

    def _dialect_name(self) -> str:
        dialect = getattr(self.session.bind, "dialect", None)
        return getattr(dialect, "name", "")

    @staticmethod
    def _unavailable(operation: str, error: Exception) -> DatabaseError:
        logger.error("Database error during %s: %s", operation, str(error))
        return DatabaseError(
            message=f"Database query failed during {operation}",
            context={"operation": operation, "error_type": type(error).__name__},
        )
