"""
Sloka API — Selection Functions
================================

What:  Pure functions that turn a record count (and the calendar, and raw
       query strings) into offsets and page bounds.
Who:   Called by the quote routes; the store then fetches by offset.
When:  Once per request. Nothing here performs I/O.

    random_offset       uniform in [0, count)
    daily_offset        day_of_year mod count, stable for a calendar day
    pagination_bounds   page >= 1, 1 <= limit <= 50, skip = (page - 1) * limit
    escape_regex        makes a search term match literally
"""

import random
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_REGEX_METACHARS = re.compile(r"[.*+?^${}()|\[\]\\]")


def random_offset(count: int, rng: Optional[random.Random] = None) -> int:
    """
    Uniformly random offset in [0, count).

    Callers must handle the empty collection first; a zero or negative count
    is a programming error.
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    return (rng or random).randrange(count)


def day_of_year(today: Optional[date] = None) -> int:
    """1-based ordinal day within the year: Jan 1 is 1, Dec 31 is 365 or 366."""
    today = today or date.today()
    return today.timetuple().tm_yday


def daily_offset(count: int, today: Optional[date] = None) -> Tuple[int, int]:
    """
    Offset of the verse of the day and the day number it was derived from.

    Returns:
        (day_of_year mod count, day_of_year)
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    day = day_of_year(today)
    return day % count, day


def parse_int(raw: Optional[str]) -> Optional[int]:
    """
    Lenient integer parse of a query-string value.

    Reads an optional sign and the leading digits, ignoring whatever follows:
    "3abc" -> 3, " 7" -> 7, "1.9" -> 1. Returns None when there are no
    leading digits at all.
    """
    if raw is None:
        return None
    match = _LEADING_INT.match(str(raw))
    if not match:
        return None
    return int(match.group(1))


@dataclass(frozen=True)
class PageBounds:
    page: int
    limit: int
    skip: int


def pagination_bounds(raw_page: Optional[str], raw_limit: Optional[str]) -> PageBounds:
    """
    Clamp raw page/limit query values into a safe window.

    Missing, malformed and zero values fall back to the defaults; the result
    is then clamped so page >= 1 and 1 <= limit <= 50. Never raises.
    """
    page = max(DEFAULT_PAGE, parse_int(raw_page) or DEFAULT_PAGE)
    limit = min(MAX_LIMIT, max(1, parse_int(raw_limit) or DEFAULT_LIMIT))
    return PageBounds(page=page, limit=limit, skip=(page - 1) * limit)


def escape_regex(text: str) -> str:
    r"""
    Backslash-escape . * + ? ^ $ { } ( ) | [ ] \ so the term is matched
    literally by a regular-expression operator.
    """
    return _REGEX_METACHARS.sub(lambda m: "\\" + m.group(0), text)
