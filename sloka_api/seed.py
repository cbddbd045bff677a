"""
Sloka API — Database Seeding CLI
=================================

What:  Loads verses from a JSON array file into the `slokas` table.
How:   Validate every entry, connect, create the schema if needed, ask before
       wiping existing rows, then delete and insert in one transaction and
       rebuild the indexes.
Who:   Operators, out of band from the server:

           sloka-seed                      # reads QUOTES_FILE (quotes.json)
           sloka-seed --file data.json --yes

Input format:
    [{"sloka": "...", "transliteration": "...", "translation": "...", "source": "..."}]

Entries that fail validation (missing sloka, over-long fields, wrong types)
are skipped and counted; the rest are still loaded. Must not run
concurrently with itself.
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, insert, text

from sloka_api.config import settings
from sloka_api.database import Base, Database
from sloka_api.models.verse import VerseRecord
from sloka_api.schemas.verse import VerseIn
from sloka_api.services.verse_store import VerseStore

logger = logging.getLogger("sloka_api.seed")

CONFIRM_PROMPT = "Database already has quotes. Clear and reseed? (y/N): "


class SeedError(Exception):
    """The seed file is missing or malformed."""


@dataclass
class SeedResult:
    inserted: int
    skipped: int
    cleared: int


def load_entries(path: Path) -> List[Any]:
    """Read the seed file and return its top-level JSON array."""
    if not path.exists():
        raise SeedError(f"{path} file not found")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise SeedError(f"{path} is not valid JSON: {e}")
    if not isinstance(data, list):
        raise SeedError(f"{path} must contain a JSON array of verses")
    return data


def validate_entries(raw: Sequence[Any]) -> Tuple[List[VerseIn], int]:
    """
    Validate each entry independently.

    Returns:
        (valid entries in file order, number of skipped entries)
    """
    valid: List[VerseIn] = []
    skipped = 0
    for index, entry in enumerate(raw):
        try:
            valid.append(VerseIn.model_validate(entry))
        except PydanticValidationError as e:
            skipped += 1
            logger.warning(
                "Skipping entry %d: %s",
                index,
                "; ".join(err["msg"] for err in e.errors()),
            )
    return valid, skipped


def confirm(prompt: str = CONFIRM_PROMPT, input_fn: Callable[[str], str] = input) -> bool:
    """True only for an explicit 'y'. EOF (no terminal) counts as no."""
    try:
        answer = input_fn(prompt)
    except EOFError:
        return False
    return answer.strip().lower() == "y"


async def ensure_schema(database: Database) -> None:
    engine = await database.connect()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def rebuild_indexes(database: Database) -> None:
    engine = await database.connect()
    if engine.dialect.name != "postgresql":
        logger.info("Index rebuild skipped for %s", engine.dialect.name)
        return
    async with engine.begin() as conn:
        await conn.execute(text(f"REINDEX TABLE {VerseRecord.__tablename__}"))


async def seed(
    database: Database,
    entries: Sequence[VerseIn],
    skipped: int = 0,
    assume_yes: bool = False,
    input_fn: Callable[[str], str] = input,
) -> Optional[SeedResult]:
    """
    Replace the table contents with `entries`.

    Returns None when the operator declines the reseed.
    """
    await ensure_schema(database)

    async with database.session() as session:
        existing = await VerseStore(session).count()
    logger.info("Current quotes in database: %d", existing)

    if existing > 0 and not assume_yes and not confirm(input_fn=input_fn):
        logger.info("Seeding cancelled")
        return None

    rows = [
        {"position": position, **entry.model_dump()}
        for position, entry in enumerate(entries)
    ]

    async with database.session() as session:
        async with session.begin():
            if existing > 0:
                await session.execute(delete(VerseRecord))
                logger.info("Cleared %d existing quotes", existing)
            if rows:
                await session.execute(insert(VerseRecord), rows)

    logger.info("Successfully seeded %d quotes (%d skipped)", len(rows), skipped)

    await rebuild_indexes(database)
    logger.info("Indexes rebuilt")

    return SeedResult(inserted=len(rows), skipped=skipped, cleared=existing)


async def run_seed(path: Path, assume_yes: bool, database: Optional[Database] = None) -> int:
    """Load, validate and seed; returns the process exit status."""
    database = database or Database(settings)
    try:
        raw = load_entries(path)
        logger.info("Found %d quotes in %s", len(raw), path)
        entries, skipped = validate_entries(raw)
        await seed(database, entries, skipped=skipped, assume_yes=assume_yes)
        return 0
    except SeedError as e:
        logger.error("Seeding failed: %s", e)
        return 1
    except Exception as e:
        logger.error("Seeding failed: %s", e, exc_info=True)
        return 1
    finally:
        await database.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sloka-seed",
        description="Load verses from a JSON file into the database.",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=Path(settings.quotes_file),
        help="JSON array of verses (default: %(default)s)",
    )
    parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Clear existing quotes without asking",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    from sloka_api.main import setup_logging

    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level)
    return asyncio.run(run_seed(args.file, assume_yes=args.yes))


if __name__ == "__main__":
    sys.exit(main())
