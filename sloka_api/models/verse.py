"""
Sloka API — VerseRecord SQLAlchemy Model
=========================================

What:  ORM model for the `slokas` table.
Who:   Queried by VerseStore; written only by the seed CLI; read by Alembic.

Table Design:
    - id: UUID primary key, the public identifier
    - position: load order from the seed file; the stable enumeration order
      used by offset and page queries (internal, never serialized)
    - sloka / transliteration / translation / source: length-bounded text
    - created_at / updated_at: UTC timestamps assigned on insert

Indexes:
    idx_slokas_position  unique, backs ORDER BY position OFFSET n
    idx_slokas_source    backs the source search
    idx_slokas_fulltext  GIN over to_tsvector(sloka, translation, source);
                         PostgreSQL only, not used by any endpoint yet
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Uuid, func, literal_column
from sqlalchemy.orm import Mapped, mapped_column

from sloka_api.database import Base

SLOKA_MAX_LENGTH = 1000
TRANSLITERATION_MAX_LENGTH = 1000
TRANSLATION_MAX_LENGTH = 2000
SOURCE_MAX_LENGTH = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VerseRecord(Base):
    """
    One verse with its text, transliteration, translation and source label.

    Lifecycle:
        Created in bulk by the seed CLI, never mutated by the API, and only
        removed when the operator confirms a full reseed.
    """

    __tablename__ = "slokas"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    position: Mapped[int] = mapped_column(Integer, nullable=False)

    sloka: Mapped[str] = mapped_column(String(SLOKA_MAX_LENGTH), nullable=False)

    transliteration: Mapped[str | None] = mapped_column(
        String(TRANSLITERATION_MAX_LENGTH),
        nullable=True,
    )

    translation: Mapped[str | None] = mapped_column(
        String(TRANSLATION_MAX_LENGTH),
        nullable=True,
    )

    source: Mapped[str | None] = mapped_column(String(SOURCE_MAX_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    __table_args__ = (
        Index("idx_slokas_position", "position", unique=True),
        Index("idx_slokas_source", "source"),
    )

    def __repr__(self) -> str:
        return f"<VerseRecord(id={self.id}, position={self.position}, source='{self.source}')>"


# Expression index over the three searchable columns. Declared after the
# class so it can reference the mapped columns; coalesce and || keep the
# expression IMMUTABLE as PostgreSQL requires.
Index(
    "idx_slokas_fulltext",
    func.to_tsvector(
        literal_column("'simple'"),
        func.coalesce(VerseRecord.sloka, "")
        + " "
        + func.coalesce(VerseRecord.translation, "")
        + " "
        + func.coalesce(VerseRecord.source, ""),
    ),
    postgresql_using="gin",
).ddl_if(dialect="postgresql")
