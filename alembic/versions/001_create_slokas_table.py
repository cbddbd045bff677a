"""Create slokas table

Revision ID: 001
Revises: None
Create Date: 2024-06-01 00:00:00.000000+00:00

What:  Creates the `slokas` table with its source, position and full-text
       indexes.
Rollback: downgrade() drops the table (all verses are lost; reseed after).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "slokas",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("sloka", sa.String(1000), nullable=False),
        sa.Column("transliteration", sa.String(1000), nullable=True),
        sa.Column("translation", sa.String(2000), nullable=True),
        sa.Column("source", sa.String(200), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("idx_slokas_position", "slokas", ["position"], unique=True)
    op.create_index("idx_slokas_source", "slokas", ["source"])

    # Full-text index; not queried by any endpoint yet
    op.create_index(
        "idx_slokas_fulltext",
        "slokas",
        [
            sa.text(
                "to_tsvector('simple', coalesce(sloka, '') || ' ' || "
                "coalesce(translation, '') || ' ' || coalesce(source, ''))"
            )
        ],
        postgresql_using="gin",
    )


def downgrade() -> None:
    op.drop_index("idx_slokas_fulltext", table_name="slokas")
    op.drop_index("idx_slokas_source", table_name="slokas")
    op.drop_index("idx_slokas_position", table_name="slokas")
    op.drop_table("slokas")
