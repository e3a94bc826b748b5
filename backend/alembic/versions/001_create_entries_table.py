"""Create entries table

Revision ID: 001
Revises: None
Create Date: 2025-05-20 00:00:00.000000+00:00

What:  Creates the `entries` metadata table and its created_at index.
How:   Same shape as the table the application creates on startup when
       DB_AUTO_CREATE is enabled (see ideastore/models/entry.py).

Rollback: downgrade() drops the table. Entry content lives in Google Drive
and is not touched, so a downgrade orphans every blob.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "entries",

        # BIGSERIAL: ids are never reused after deletion
        sa.Column(
            "id",
            sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
            autoincrement=True,
            nullable=False,
        ),

        sa.Column("filename", sa.Text(), nullable=False, comment="Google Drive file id"),
        sa.Column("gdrive_filename", sa.Text(), nullable=True, comment="Original .gz filename"),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("tags", sa.Text(), nullable=True, comment="JSON-encoded array of tags"),

        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),

        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )

    op.create_index(
        "idx_entries_created_at",
        "entries",
        [sa.text("created_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("idx_entries_created_at", table_name="entries")
    op.drop_table("entries")
