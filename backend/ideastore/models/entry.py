"""
IdeaStore Backend — Entry SQLAlchemy Model
============================================

What:  ORM model for the `entries` table (metadata only).
Who:   Used by EntryRepository for CRUD and by Alembic for schema management.

Column mapping:
    Python attribute   column            meaning
    id                 id                internal key, never reused
    blob_id            filename          Google Drive file id of the content blob
    blob_label         gdrive_filename   label the blob was uploaded under
    title              title             derived from the first content line
    tags               tags              JSON-encoded array string
    created_at         created_at        set once at insert (UTC)

    The column names match the JSON row shape served by /entries, while the
    Python names say what the values are. Entry text itself is never stored
    here; it only exists as a gzip blob in Drive.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from ideastore.database import Base


class Entry(Base):
    """
    Metadata row for one saved note.

    Lifecycle:
        1. Inserted by save, after the blob upload succeeded
        2. Title rewritten by every update (blob_id never changes)
        3. Deleted by delete, after the blob was removed (or found missing)
    """

    __tablename__ = "entries"

    # BIGSERIAL on PostgreSQL. SQLite needs INTEGER PRIMARY KEY AUTOINCREMENT
    # for ids to stay unique after deletes.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )

    blob_id: Mapped[str] = mapped_column(
        "filename",
        Text,
        nullable=False,
        comment="Google Drive file id",
    )

    blob_label: Mapped[Optional[str]] = mapped_column(
        "gdrive_filename",
        Text,
        nullable=True,
        comment="Original .gz filename",
    )

    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tags: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="JSON-encoded array of tags",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_entries_created_at", created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<Entry(id={self.id}, blob_id='{self.blob_id}', "
            f"title='{self.title}')>"
        )
