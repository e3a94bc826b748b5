"""ORM models. Importing this package registers every table on `Base.metadata`."""

from ideastore.models.entry import Entry

__all__ = ["Entry"]
