"""
IdeaStore Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract with the browser client.
How:   FastAPI serializes route return values through these models and
       publishes them in the OpenAPI document.

Wire names follow what the existing client reads: metadata rows expose the
blob id as `filename` and the blob label as `gdrive_filename`; save/update
results carry `driveId` and `webViewLink`.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ideastore.models.entry import Entry


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class EntryResponse(BaseModel):
    """
    What:  One metadata row.
    Who:   Returned by GET /entries (as array items) and GET /entries/{id}.
    """
    id: int = Field(description="Internal entry identifier")
    filename: str = Field(description="Google Drive file id of the content blob")
    gdrive_filename: Optional[str] = Field(
        default=None,
        description="Label the blob was uploaded under (e.g. entry-1718000000000-1a2b3c4d.gz)",
    )
    title: Optional[str] = Field(default=None, description="Title derived from the content")
    tags: Optional[str] = Field(default=None, description='JSON-encoded tag array, e.g. ["idea"]')
    created_at: datetime = Field(description="Creation timestamp (UTC ISO 8601)")

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryResponse":
        """Maps the ORM attribute names onto the wire names."""
        return cls(
            id=entry.id,
            filename=entry.blob_id,
            gdrive_filename=entry.blob_label,
            title=entry.title,
            tags=entry.tags,
            created_at=entry.created_at,
        )


class EntryWriteResponse(BaseModel):
    """
    What:  Result of a successful save or update.
    Who:   Returned by POST /save and PUT /update/{id}.

    `blobId` and `driveId` hold the same value: `blobId` is the canonical
    name, `driveId` is kept for existing clients.
    """
    success: bool = Field(default=True)
    id: int = Field(description="Internal entry identifier")
    blobId: str = Field(description="Google Drive file id of the content blob")
    driveId: str = Field(description="Same as blobId")
    webViewLink: Optional[str] = Field(default=None, description="Drive web view link")
    title: str = Field(description="Title stored for the entry")


class DeleteResponse(BaseModel):
    """Returned by DELETE /delete/{id}."""
    success: bool = Field(default=True)
    message: str = Field(description="Human-readable confirmation")


# ══════════════════════════════════════════════════════════════════════════
# Error Response Model
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Error envelope for every non-2xx response.

    Example:
        {
            "error": "Entry not found",
            "kind": "not_found",
            "request_id": "1a2b3c4d"
        }
    """
    error: str = Field(description="Human-readable error message")
    kind: Optional[str] = Field(default=None, description="Machine-readable error kind")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    blob_store: str = Field(
        description="Google Drive status: available, unavailable, not_configured"
    )
    uptime_seconds: float = Field(description="Seconds since service started")
