"""
IdeaStore Backend — Error Kinds and Exception Hierarchy
=========================================================

What:  A closed set of error kinds plus the exceptions that carry them.
How:   Every exception declares its ErrorKind. The kind fixes the HTTP status
       and the severity; the single handler in main.py resolves any
       IdeaStoreError into a JSON envelope using only the kind.
Who:   Raised by services and routes; caught by the global handlers.

Error Kinds:
    kind                    exception               status  severity
    validation_error        ValidationError         400     warn
    not_found               NotFoundError           404     warn
                            └── BlobNotFoundError
    store_unavailable       StoreUnavailableError   500     critical
    remote_blob_error       RemoteBlobError         500     critical
    scratch_storage_error   ScratchStorageError     500     critical

Response envelope:
    {"error": "<human message>", "kind": "<kind code>", "request_id": "<id>"}

    `context` is logged server-side only and never returned to the client.
"""

from enum import Enum
from typing import Any, Dict, Optional


class Severity(str, Enum):
    """How loudly an error is logged at the HTTP boundary."""

    WARN = "warn"
    CRITICAL = "critical"


class ErrorKind(Enum):
    """
    Closed enumeration of the failures the API can report.

    Each member carries (code, status_code, severity).
    """

    VALIDATION = ("validation_error", 400, Severity.WARN)
    NOT_FOUND = ("not_found", 404, Severity.WARN)
    STORE_UNAVAILABLE = ("store_unavailable", 500, Severity.CRITICAL)
    REMOTE_BLOB = ("remote_blob_error", 500, Severity.CRITICAL)
    SCRATCH_STORAGE = ("scratch_storage_error", 500, Severity.CRITICAL)

    def __init__(self, code: str, status_code: int, severity: Severity):
        self.code = code
        self.status_code = status_code
        self.severity = severity


class IdeaStoreError(Exception):
    """
    Base exception for all IdeaStore application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
        kind:     ErrorKind resolved into a status code at the boundary
    """

    kind: ErrorKind = ErrorKind.STORE_UNAVAILABLE

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(IdeaStoreError):
    """
    Raised when client input fails validation.

    When:    Empty body, undecodable body, oversized body, non-numeric id,
             get-content without id or title.
    HTTP:    400 Bad Request. Always raised before any store call.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(IdeaStoreError):
    """
    Raised when a requested entry row or blob does not exist.

    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; the repository converts that
    into this exception so the route never has to check for None.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        message: str = "Entry not found",
        resource: str = "entry",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class BlobNotFoundError(NotFoundError):
    """
    Raised by a BlobStore when the blob id does not resolve remotely.

    EntryService.delete catches this one specifically: a blob that is
    already gone satisfies the caller's deletion intent.
    """

    def __init__(
        self,
        blob_id: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message="File not found on Google Drive",
            resource="blob",
            resource_id=blob_id,
            context=context,
        )
        self.blob_id = blob_id


class StoreUnavailableError(IdeaStoreError):
    """
    Raised when the relational store is unreachable or a query fails.

    HTTP:    500 Internal Server Error

    The message is generic; SQL, constraint names and driver errors go to
    the context for server-side logging only.
    """

    kind = ErrorKind.STORE_UNAVAILABLE

    def __init__(
        self,
        message: str = "The entry store is unavailable. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RemoteBlobError(IdeaStoreError):
    """
    Raised when a blob upload, download, update or delete fails for any
    reason other than not-found, or when a downloaded blob cannot be decoded.

    HTTP:    500 Internal Server Error. Never retried.
    """

    kind = ErrorKind.REMOTE_BLOB

    def __init__(
        self,
        message: str = "Google Drive request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ScratchStorageError(IdeaStoreError):
    """
    Raised when a scratch file cannot be written or read.

    HTTP:    500 Internal Server Error
    """

    kind = ErrorKind.SCRATCH_STORAGE

    def __init__(
        self,
        message: str = "Temporary storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
