"""
IdeaStore Backend — Google Drive Blob Store
=============================================

What:  BlobStore implementation backed by the Google Drive v3 API.
How:   Service-account credentials (google-auth), the discovery client from
       google-api-python-client, and scratch files for media transfer.
Who:   Instantiated once at import; injected into EntryService through the
       `get_blob_store` dependency.

Call Model:
    The Drive SDK is blocking. Every SDK call runs in a worker thread via
    asyncio.to_thread, so a request handler suspends on it while other
    requests keep running.

    httplib2 connections are not thread-safe, so the discovery client is only
    used to build requests; each request executes over its own
    AuthorizedHttp.

Transfer Flow:
    upload/update:  bytes → scratch .gz file → MediaFileUpload (resumable)
    download:       MediaIoBaseDownload → scratch .gz file → bytes
    Scratch files are removed before the method returns, on every path.

Error Mapping:
    HttpError 404 on an existing-blob operation → BlobNotFoundError
    any other HttpError / transport / auth failure → RemoteBlobError
    No retries: the SDK is called with num_retries=0 (its default).
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

import httplib2
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from ideastore.config import settings
from ideastore.exceptions import BlobNotFoundError, IdeaStoreError, RemoteBlobError
from ideastore.services.blob_store import BlobStore, StoredBlob, mime_type_for
from ideastore.services.scratch_service import ScratchService, scratch_service

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive.file"]
DRIVE_FILE_FIELDS = "id, webViewLink"


class GoogleDriveBlobStore(BlobStore):
    """
    Stores entry blobs as files in the service account's Drive.

    The Drive client is built on first use, so importing the application
    (tests, Alembic, health checks) never requires credentials.
    """

    def __init__(
        self,
        scratch: Optional[ScratchService] = None,
        service: Any = None,
        credentials: Any = None,
    ):
        """
        Args:
            scratch: Scratch file service (defaults to the module singleton).
            service: Pre-built Drive discovery client (used in tests).
            credentials: Pre-loaded google-auth credentials (used in tests).
        """
        self._scratch = scratch or scratch_service
        self._service = service
        self._credentials = credentials

    # ── Client Construction ───────────────────────────────────────────────

    def _get_credentials(self):
        """
        Load service-account credentials.

        Source order: GOOGLE_SERVICE_JSON (inline), then
        GOOGLE_SERVICE_ACCOUNT_FILE.

        Raises:
            RemoteBlobError if neither source yields valid credentials.
        """
        if self._credentials is not None:
            return self._credentials

        try:
            if settings.google_service_json.strip():
                info = json.loads(settings.google_service_json)
                self._credentials = service_account.Credentials.from_service_account_info(
                    info, scopes=DRIVE_SCOPES
                )
            elif Path(settings.google_service_account_file).is_file():
                self._credentials = service_account.Credentials.from_service_account_file(
                    settings.google_service_account_file, scopes=DRIVE_SCOPES
                )
            else:
                raise RemoteBlobError(
                    message="Google Drive credentials are not configured",
                    context={"account_file": settings.google_service_account_file},
                )
        except (ValueError, KeyError) as e:
            raise RemoteBlobError(
                message="Google Drive credentials are invalid",
                context={"error": str(e)},
            )
        return self._credentials

    def _client(self):
        """Drive v3 discovery client, built once."""
        if self._service is None:
            self._service = build(
                "drive",
                "v3",
                credentials=self._get_credentials(),
                cache_discovery=False,
            )
            logger.info("Google Drive client initialized")
        return self._service

    def _new_http(self) -> AuthorizedHttp:
        """A fresh authorized transport for a single request."""
        return AuthorizedHttp(self._get_credentials(), http=httplib2.Http())

    # ── Blocking SDK Calls (run in worker threads) ────────────────────────

    def _create_file(self, label: str, path: str) -> Dict[str, Any]:
        media = MediaFileUpload(path, mimetype=mime_type_for(label), resumable=True)
        try:
            request = self._client().files().create(
                body={"name": label},
                media_body=media,
                fields=DRIVE_FILE_FIELDS,
            )
            return request.execute(http=self._new_http())
        finally:
            media.stream().close()

    def _update_file(self, blob_id: str, label: str, path: str) -> Dict[str, Any]:
        media = MediaFileUpload(path, mimetype=mime_type_for(label), resumable=True)
        try:
            request = self._client().files().update(
                fileId=blob_id,
                body={"name": label} if label else {},
                media_body=media,
                fields=DRIVE_FILE_FIELDS,
            )
            return request.execute(http=self._new_http())
        finally:
            media.stream().close()

    def _download_file(self, blob_id: str, path: str) -> None:
        request = self._client().files().get_media(fileId=blob_id)
        request.http = self._new_http()
        with open(path, "wb") as fh:
            downloader = MediaIoBaseDownload(fh, request)
            done = False
            while not done:
                _, done = downloader.next_chunk()

    def _delete_file(self, blob_id: str) -> None:
        self._client().files().delete(fileId=blob_id).execute(http=self._new_http())

    def _about(self) -> Dict[str, Any]:
        return self._client().about().get(fields="user").execute(http=self._new_http())

    async def _call(
        self,
        operation: str,
        blob_id: Optional[str],
        func: Callable[..., Any],
        *args: Any,
    ) -> Any:
        """
        Run a blocking SDK call in a worker thread and translate its errors.

        Args:
            operation: Name used in logs and error context (upload, download, ...)
            blob_id: Target blob, or None for create (where 404 is not "blob missing")
        """
        try:
            return await asyncio.to_thread(func, *args)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            if status == 404 and blob_id is not None:
                logger.info("Drive %s: blob %s not found", operation, blob_id)
                raise BlobNotFoundError(blob_id, context={"operation": operation})
            logger.error(
                "Drive %s failed for %s: HTTP %s %s",
                operation,
                blob_id or "<new>",
                status,
                str(e),
            )
            raise RemoteBlobError(
                message=f"Google Drive {operation} failed",
                context={"operation": operation, "blob_id": blob_id, "status": status},
            )
        except IdeaStoreError:
            raise
        except Exception as e:
            logger.error(
                "Unexpected Drive %s error for %s: %s",
                operation,
                blob_id or "<new>",
                str(e),
                exc_info=True,
            )
            raise RemoteBlobError(
                message=f"Google Drive {operation} failed",
                context={"operation": operation, "blob_id": blob_id, "error_type": type(e).__name__},
            )

    # ── BlobStore Operations ──────────────────────────────────────────────

    async def upload(self, label: str, data: bytes) -> StoredBlob:
        async with self._scratch.staged(data, prefix="upload") as path:
            result = await self._call("upload", None, self._create_file, label, str(path))

        stored = StoredBlob(blob_id=result["id"], view_link=result.get("webViewLink"))
        logger.info("Uploaded blob %s as %s (%d bytes)", stored.blob_id, label, len(data))
        return stored

    async def download(self, blob_id: str) -> bytes:
        async with self._scratch.staged(prefix="download") as path:
            await self._call("download", blob_id, self._download_file, blob_id, str(path))
            data = await self._scratch.read_bytes(path)

        logger.info("Downloaded blob %s (%d bytes)", blob_id, len(data))
        return data

    async def update(self, blob_id: str, data: bytes, label: str) -> StoredBlob:
        async with self._scratch.staged(data, prefix="update") as path:
            result = await self._call("update", blob_id, self._update_file, blob_id, label, str(path))

        if result.get("id") != blob_id:
            # Drive overwrites in place; the id must not change
            raise RemoteBlobError(
                message="Google Drive update returned a different file",
                context={"blob_id": blob_id, "returned_id": result.get("id")},
            )
        logger.info("Updated blob %s (%d bytes)", blob_id, len(data))
        return StoredBlob(blob_id=blob_id, view_link=result.get("webViewLink"))

    async def delete(self, blob_id: str) -> None:
        await self._call("delete", blob_id, self._delete_file, blob_id)
        logger.info("Deleted blob %s", blob_id)

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(self._about)
            return True
        except Exception as e:
            logger.warning("Google Drive health check failed: %s", str(e))
            return False


# ── Singleton Instance ────────────────────────────────────────────────────
drive_blob_store = GoogleDriveBlobStore()
