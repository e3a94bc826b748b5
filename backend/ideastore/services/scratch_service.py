"""
IdeaStore Backend — Scratch File Service
==========================================

What:  Request-scoped temporary files for compressed entry payloads.
How:   Writes bytes to UUID-named files under the scratch root with async
       file I/O and removes them once the Drive transfer is done.
Who:   Used by GoogleDriveBlobStore, whose SDK uploads from and downloads
       into files.

Every scratch file belongs to exactly one request. `staged()` guarantees the
file is deleted before control returns to the request handler, on success
and on failure, so no payload outlives the response.

Scratch layout:
    <scratch_dir>/
    ├── upload-6f1c...e2.gz
    └── download-91ab...07.gz

    File names never contain client input (blob ids arrive in URLs).
"""

import logging
import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiofiles

from ideastore.config import settings
from ideastore.exceptions import ScratchStorageError

logger = logging.getLogger(__name__)


class ScratchService:
    """
    Manages the lifecycle of scratch files.

    Lifecycle of a scratch file:
        1. staged() / write_bytes() creates <prefix>-<uuid><suffix>
        2. The Drive SDK reads from (or writes into) the path
        3. read_bytes() loads downloaded content back into memory
        4. cleanup_file() removes the file (always, via staged())
    """

    def __init__(self, scratch_root: Optional[str] = None):
        """
        Args:
            scratch_root: Override the default scratch directory (used in tests).
                          If None, uses settings.scratch_dir.
        """
        self.scratch_root = Path(scratch_root or settings.scratch_dir).resolve()
        self.scratch_root.mkdir(parents=True, exist_ok=True)
        logger.info("ScratchService initialized with scratch_root=%s", self.scratch_root)

    def _generate_scratch_path(self, prefix: str, suffix: str) -> Path:
        """Unique path under the scratch root, e.g. upload-<uuid>.gz"""
        return self.scratch_root / f"{prefix}-{uuid.uuid4().hex}{suffix}"

    async def write_bytes(self, content: bytes, prefix: str = "upload", suffix: str = ".gz") -> Path:
        """
        Write content to a new scratch file.

        Returns:
            Absolute path of the new file.

        Raises:
            ScratchStorageError if the directory or file cannot be written.
        """
        path = self._generate_scratch_path(prefix, suffix)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to write scratch file %s: %s", path, str(e))
            raise ScratchStorageError(
                message="Failed to stage entry content. Please try again.",
                context={"path": str(path), "os_error": str(e)},
            )

        logger.debug("Scratch file written: %s (%d bytes)", path.name, len(content))
        return path

    async def read_bytes(self, path: Path) -> bytes:
        """
        Read a scratch file back into memory.

        Raises:
            ScratchStorageError if the file cannot be read.
        """
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            logger.error("Failed to read scratch file %s: %s", path, str(e))
            raise ScratchStorageError(
                message="Failed to read downloaded entry content.",
                context={"path": str(path), "os_error": str(e)},
            )

    async def cleanup_file(self, file_path: Path) -> None:
        """
        Remove a scratch file if it exists.

        Best effort: a file that is already gone is fine, other failures are
        logged and not raised, since the request outcome is already decided.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.debug("Cleaned up scratch file: %s", path.name)
            else:
                logger.debug("Cleanup: scratch file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up scratch file %s: %s", file_path, str(e))

    @asynccontextmanager
    async def staged(
        self,
        content: Optional[bytes] = None,
        prefix: str = "upload",
        suffix: str = ".gz",
    ) -> AsyncIterator[Path]:
        """
        Yield a scratch path that is removed when the block exits.

        With `content`, the file is written first (upload staging). Without
        it, only the path is reserved (download target).

        Example:
            async with scratch_service.staged(payload) as path:
                await upload_from(path)
        """
        if content is not None:
            path = await self.write_bytes(content, prefix=prefix, suffix=suffix)
        else:
            path = self._generate_scratch_path(prefix, suffix)
        try:
            yield path
        finally:
            await self.cleanup_file(path)


# ── Singleton Instance ────────────────────────────────────────────────────
scratch_service = ScratchService()
