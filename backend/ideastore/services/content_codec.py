"""
IdeaStore Backend — Entry Content Codec
=========================================

Entry text is stored remotely as gzip-compressed UTF-8. These helpers are
the only place that knows the encoding; the blob store sees opaque bytes.
"""

import gzip
import zlib

from ideastore.exceptions import RemoteBlobError


def compress_text(text: str) -> bytes:
    """gzip-compress `text` encoded as UTF-8."""
    return gzip.compress(text.encode("utf-8"))


def decompress_text(data: bytes) -> str:
    """
    Inverse of compress_text.

    Raises:
        RemoteBlobError if the blob is not gzip data or not UTF-8 text.
    """
    try:
        return gzip.decompress(data).decode("utf-8")
    except (OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise RemoteBlobError(
            message="Stored entry content could not be decoded",
            context={"error_type": type(e).__name__, "size": len(data)},
        )
