"""
IdeaStore Backend — Entry Service Unit Tests
===============================================

What:  Tests for EntryService orchestration and its helpers.
Why:   The service fixes the order of store calls and what each failure leaves
       behind; a regression here loses content or leaves rows without blobs.
How:   Mock repository (AsyncMock) plus the in-memory blob store; no real DB
       or Drive calls.

What we test:
    ✅ Title derivation from the first line
    ✅ Label format and id parsing
    ✅ Empty / whitespace / oversized input rejected before any store call
    ✅ Upload failure leaves no row; insert failure leaves an orphaned blob
    ✅ Update keeps the blob id and recomputes the title
    ✅ Delete tolerates a blob that is already gone
    ✅ Content lookup by id and by title
    ✅ Known race: concurrent updates of one entry can mix title and content
"""

import asyncio
import json
import re
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ideastore.exceptions import (
    NotFoundError,
    RemoteBlobError,
    StoreUnavailableError,
    ValidationError,
)
from ideastore.services.content_codec import compress_text, decompress_text
from ideastore.services.entry_service import (
    EntryService,
    extract_title,
    generate_blob_label,
    parse_entry_id,
    validate_content,
)


def make_repository(entry=None, entries=None):
    """AsyncMock repository whose reads return `entry` / `entries`."""
    repo = MagicMock()
    repo.insert = AsyncMock(return_value=entry)
    repo.get_by_id = AsyncMock(return_value=entry)
    repo.list_all = AsyncMock(return_value=entries or [])
    repo.update_title = AsyncMock(return_value=entry)
    repo.delete = AsyncMock(return_value=None)
    repo.commit = AsyncMock(return_value=None)
    return repo


class TestExtractTitle:
    """Tests for title derivation."""

    @pytest.mark.parametrize(
        "content,expected",
        [
            ("# Hello\nWorld", "Hello"),
            ("No header here", "No header here"),
            ("### Deep heading ###\nbody", "Deep heading ###"),
            ("#NoSpace", "NoSpace"),
            ("   # not a heading", "# not a heading"),
            ("###   ", "Untitled"),
            ("\nSecond line", "Untitled"),
            ("", "Untitled"),
            (None, "Untitled"),
        ],
    )
    def test_extract_title(self, content, expected):
        assert extract_title(content) == expected


class TestHelpers:
    """Tests for labels, id parsing and body validation."""

    def test_blob_label_format(self):
        label = generate_blob_label()
        assert re.fullmatch(r"entry-\d{13}-[0-9a-f]{8}\.gz", label)

    def test_blob_labels_are_unique(self):
        assert len({generate_blob_label() for _ in range(50)}) == 50

    def test_parse_entry_id_accepts_digits(self):
        assert parse_entry_id("42") == 42
        assert parse_entry_id(7) == 7

    @pytest.mark.parametrize("raw", ["abc", "", "1.5", "-3", "12abc", None])
    def test_parse_entry_id_rejects_non_numeric(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            parse_entry_id(raw)
        assert exc_info.value.message == "Invalid ID"

    def test_validate_content_decodes_utf8(self):
        assert validate_content("héllo".encode("utf-8"), "bad") == "héllo"

    @pytest.mark.parametrize("body", [b"", b"   \n\t ", None, b"\xff\xfe"])
    def test_validate_content_rejects(self, body):
        with pytest.raises(ValidationError) as exc_info:
            validate_content(body, "Empty or invalid input")
        assert exc_info.value.message == "Empty or invalid input"

    def test_validate_content_rejects_oversized(self):
        with patch("ideastore.services.entry_service.settings") as mock_settings:
            mock_settings.max_content_bytes = 10
            with pytest.raises(ValidationError) as exc_info:
                validate_content(b"x" * 11, "Empty or invalid input")
        assert "exceeds maximum" in exc_info.value.message


class TestEntryServiceSave:
    """Tests for the save workflow."""

    @pytest.mark.asyncio
    async def test_save_success(self, mock_db_session, blob_store, make_entry):
        """Upload then insert; the response carries both ids and the title."""
        entry = make_entry(entry_id=5, blob_id="drive-1", title="Hello")
        repo = make_repository(entry=entry)
        service = EntryService(blob_store, repository=repo)

        result = await service.save(mock_db_session, b"# Hello\nWorld")

        assert result.success is True
        assert result.id == 5
        assert result.blobId == result.driveId == "drive-1"
        assert result.title == "Hello"
        assert result.webViewLink == blob_store.view_link("drive-1")

        assert decompress_text(blob_store.blobs["drive-1"]) == "# Hello\nWorld"
        kwargs = repo.insert.await_args.kwargs
        assert kwargs["blob_id"] == "drive-1"
        assert kwargs["blob_label"] == blob_store.labels["drive-1"]
        assert kwargs["title"] == "Hello"
        assert kwargs["tags"] == ["idea"]

    @pytest.mark.asyncio
    async def test_save_title_override(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry())
        service = EntryService(blob_store, repository=repo)

        result = await service.save(mock_db_session, b"# Hello", title_override="Custom")

        assert result.title == "Custom"
        assert repo.insert.await_args.kwargs["title"] == "Custom"

    @pytest.mark.asyncio
    async def test_save_blank_override_falls_back(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry())
        service = EntryService(blob_store, repository=repo)

        result = await service.save(mock_db_session, b"# Hello", title_override="   ")

        assert result.title == "Hello"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [b"", b"  \n  "])
    async def test_save_empty_makes_no_store_call(self, mock_db_session, blob_store, body):
        repo = make_repository()
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(ValidationError) as exc_info:
            await service.save(mock_db_session, body)

        assert exc_info.value.message == "Empty or invalid input"
        assert blob_store.store_calls == 0
        repo.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_upload_failure_writes_no_row(self, mock_db_session, blob_store):
        repo = make_repository()
        blob_store.upload = AsyncMock(side_effect=RemoteBlobError())
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(RemoteBlobError):
            await service.save(mock_db_session, b"# Hello")

        repo.insert.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_insert_failure_leaves_orphan(self, mock_db_session, blob_store, caplog):
        """The blob stays in Drive and its id is logged; nothing is compensated."""
        repo = make_repository()
        repo.insert = AsyncMock(side_effect=StoreUnavailableError())
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(StoreUnavailableError):
            await service.save(mock_db_session, b"# Hello")

        assert list(blob_store.blobs) == ["drive-1"]
        assert blob_store.calls["delete"] == 0
        assert "Orphaned blob drive-1" in caplog.text

    @pytest.mark.asyncio
    async def test_save_commit_failure_leaves_orphan(
        self, mock_db_session, blob_store, make_entry, caplog
    ):
        repo = make_repository(entry=make_entry())
        repo.commit = AsyncMock(side_effect=StoreUnavailableError())
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(StoreUnavailableError):
            await service.save(mock_db_session, b"# Hello")

        repo.insert.assert_awaited_once()
        assert list(blob_store.blobs) == ["drive-1"]
        assert "Orphaned blob drive-1" in caplog.text


class TestEntryServiceUpdate:
    """Tests for the update workflow."""

    @pytest.mark.asyncio
    async def test_update_keeps_blob_id(self, mock_db_session, blob_store, make_entry):
        stored = await blob_store.upload("entry-1-aaaaaaaa.gz", compress_text("# Old"))
        entry = make_entry(entry_id=3, blob_id=stored.blob_id, blob_label="entry-1-aaaaaaaa.gz")
        repo = make_repository(entry=entry)
        service = EntryService(blob_store, repository=repo)

        result = await service.update(mock_db_session, 3, b"No header here")

        assert result.id == 3
        assert result.blobId == stored.blob_id
        assert result.title == "No header here"
        assert list(blob_store.blobs) == [stored.blob_id]
        assert decompress_text(blob_store.blobs[stored.blob_id]) == "No header here"
        assert blob_store.labels[stored.blob_id] == "entry-1-aaaaaaaa.gz"
        repo.update_title.assert_awaited_once_with(mock_db_session, 3, "No header here")
        repo.commit.assert_awaited_once_with(mock_db_session)

    @pytest.mark.asyncio
    async def test_update_without_label_generates_one(self, mock_db_session, blob_store, make_entry):
        stored = await blob_store.upload("x.gz", compress_text("# Old"))
        repo = make_repository(entry=make_entry(blob_id=stored.blob_id, blob_label=None))
        service = EntryService(blob_store, repository=repo)

        await service.update(mock_db_session, 1, b"# New")

        assert re.fullmatch(r"entry-\d+-[0-9a-f]{8}\.gz", blob_store.labels[stored.blob_id])

    @pytest.mark.asyncio
    async def test_update_empty_makes_no_store_call(self, mock_db_session, blob_store):
        repo = make_repository()
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(ValidationError) as exc_info:
            await service.update(mock_db_session, 1, b"   ")

        assert exc_info.value.message == "Empty or invalid content"
        repo.get_by_id.assert_not_awaited()
        assert blob_store.store_calls == 0

    @pytest.mark.asyncio
    async def test_update_missing_entry(self, mock_db_session, blob_store):
        repo = make_repository()
        repo.get_by_id = AsyncMock(side_effect=NotFoundError(resource_id="9"))
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(NotFoundError):
            await service.update(mock_db_session, 9, b"# New")

        assert blob_store.calls["update"] == 0

    @pytest.mark.asyncio
    async def test_update_blob_failure_keeps_title(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry())
        blob_store.update = AsyncMock(side_effect=RemoteBlobError())
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(RemoteBlobError):
            await service.update(mock_db_session, 1, b"# New")

        repo.update_title.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.xfail(
        strict=True,
        reason="title and content are written by separate calls; concurrent "
               "updates of one entry can interleave",
    )
    async def test_concurrent_updates_keep_title_and_content_together(
        self, mock_db_session, blob_store, make_entry
    ):
        stored = await blob_store.upload("entry.gz", compress_text("# Start"))
        entry = make_entry(blob_id=stored.blob_id)
        titles = {}

        async def record_title(db, entry_id, title):
            titles[entry_id] = title
            return entry

        repo = make_repository(entry=entry)
        repo.update_title = AsyncMock(side_effect=record_title)

        first_written = asyncio.Event()
        release_first = asyncio.Event()
        original_update = blob_store.update

        async def gated_update(blob_id, data, label):
            result = await original_update(blob_id, data, label)
            if not first_written.is_set():
                first_written.set()
                await release_first.wait()
            return result

        blob_store.update = gated_update
        service = EntryService(blob_store, repository=repo)

        first = asyncio.create_task(service.update(mock_db_session, 1, b"# Alpha"))
        await first_written.wait()
        await service.update(mock_db_session, 1, b"# Beta")
        release_first.set()
        await first

        stored_text = decompress_text(blob_store.blobs[stored.blob_id])
        assert titles[1] == extract_title(stored_text)


class TestEntryServiceDelete:
    """Tests for the delete workflow."""

    @pytest.mark.asyncio
    async def test_delete_removes_blob_then_row(self, mock_db_session, blob_store, make_entry):
        stored = await blob_store.upload("entry.gz", compress_text("# Hi"))
        repo = make_repository(entry=make_entry(entry_id=4, blob_id=stored.blob_id))
        service = EntryService(blob_store, repository=repo)

        result = await service.delete(mock_db_session, 4)

        assert result.success is True
        assert result.message == "Entry 4 deleted."
        assert blob_store.blobs == {}
        repo.delete.assert_awaited_once_with(mock_db_session, 4)
        repo.commit.assert_awaited_once_with(mock_db_session)

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_blob(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry(entry_id=4, blob_id="already-gone"))
        service = EntryService(blob_store, repository=repo)

        result = await service.delete(mock_db_session, 4)

        assert result.message == "Entry 4 deleted."
        repo.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_other_blob_failure_keeps_row(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry())
        blob_store.delete = AsyncMock(side_effect=RemoteBlobError())
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(RemoteBlobError):
            await service.delete(mock_db_session, 1)

        repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_missing_entry(self, mock_db_session, blob_store):
        repo = make_repository()
        repo.get_by_id = AsyncMock(side_effect=NotFoundError(resource_id="1"))
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(NotFoundError):
            await service.delete(mock_db_session, 1)

        assert blob_store.calls["delete"] == 0


class TestEntryServiceContent:
    """Tests for content reads."""

    @pytest.mark.asyncio
    async def test_load_content(self, blob_store):
        stored = await blob_store.upload("entry.gz", compress_text("# Hello\nWorld"))
        service = EntryService(blob_store, repository=make_repository())

        assert await service.load_content(stored.blob_id) == "# Hello\nWorld"

    @pytest.mark.asyncio
    async def test_get_content_by_id(self, mock_db_session, blob_store, make_entry):
        stored = await blob_store.upload("entry.gz", compress_text("body"))
        repo = make_repository(entry=make_entry(blob_id=stored.blob_id))
        service = EntryService(blob_store, repository=repo)

        assert await service.get_content(mock_db_session, entry_id=1) == "body"

    @pytest.mark.asyncio
    async def test_get_content_by_title_takes_newest(self, mock_db_session, blob_store, make_entry):
        newer = await blob_store.upload("b.gz", compress_text("# Same\nnewer"))
        older = await blob_store.upload("a.gz", compress_text("# Same\nolder"))
        rows = [
            make_entry(entry_id=3, blob_id="x", title="Other"),
            make_entry(entry_id=2, blob_id=newer.blob_id, title="Same"),
            make_entry(entry_id=1, blob_id=older.blob_id, title="Same"),
        ]
        service = EntryService(blob_store, repository=make_repository(entries=rows))

        assert await service.get_content(mock_db_session, title="Same") == "# Same\nnewer"

    @pytest.mark.asyncio
    async def test_get_content_unknown_title(self, mock_db_session, blob_store):
        service = EntryService(blob_store, repository=make_repository(entries=[]))

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_content(mock_db_session, title="Nope")
        assert exc_info.value.message == "No entry found with that title"

    @pytest.mark.asyncio
    async def test_get_content_requires_id_or_title(self, mock_db_session, blob_store):
        service = EntryService(blob_store, repository=make_repository())

        with pytest.raises(ValidationError):
            await service.get_content(mock_db_session)

    @pytest.mark.asyncio
    async def test_get_content_row_without_blob(self, mock_db_session, blob_store, make_entry):
        repo = make_repository(entry=make_entry(blob_id=""))
        service = EntryService(blob_store, repository=repo)

        with pytest.raises(NotFoundError) as exc_info:
            await service.get_content(mock_db_session, entry_id=1)
        assert exc_info.value.message == "Entry has no stored content"
        assert blob_store.calls["download"] == 0

    @pytest.mark.asyncio
    async def test_list_entries_maps_wire_names(self, mock_db_session, blob_store, make_entry):
        rows = [make_entry(entry_id=2, blob_id="drive-2"), make_entry(entry_id=1)]
        service = EntryService(blob_store, repository=make_repository(entries=rows))

        result = await service.list_entries(mock_db_session)

        assert [r.id for r in result] == [2, 1]
        assert result[0].filename == "drive-2"
        assert json.loads(result[0].tags) == ["idea"]
