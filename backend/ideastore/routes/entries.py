"""
IdeaStore Backend — Entry Route Handlers
==========================================

What:  The entry persistence API used by the editor and home pages.
How:   Reads raw text bodies and path/query parameters, delegates to
       EntryService, returns JSON (or text/plain for content reads).
Who:   Called by the browser client.

Bodies:
    POST /save and PUT /update/{id} take the markdown as the raw request
    body (any content type). The save request may carry an X-Entry-Title
    header (URL-encoded) that overrides the derived title.

Ids:
    Entry ids are parsed by parse_entry_id so that a non-numeric id is a
    400 "Invalid ID" rather than FastAPI's 422.
"""

import logging
from typing import List, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ideastore.database import get_db_session
from ideastore.dependencies import get_entry_service
from ideastore.schemas.entry import (
    DeleteResponse,
    EntryResponse,
    EntryWriteResponse,
    ErrorResponse,
)
from ideastore.services.entry_service import EntryService, parse_entry_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Entries"])


@router.post(
    "/save",
    response_model=EntryWriteResponse,
    responses={
        400: {"description": "Empty or invalid input", "model": ErrorResponse},
        500: {"description": "Drive or database failure", "model": ErrorResponse},
    },
    summary="Save a new entry",
    description=(
        "Compresses the raw markdown body, uploads it to Google Drive and records "
        "a metadata row. The title is the first line without leading '#'."
    ),
)
async def save_entry(
    request: Request,
    x_entry_title: Optional[str] = Header(
        default=None,
        description="Optional URL-encoded title overriding the derived one",
    ),
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> EntryWriteResponse:
    body = await request.body()
    logger.info("Received save request: %d bytes", len(body))

    title_override = unquote(x_entry_title) if x_entry_title else None
    return await service.save(db, body, title_override=title_override)


@router.get(
    "/entries",
    response_model=List[EntryResponse],
    responses={500: {"description": "Database failure", "model": ErrorResponse}},
    summary="List all entries, newest first",
)
async def list_entries(
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> List[EntryResponse]:
    return await service.list_entries(db)


@router.get(
    "/entries/{entry_id}",
    response_model=EntryResponse,
    responses={
        400: {"description": "Non-numeric id", "model": ErrorResponse},
        404: {"description": "Entry not found", "model": ErrorResponse},
    },
    summary="Get one entry's metadata",
)
async def get_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> EntryResponse:
    return await service.get_entry(db, parse_entry_id(entry_id))


@router.get(
    "/content",
    response_class=PlainTextResponse,
    responses={
        400: {"description": "Neither id nor title, or non-numeric id", "model": ErrorResponse},
        404: {"description": "No matching entry or blob", "model": ErrorResponse},
    },
    summary="Get an entry's text by id or title",
)
async def get_content(
    id: Optional[str] = Query(default=None, description="Entry id"),
    title: Optional[str] = Query(default=None, description="Exact entry title"),
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> PlainTextResponse:
    entry_id = parse_entry_id(id) if id else None
    content = await service.get_content(db, entry_id=entry_id, title=title)
    return PlainTextResponse(content)


@router.get(
    "/load/{blob_id}",
    response_class=PlainTextResponse,
    responses={
        404: {"description": "Blob not found on Google Drive", "model": ErrorResponse},
        500: {"description": "Drive failure", "model": ErrorResponse},
    },
    summary="Get an entry's text by its Drive id",
)
async def load_content(
    blob_id: str,
    service: EntryService = Depends(get_entry_service),
) -> PlainTextResponse:
    content = await service.load_content(blob_id)
    return PlainTextResponse(content)


@router.put(
    "/update/{entry_id}",
    response_model=EntryWriteResponse,
    responses={
        400: {"description": "Empty or invalid content, or non-numeric id", "model": ErrorResponse},
        404: {"description": "Entry not found", "model": ErrorResponse},
        500: {"description": "Drive or database failure", "model": ErrorResponse},
    },
    summary="Replace an entry's content",
)
async def update_entry(
    entry_id: str,
    request: Request,
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> EntryWriteResponse:
    parsed_id = parse_entry_id(entry_id)
    body = await request.body()
    return await service.update(db, parsed_id, body)


@router.delete(
    "/delete/{entry_id}",
    response_model=DeleteResponse,
    responses={
        400: {"description": "Non-numeric id", "model": ErrorResponse},
        404: {"description": "Entry not found", "model": ErrorResponse},
        500: {"description": "Drive or database failure", "model": ErrorResponse},
    },
    summary="Delete an entry and its blob",
)
async def delete_entry(
    entry_id: str,
    db: AsyncSession = Depends(get_db_session),
    service: EntryService = Depends(get_entry_service),
) -> DeleteResponse:
    return await service.delete(db, parse_entry_id(entry_id))
