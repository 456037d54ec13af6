"""File entry API routes."""

from typing import List, Optional

from fastapi import APIRouter, Header, Query, Request
from fastapi.responses import StreamingResponse

from common.constants import API_PREFIX
from appserver.exceptions import InvalidHeaderError
from appserver.schemas.common import ErrorResponse
from appserver.schemas.entries import CreateEntryRequest, EntryResponse
from appserver.services.download_service import DownloadService
from appserver.services.entry_service import EntryService
from appserver.services.upload_service import UploadService
from appserver.utils import is_flag_set

router = APIRouter(prefix=API_PREFIX, tags=["Files"])


@router.post("", response_model=EntryResponse)
@router.post("/", response_model=EntryResponse, include_in_schema=False)
async def create_entry(request: CreateEntryRequest):
    """
    Create an empty file entry.

    Parameters:
        - name: Display name (required, not used for storage)
        - contentType: Declared media type (default application/octet-stream)

    Returns:
        - Entry projection with size 0 and the digest of empty content

    Raises:
        - 400: Missing or empty name
    """
    entry_service = EntryService()
    entry = entry_service.create_entry(request.name, request.content_type)
    return entry_service.to_projection(entry)


@router.get("", response_model=List[EntryResponse])
@router.get("/", response_model=List[EntryResponse], include_in_schema=False)
async def list_entries():
    """
    List all entries (best effort; unreadable records are omitted).
    """
    entry_service = EntryService()
    return [entry_service.to_projection(entry) for entry in entry_service.list_entries()]


@router.post(
    "/{entry_id}/upload",
    response_model=EntryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def upload_chunk(
    entry_id: str,
    request: Request,
    offset: int = Query(0, ge=0, description="Committed size the chunk starts at"),
    finalize: Optional[str] = Query(None, description="Present to complete the entry"),
):
    """
    Append a raw byte chunk to an entry.

    Parameters:
        - offset: Must equal the current size of the entry
        - finalize: When present, the entry becomes immutable after this chunk

    Returns:
        - Updated entry projection

    Raises:
        - 400: Missing or truncated body, or an unparsable Content-Length
        - 404: Entry not found
        - 409: Offset mismatch, or entry already finalized
    """
    content_length = request.headers.get("content-length")
    declared_length = None
    if content_length is not None:
        try:
            declared_length = int(content_length)
        except ValueError:
            declared_length = -1
        if declared_length < 0:
            raise InvalidHeaderError(f"Invalid Content-Length: {content_length}")

    has_body = content_length is not None or "transfer-encoding" in request.headers
    # A declared length with an empty stream is reported as a missing body
    body = request.stream() if has_body else None

    upload_service = UploadService()
    entry = await upload_service.append_chunk(
        entry_id,
        offset=offset,
        body=body,
        finalize=is_flag_set(finalize),
        declared_length=declared_length,
    )
    return EntryService().to_projection(entry)


@router.get("/{entry_id}/json", response_model=EntryResponse)
async def get_entry_metadata(entry_id: str):
    """
    Get the metadata projection of an entry.

    Raises:
        - 404: Entry not found
    """
    entry_service = EntryService()
    return entry_service.to_projection(entry_service.get_entry(entry_id))


@router.get(
    "/{entry_id}",
    responses={404: {"model": ErrorResponse}, 416: {"model": ErrorResponse}},
)
@router.get("/{entry_id}/{download_name:path}")
async def download_entry(
    entry_id: str,
    download_name: Optional[str] = None,
    range_header: Optional[str] = Header(None, alias="Range"),
):
    """
    Download entry content, whole or a single byte range.

    Any trailing path segment is ignored so clients can choose the saved
    file name, e.g. /api/v1/files/<id>/report.pdf.

    Parameters:
        - Range: Optional "bytes=start-end" header

    Returns:
        - 200 with the full content, or 206 with Content-Range

    Raises:
        - 400: Range header without the bytes unit
        - 404: Entry not found
        - 416: Several ranges, or a range outside the content
    """
    download = DownloadService().open_download(entry_id, range_header)
    return StreamingResponse(
        download.body,
        status_code=download.status_code,
        headers=download.headers,
    )
