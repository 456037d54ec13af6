"""Pydantic schemas for API requests and responses."""

from appserver.schemas.entries import CreateEntryRequest, EntryResponse
from appserver.schemas.common import ErrorResponse

__all__ = [
    "CreateEntryRequest",
    "EntryResponse",
    "ErrorResponse",
]
