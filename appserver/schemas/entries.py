"""Pydantic schemas for file entry endpoints."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class CreateEntryRequest(BaseModel):
    """Request model for entry creation."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    content_type: Optional[str] = Field(default=None, alias="contentType", min_length=1)


class EntryResponse(BaseModel):
    """Public projection of a file entry."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    content_type: str = Field(alias="contentType")
    size: int
    last_update: str = Field(alias="lastUpdate")
    sha256: str
    finalized: bool
    uri: str
