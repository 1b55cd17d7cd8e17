"""
Pydantic response models for the data-access facade.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class RebuildResponse(BaseModel):
    """Outcome of an explicit index rebuild."""

    success: bool = Field(..., description="Whether the build completed")
    total_creatures: int = Field(default=0, description="Profiles in the new index")
    message: str = Field(..., description="Human-readable summary")
    persisted: bool = Field(default=False, description="Whether the index was saved")
    error_count: int = Field(default=0, description="Extraction and pack failures")


class PackInfo(BaseModel):
    """A pack the host exposes."""

    id: str
    label: str
    type: str = Field(..., description="Document type held by the pack")
    document_count: int = Field(default=0, description="Entries in the lightweight index")


class IndexStatusResponse(BaseModel):
    """Cache state plus the metadata of the index in memory."""

    state: str = Field(..., description="absent, valid, stale or building")
    enabled: bool = Field(..., description="Enhanced index enabled")
    dialect: str
    store_key: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="IndexMetadata of the cached index")
    last_build: Optional[Dict[str, Any]] = Field(default=None, description="Summary of the last build")
    job: Optional[Dict[str, Any]] = Field(default=None, description="Latest background rebuild job")
