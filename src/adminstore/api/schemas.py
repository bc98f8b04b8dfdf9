from __future__ import annotations

"""Pydantic request schemas for the public API.

These validate HTTP shape only. Values that carry store semantics (stored
integers, permission masks) are typed loosely here and checked by the engine,
so the error codes match what a direct engine call returns.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class AddAdminRequest(BaseModel):
    identity: str = Field(..., description="Admin identity (hex Ed25519 pubkey)")
    permissions: Any = Field(..., description="Bitmask 0..15, list of capability names, or 'read,write'")


class UpdatePermissionsRequest(BaseModel):
    permissions: Any = Field(..., description="Bitmask 0..15, list of capability names, or 'read,write'")


class VersionRequest(BaseModel):
    version: Any = Field(..., description="New contract version (>= 1)")


class StoreDataRequest(BaseModel):
    value: Any = Field(..., description="Integer in 0..1_000_000")
    text: str = Field(default="", description="Free text, up to 256 chars")
    tags: Optional[List[str]] = Field(default=None, description="Up to 5 tags")


class LockRequest(BaseModel):
    locked: bool = Field(default=True)


class BatchItemModel(BaseModel):
    key: str
    value: Any
    text: str = ""


class BatchStoreRequest(BaseModel):
    items: List[BatchItemModel] = Field(..., description="Up to 10 items, applied all-or-nothing")


class MultiLogEntry(BaseModel):
    operation_type: str
    key: Optional[str] = None
    value: Any = None


class MultiLogRequest(BaseModel):
    entries: List[MultiLogEntry] = Field(..., description="Up to 10 audit entries")


class BackupRequest(BaseModel):
    snapshot_id: str = Field(..., description="Unique snapshot id")


class CategoryRequest(BaseModel):
    category: str
    description: str = ""
    color: str = ""

    model_config = {"extra": "allow"}
