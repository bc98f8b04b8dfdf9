from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine
from adminstore.api.schemas import CategoryRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.post("/categories")
def add_category(request: Request, body: CategoryRequest, caller: str = Depends(require_caller)) -> Json:
    """Create or replace a category (ADMIN capability)."""
    return _engine(request).add_category(
        caller=caller,
        category=body.category,
        description=body.description,
        color=body.color,
    )


@router.get("/categories/{category}")
def get_category(request: Request, category: str) -> Json:
    return {"ok": True, "category": _engine(request).get_category(category).to_json()}
