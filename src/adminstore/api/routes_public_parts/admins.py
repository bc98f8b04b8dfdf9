from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from adminstore.api.routes_public_parts.common import _engine
from adminstore.api.schemas import AddAdminRequest, UpdatePermissionsRequest
from adminstore.api.security import require_caller

router = APIRouter()

Json = Dict[str, Any]


@router.post("/admins")
def add_admin(request: Request, body: AddAdminRequest, caller: str = Depends(require_caller)) -> Json:
    """Owner only. Returns { ok, operation_id, height, admin }."""
    return _engine(request).add_admin(caller=caller, identity=body.identity, permissions=body.permissions)


@router.put("/admins/{identity}/permissions")
def update_admin_permissions(
    request: Request,
    identity: str,
    body: UpdatePermissionsRequest,
    caller: str = Depends(require_caller),
) -> Json:
    return _engine(request).update_admin_permissions(caller=caller, identity=identity, permissions=body.permissions)


@router.post("/admins/{identity}/deactivate")
def deactivate_admin(request: Request, identity: str, caller: str = Depends(require_caller)) -> Json:
    return _engine(request).deactivate_admin(caller=caller, identity=identity)


# Declared before /admins/{identity} so "count" is not taken as an identity.
@router.get("/admins/count")
def admin_count(request: Request) -> Json:
    return {"ok": True, "count": _engine(request).get_admin_count()}


@router.get("/admins")
def list_admins(request: Request) -> Json:
    return {"ok": True, "admins": [a.to_json() for a in _engine(request).list_admins()]}


@router.get("/admins/{identity}")
def get_admin(request: Request, identity: str) -> Json:
    return {"ok": True, "admin": _engine(request).get_admin(identity).to_json()}


@router.get("/admins/{identity}/has-permission")
def has_permission(request: Request, identity: str, required: str) -> Json:
    """`required` is a mask ("3") or capability names ("read,write")."""
    req: Any = int(required) if required.strip().isdigit() else required
    return {"ok": True, "identity": identity, "granted": _engine(request).has_permission(identity, req)}
