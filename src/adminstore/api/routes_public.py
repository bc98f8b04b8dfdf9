# src/adminstore/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from adminstore.api.routes_public_parts.activity import router as activity_router
from adminstore.api.routes_public_parts.admins import router as admins_router
from adminstore.api.routes_public_parts.categories import router as categories_router
from adminstore.api.routes_public_parts.control import router as control_router
from adminstore.api.routes_public_parts.data import router as data_router
from adminstore.api.routes_public_parts.health import router as health_router
from adminstore.api.routes_public_parts.metrics import router as metrics_router
from adminstore.api.routes_public_parts.operations import router as operations_router
from adminstore.api.routes_public_parts.snapshots import router as snapshots_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(admins_router, prefix="/v1", tags=["admins"])
public_router.include_router(control_router, prefix="/v1", tags=["control"])
public_router.include_router(data_router, prefix="/v1", tags=["data"])
public_router.include_router(activity_router, prefix="/v1", tags=["activity"])
public_router.include_router(operations_router, prefix="/v1", tags=["operations"])
public_router.include_router(snapshots_router, prefix="/v1", tags=["snapshots"])
public_router.include_router(categories_router, prefix="/v1", tags=["categories"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
