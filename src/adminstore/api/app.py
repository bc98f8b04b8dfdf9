from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adminstore.api.errors import register_error_handlers
from adminstore.api.routes_public import public_router
from adminstore.api.security import NonceTracker, RateLimitMiddleware, RequestSizeLimitMiddleware
from adminstore.api.structured_logging import RequestLogMiddleware
from adminstore.core.core_logging import log_event
from adminstore.core.engine import AdminStoreEngine
from adminstore.core.engine_boot import build_engine as _build_engine
from adminstore.core.store_config import StoreConfig, load_store_config

log = logging.getLogger("adminstore.api")


def build_engine(cfg: StoreConfig) -> AdminStoreEngine:
    """Build the engine for the API runtime.

    Tests monkeypatch `adminstore.api.app.build_engine` to attach an
    in-memory engine with a manual height source.
    """
    return _build_engine(cfg)


def _parse_cors_origins(mode: str) -> List[str]:
    """CORS allowlist from ADMINSTORE_CORS_ORIGINS. Empty disables CORS; '*' is rejected in prod."""
    raw = os.environ.get("ADMINSTORE_CORS_ORIGINS", "").strip()
    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]
    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in ADMINSTORE_CORS_ORIGINS."
            )
        return ["*"]
    return origins


def create_app(*, boot_runtime: bool = True, cfg: Optional[StoreConfig] = None) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load config and attach app.state.engine via build_engine()
      - False: no engine; routes that need one return 500 not_ready
    """
    if cfg is None and boot_runtime:
        cfg = load_store_config()
    mode = (cfg.mode if cfg is not None else os.environ.get("ADMINSTORE_MODE", "prod")).strip().lower()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        yield
        eng = getattr(app.state, "engine", None)
        if eng is not None:
            eng.close()
            log_event(log, "engine_closed", total_operations=eng.get_total_operations())

    if mode == "prod":
        app = FastAPI(title="Adminstore API", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="Adminstore API", lifespan=_lifespan)

    app.state.cfg = cfg
    app.state.allow_unsigned_calls = bool(cfg.allow_unsigned_calls) if cfg is not None else False
    app.state.metrics_enabled = bool(cfg.metrics_enabled) if cfg is not None else False
    app.state.nonces = NonceTracker()
    app.state.engine = build_engine(cfg) if (boot_runtime and cfg is not None) else None

    register_error_handlers(app)

    # Last added runs first: request log wraps everything, size limit before rate limit.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)

    cors_origins = _parse_cors_origins(mode)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "X-Adminstore-Caller", "X-Adminstore-Nonce", "X-Adminstore-Sig"],
        )

    app.add_middleware(RequestLogMiddleware)

    app.include_router(public_router)
    return app
