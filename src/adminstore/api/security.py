from __future__ import annotations

import ipaddress
import os
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from adminstore.api.errors import ApiError
from adminstore.crypto.sig import canonical_call_message, verify_ed25519_signature

CALLER_HEADER = "x-adminstore-caller"
NONCE_HEADER = "x-adminstore-nonce"
SIG_HEADER = "x-adminstore-sig"


def _truthy(v: str | None) -> bool:
    return (v or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return int(default)
    try:
        return int(str(raw).strip())
    except Exception:
        return int(default)


def _client_ip(request: Request) -> str:
    """Client IP for HTTP rate limiting only (never for auth decisions).

    Proxy headers are honored only with ADMINSTORE_TRUST_PROXY_HEADERS=1.
    """

    def _is_valid_ip(raw: str) -> bool:
        try:
            ipaddress.ip_address(raw)
            return True
        except ValueError:
            return False

    if _truthy(os.environ.get("ADMINSTORE_TRUST_PROXY_HEADERS")):
        v = (request.headers.get("x-real-ip") or "").strip()
        if v and _is_valid_ip(v):
            return v
        xff = request.headers.get("x-forwarded-for")
        if xff:
            ip = xff.split(",")[0].strip()
            if ip and _is_valid_ip(ip):
                return ip

    client = request.client
    if client and client.host:
        host = str(client.host)
        return host if _is_valid_ip(host) else "unknown"

    return "unknown"


# ---------------------------------------------------------------------------
# Caller authentication
# ---------------------------------------------------------------------------


class NonceTracker:
    """Last accepted nonce per caller. A nonce is accepted once, strictly increasing."""

    def __init__(self, *, max_callers: int = 10_000) -> None:
        self._last: Dict[str, Tuple[int, float]] = {}
        self._max = max(1, int(max_callers))
        self._lock = threading.Lock()

    def accept(self, caller: str, nonce: int) -> bool:
        now = time.time()
        with self._lock:
            prev = self._last.get(caller)
            if prev is not None and int(nonce) <= prev[0]:
                return False
            self._last[caller] = (int(nonce), now)
            if len(self._last) > self._max:
                oldest = min(self._last.items(), key=lambda kv: kv[1][1])[0]
                self._last.pop(oldest, None)
            return True

    def last(self, caller: str) -> Optional[int]:
        with self._lock:
            prev = self._last.get(caller)
            return prev[0] if prev is not None else None


async def require_caller(request: Request) -> str:
    """Resolve the authenticated caller identity for a mutating request.

    Client provides:
      - X-Adminstore-Caller: hex Ed25519 pubkey (the store identity)
      - X-Adminstore-Nonce:  integer, strictly increasing per caller
      - X-Adminstore-Sig:    hex/base64 signature over canonical_call_message(...)

    With allow_unsigned_calls the caller header is trusted as-is (dev/testnet only).
    """
    caller = (request.headers.get(CALLER_HEADER) or "").strip()
    if not caller:
        raise ApiError.unauthorized("auth_missing", "missing caller header", {"header": CALLER_HEADER})

    if bool(getattr(request.app.state, "allow_unsigned_calls", False)):
        return caller

    nonce_raw = (request.headers.get(NONCE_HEADER) or "").strip()
    sig = (request.headers.get(SIG_HEADER) or "").strip()
    if not nonce_raw or not sig:
        raise ApiError.unauthorized("auth_missing", "missing nonce or signature header", {})

    try:
        nonce = int(nonce_raw)
    except ValueError:
        raise ApiError.unauthorized("auth_invalid", "nonce must be an integer", {}) from None
    if nonce < 0:
        raise ApiError.unauthorized("auth_invalid", "nonce must be >= 0", {})

    body = await request.body()
    msg = canonical_call_message(
        method=request.method,
        path=request.url.path,
        caller=caller,
        nonce=nonce,
        body=body,
    )
    if not verify_ed25519_signature(message=msg, sig=sig, pubkey=caller):
        raise ApiError.unauthorized("auth_invalid", "signature does not verify", {})

    tracker: NonceTracker = request.app.state.nonces
    if not tracker.accept(caller, nonce):
        raise ApiError.unauthorized("nonce_replayed", "nonce already used", {"last": tracker.last(caller)})

    return caller


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Fail-fast request size limiter.

    Configure:
      ADMINSTORE_MAX_REQUEST_BYTES (default: 64 KiB)
      ADMINSTORE_SIZE_LIMIT_DISABLE=1 to disable
    """

    def __init__(
        self,
        app,
        *,
        max_bytes: Optional[int] = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/v1/health"),
    ):
        super().__init__(app)
        self._enabled = not _truthy(os.environ.get("ADMINSTORE_SIZE_LIMIT_DISABLE"))
        if max_bytes is not None:
            self._max_bytes = int(max_bytes)
        else:
            self._max_bytes = _env_int("ADMINSTORE_MAX_REQUEST_BYTES", 65_536)
        self._exempt_prefixes = exempt_prefixes

    def _too_large(self) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={
                "ok": False,
                "error": {"code": "request_too_large", "message": "Request body too large", "details": {}},
            },
        )

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        path = request.url.path or ""
        for ex in self._exempt_prefixes:
            if path.startswith(ex):
                return await call_next(request)

        cl = request.headers.get("content-length")
        if cl:
            try:
                if int(cl) > self._max_bytes:
                    return self._too_large()
            except ValueError:
                pass

        # Also cap actual body bytes (chunked bodies carry no Content-Length).
        if (request.method or "").upper() in {"POST", "PUT", "PATCH", "DELETE"}:
            body = await request.body()
            if body and len(body) > self._max_bytes:
                return self._too_large()

        return await call_next(request)


@dataclass(frozen=True)
class TokenBucket:
    rate_per_sec: float
    burst: float


class RateLimitMiddleware(BaseHTTPMiddleware):
    """In-memory per-IP token bucket in front of the API.

    This is transport protection only; the store's own per-identity action
    limit is enforced by the engine.

    TTL + size-cap eviction keeps memory bounded:
      ADMINSTORE_RL_TTL_S (900), ADMINSTORE_RL_MAX_KEYS (20000),
      ADMINSTORE_RL_PRUNE_EVERY (256 requests).
    """

    def __init__(
        self,
        app,
        *,
        write_bucket: TokenBucket | None = None,
        read_bucket: TokenBucket | None = None,
        ttl_s: int | None = None,
        max_keys: int | None = None,
        prune_every: int | None = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/v1/health"),
    ):
        super().__init__(app)

        # Keyed by "<ip>:<rate>:<burst>" -> (tokens_remaining, last_refill_ts, last_seen_ts)
        self._buckets: Dict[str, Tuple[float, float, float]] = {}

        self._write = write_bucket or TokenBucket(rate_per_sec=4.0, burst=20.0)
        self._read = read_bucket or TokenBucket(rate_per_sec=12.0, burst=40.0)
        self._exempt_prefixes = exempt_prefixes

        self._ttl_s = int(ttl_s) if ttl_s is not None else _env_int("ADMINSTORE_RL_TTL_S", 900)
        self._max_keys = int(max_keys) if max_keys is not None else _env_int("ADMINSTORE_RL_MAX_KEYS", 20_000)
        pe = int(prune_every) if prune_every is not None else _env_int("ADMINSTORE_RL_PRUNE_EVERY", 256)
        self._prune_every = max(1, pe)
        self._req_count = 0

    def _pick_bucket(self, request: Request) -> TokenBucket:
        if (request.method or "").upper() in {"POST", "PUT", "PATCH", "DELETE"}:
            return self._write
        return self._read

    def _rate_limited(self) -> JSONResponse:
        return JSONResponse(
            status_code=429,
            content={"ok": False, "error": {"code": "http_rate_limited", "message": "Too many requests", "details": {}}},
        )

    def _prune(self, now: float) -> None:
        if self._ttl_s > 0:
            cutoff = now - float(self._ttl_s)
            stale = [k for k, (_, __, last_seen) in self._buckets.items() if last_seen < cutoff]
            for k in stale:
                self._buckets.pop(k, None)

        if self._max_keys > 0 and len(self._buckets) > self._max_keys:
            items = sorted(self._buckets.items(), key=lambda kv: kv[1][2])
            for k, _ in items[: len(items) - self._max_keys]:
                self._buckets.pop(k, None)

    async def dispatch(self, request: Request, call_next):
        path = request.url.path or ""
        for ex in self._exempt_prefixes:
            if path.startswith(ex):
                return await call_next(request)

        ip = _client_ip(request)
        bucket = self._pick_bucket(request)
        now = time.time()

        self._req_count += 1
        if (self._req_count % self._prune_every) == 0:
            self._prune(now)

        key = f"{ip}:{bucket.rate_per_sec}:{bucket.burst}"
        tokens, last, _ = self._buckets.get(key, (bucket.burst, now, now))

        tokens = min(bucket.burst, tokens + (now - last) * bucket.rate_per_sec)
        if tokens < 1.0:
            self._buckets[key] = (tokens, now, now)
            return self._rate_limited()

        self._buckets[key] = (tokens - 1.0, now, now)

        if self._max_keys > 0 and len(self._buckets) > self._max_keys:
            self._prune(now)

        return await call_next(request)
