#!/usr/bin/env python3

"""Production-ish smoke test for the admin store.

It verifies:
  - the engine boots on a fresh SQLite db under the single-writer lock
  - FastAPI app boots and serves /v1/health + /v1/info
  - a signed write is persisted and survives an app restart

Usage:
  python3 scripts/prod_smoke.py
"""

from __future__ import annotations

import os
import tempfile

from fastapi.testclient import TestClient

from adminstore.api.app import create_app
from adminstore.core.store_config import load_store_config
from adminstore.testing.sigtools import SignedCaller, encode_body


def main() -> int:
    owner = SignedCaller("smoke-owner")

    with tempfile.TemporaryDirectory(prefix="adminstore-smoke-") as td:
        cfg = load_store_config(
            owner=owner.identity,
            mode="dev",
            db_path=os.path.join(td, "adminstore.db"),
            height_interval_ms=1000,
        )

        with TestClient(create_app(cfg=cfg)) as c:
            r = c.get("/v1/health")
            assert r.status_code == 200, r.text
            assert r.json().get("ready") is True

            body = {"value": 7, "text": "smoke", "tags": ["smoke"]}
            r = c.put("/v1/data/smoke", content=encode_body(body), headers=owner.headers("PUT", "/v1/data/smoke", body))
            assert r.status_code == 200, r.text

        # Second boot reads the same database.
        with TestClient(create_app(cfg=cfg)) as c:
            rec = c.get("/v1/data/smoke").json()["record"]
            info = c.get("/v1/info").json()["contract"]

        if rec["value"] != 7 or info["total_operations"] != 1:
            raise RuntimeError(f"state did not survive restart: record={rec} info={info}")

        print("OK: health + signed write + restart", {"total_operations": info["total_operations"]})
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
