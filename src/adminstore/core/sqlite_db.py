# src/adminstore/core/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Used for the persisted state row and snapshot content hashes, so it must
    stay byte-stable.
    """
    # No default=str: non-JSON types leaking into state must fail loudly.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except Exception:
        return int(default)


class SqliteDB:
    """SQLite manager for the store.

    Design goals:
      - single durable DB file for state snapshot + audit log
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time. BEGIN IMMEDIATE can transiently
    fail with "database is locked", so write_tx() retries with a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """Return a safe PRAGMA synchronous value.

        Defaults:
          - prod        -> FULL
          - dev/testnet -> NORMAL

        Override with ADMINSTORE_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("ADMINSTORE_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("ADMINSTORE_SQLITE_SYNCHRONOUS") or default).strip().upper()

        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("ADMINSTORE_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0

        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # BEGIN/COMMIT are issued explicitly
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        allow_non_wal = (os.environ.get("ADMINSTORE_SQLITE_ALLOW_NON_WAL") or "").strip() in {"1", "true", "TRUE"}
        try:
            row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
            mode = str(row[0]).strip().lower() if row is not None else ""
            if mode and mode != "wal" and not allow_non_wal:
                raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")
        except Exception:
            if not allow_non_wal:
                con.close()
                raise

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA foreign_keys=ON;")
        con.execute("PRAGMA temp_store=MEMORY;")

        wal_ckpt = max(1, _env_int("ADMINSTORE_SQLITE_WAL_AUTOCHECKPOINT", 1000))
        con.execute(f"PRAGMA wal_autocheckpoint={wal_ckpt};")

        busy_ms = max(0, _env_int("ADMINSTORE_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")

        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS store_state (
                  id INTEGER PRIMARY KEY CHECK (id = 1),
                  height INTEGER NOT NULL,
                  total_operations INTEGER NOT NULL,
                  state_json TEXT NOT NULL,
                  updated_ts_ms INTEGER NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS operation_log (
                  operation_id INTEGER PRIMARY KEY,
                  operation_type TEXT NOT NULL,
                  op_key TEXT,
                  old_value INTEGER,
                  new_value INTEGER,
                  performer TEXT NOT NULL,
                  height INTEGER NOT NULL,
                  success INTEGER NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )
            con.execute("CREATE INDEX IF NOT EXISTS idx_oplog_performer ON operation_log(performer);")

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except Exception:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise (fail closed)
        """
        deadline_ms = max(250, _env_int("ADMINSTORE_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("ADMINSTORE_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("ADMINSTORE_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
                    time.sleep(sleep_s * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except sqlite3.Error:
                    pass
                raise


def _op_row_to_json(row: sqlite3.Row) -> Json:
    return {
        "operation_id": int(row["operation_id"]),
        "operation_type": str(row["operation_type"]),
        "key": row["op_key"],
        "old_value": row["old_value"],
        "new_value": row["new_value"],
        "performer": str(row["performer"]),
        "timestamp": int(row["height"]),
        "success": bool(row["success"]),
    }


class SqliteStateStore:
    """State snapshot + append-only audit log persisted in SQLite.

      - read_state(): latest snapshot (single row)
      - read_operations(): full audit log in id order
      - commit(state, op): snapshot overwrite + log append in one transaction

    The audit row is inserted with an explicit operation_id; the primary key
    rejects any attempt to reuse an id.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM store_state WHERE id=1;").fetchone() is not None

    def read_state(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM store_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError("sqlite store_state is missing")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("store_state is not a JSON object")
        return st

    def read_operations(self) -> List[Json]:
        with self._db.connection() as con:
            rows = con.execute("SELECT * FROM operation_log ORDER BY operation_id ASC;").fetchall()
        return [_op_row_to_json(r) for r in rows]

    def count_operations(self) -> int:
        with self._db.connection() as con:
            row = con.execute("SELECT COUNT(*) AS n FROM operation_log;").fetchone()
        return int(row["n"]) if row is not None else 0

    def _upsert_state(self, con: sqlite3.Connection, st: Json) -> None:
        con.execute(
            """
            INSERT INTO store_state(id, height, total_operations, state_json, updated_ts_ms)
            VALUES(1, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
              height=excluded.height,
              total_operations=excluded.total_operations,
              state_json=excluded.state_json,
              updated_ts_ms=excluded.updated_ts_ms;
            """,
            (int(st.get("height", 0)), int(st.get("total_operations", 0)), canon_json(st), _now_ms()),
        )

    def write_state(self, st: Json) -> None:
        if not isinstance(st, dict):
            raise ValueError("state write expects dict")
        with self._db.write_tx() as con:
            self._upsert_state(con, st)

    def commit(self, st: Json, ops: Optional[List[Json]] = None) -> None:
        if not isinstance(st, dict):
            raise ValueError("state write expects dict")
        now = _now_ms()
        with self._db.write_tx() as con:
            for op in ops or []:
                con.execute(
                    """
                    INSERT INTO operation_log(
                      operation_id, operation_type, op_key, old_value, new_value,
                      performer, height, success, created_ts_ms
                    ) VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        int(op["operation_id"]),
                        str(op["operation_type"]),
                        op.get("key"),
                        op.get("old_value"),
                        op.get("new_value"),
                        str(op["performer"]),
                        int(op["timestamp"]),
                        1 if op.get("success") else 0,
                        now,
                    ),
                )
            self._upsert_state(con, st)
