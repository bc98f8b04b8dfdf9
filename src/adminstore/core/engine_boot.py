# src/adminstore/core/engine_boot.py

from __future__ import annotations

import logging
from typing import Optional

from adminstore.core.core_logging import log_event
from adminstore.core.engine import AdminStoreEngine
from adminstore.core.height import IntervalHeight
from adminstore.core.metrics import StoreMetrics
from adminstore.core.single_writer import SingleWriterLock
from adminstore.core.sqlite_db import SqliteDB, SqliteStateStore
from adminstore.core.store_config import StoreConfig, load_store_config

log = logging.getLogger("adminstore.boot")


def build_engine(cfg: Optional[StoreConfig] = None) -> AdminStoreEngine:
    """
    Build an AdminStoreEngine from an explicit config or, if omitted, from
    the config file / ADMINSTORE_* environment.

    With a db_path the process takes the single-writer lock first, so two
    processes never write the same database.
    """
    c = cfg or load_store_config()

    persist: Optional[SqliteStateStore] = None
    writer: Optional[SingleWriterLock] = None
    floor = 0

    if c.db_path.strip():
        writer = SingleWriterLock(c.db_path + ".lock")
        writer.acquire()
        try:
            persist = SqliteStateStore(db=SqliteDB(path=c.db_path))
            if persist.exists():
                floor = int(persist.read_state().get("height", 0) or 0)
        except Exception:
            writer.release()
            raise

    height = IntervalHeight(genesis_ms=c.genesis_ms, interval_ms=c.height_interval_ms, floor=floor)

    try:
        engine = AdminStoreEngine(
            owner=c.owner,
            height_source=height,
            persist=persist,
            rate_window=c.rate_window,
            metrics=StoreMetrics(),
            writer_lock=writer,
        )
    except Exception:
        if writer is not None:
            writer.release()
        raise

    log_event(
        log,
        "engine_boot",
        mode=c.mode,
        db_path=c.db_path or None,
        height=height.current(),
        total_operations=engine.get_total_operations(),
    )
    return engine
