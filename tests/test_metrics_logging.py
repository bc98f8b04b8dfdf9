from __future__ import annotations

import json
import logging

import pytest

from adminstore.core.core_logging import log_event
from adminstore.core.engine import AdminStoreEngine
from adminstore.core.errors import StoreError
from adminstore.core.metrics import StoreMetrics

OWNER = "owner-key"


def test_engine_metrics_count_ops_and_rejections(engine: AdminStoreEngine) -> None:
    engine.store_enhanced_data(caller=OWNER, key="k", value=1)
    engine.lock_data(caller=OWNER, key="k", locked=True)
    with pytest.raises(StoreError):
        engine.store_enhanced_data(caller=OWNER, key="k", value=2)
    with pytest.raises(StoreError):
        engine.store_enhanced_data(caller="nobody", key="k", value=2)

    snap = engine.metrics.snapshot()
    c = snap["counters"]
    assert c["ops_total"] == 3
    assert c["ops_failed_total"] == 1
    assert c["op_store_data_total"] == 2
    assert c["errors_record_locked_total"] == 1
    assert c["rejected_total"] == 1
    assert c["errors_not_admin_total"] == 1
    assert snap["gauges"]["records"] == 1
    assert snap["gauges"]["total_operations"] == 3


def test_prometheus_format() -> None:
    m = StoreMetrics()
    m.inc("ops_total", 2)
    m.set_gauge("admins", 3)
    text = m.format_prometheus()
    assert "# TYPE adminstore_ops_total counter" in text
    assert "adminstore_ops_total 2" in text
    assert "adminstore_admins 3" in text
    assert text.endswith("\n")


def test_log_event_emits_json_and_drops_none(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("adminstore.test")
    with caplog.at_level(logging.INFO, logger="adminstore.test"):
        log_event(logger, "store_op", op="store-data", key=None, success=True)

    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "store_op"
    assert payload["op"] == "store-data"
    assert "key" not in payload


def test_engine_logs_store_ops(engine: AdminStoreEngine, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="adminstore.engine"):
        engine.store_enhanced_data(caller=OWNER, key="k", value=1)

    events = [json.loads(r.getMessage()) for r in caplog.records if r.name == "adminstore.engine"]
    assert events[-1]["event"] == "store_op"
    assert events[-1]["operation_id"] == 0
    assert events[-1]["success"] is True
