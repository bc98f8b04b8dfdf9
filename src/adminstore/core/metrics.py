from __future__ import annotations

import os
import threading
import time
from typing import Dict, List


def metrics_enabled() -> bool:
    v = (os.environ.get("ADMINSTORE_METRICS_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def _metric_name(raw: str) -> str:
    out = []
    for ch in str(raw or "").strip().lower():
        out.append(ch if (ch.isalnum() or ch == "_") else "_")
    return "".join(out)


class StoreMetrics:
    """In-process counters and gauges for one engine.

    Integer-only; exported as Prometheus text by format_prometheus().
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, int] = {}
        self._started_ms = int(time.time() * 1000)

    def inc(self, name: str, value: int = 1) -> None:
        n = _metric_name(name)
        if not n:
            return
        with self._lock:
            self._counters[n] = self._counters.get(n, 0) + int(value)

    def set_gauge(self, name: str, value: int) -> None:
        n = _metric_name(name)
        if not n:
            return
        with self._lock:
            self._gauges[n] = int(value)

    def record_op(self, op_type: str, *, success: bool, error_code: str = "") -> None:
        self.inc("ops_total")
        self.inc(f"op_{op_type}_total")
        if not success:
            self.inc("ops_failed_total")
            if error_code:
                self.inc(f"errors_{error_code}_total")

    def record_rejection(self, op_type: str, error_code: str) -> None:
        """A call rejected before reaching the audit log."""
        self.inc("rejected_total")
        self.inc(f"errors_{error_code}_total")
        self.inc(f"rejected_{op_type}_total")

    def snapshot(self) -> dict:
        now = int(time.time() * 1000)
        with self._lock:
            return {
                "ts_ms": now,
                "started_ms": self._started_ms,
                "uptime_ms": now - self._started_ms,
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
            }

    def format_prometheus(self, prefix: str = "adminstore_") -> str:
        pre = _metric_name(prefix) or "adminstore_"
        snap = self.snapshot()
        lines: List[str] = [f"# TYPE {pre}uptime_ms gauge", f"{pre}uptime_ms {snap['uptime_ms']}"]

        for name, v in sorted(snap["counters"].items()):
            lines.append(f"# TYPE {pre}{name} counter")
            lines.append(f"{pre}{name} {v}")

        for name, v in sorted(snap["gauges"].items()):
            lines.append(f"# TYPE {pre}{name} gauge")
            lines.append(f"{pre}{name} {v}")

        return "\n".join(lines) + "\n"
