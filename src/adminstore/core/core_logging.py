from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict


Json = Dict[str, Any]


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one JSONL log event.

    Fields with a None value are dropped so audit lines stay compact.
    """
    payload: Json = {"ts_ms": int(time.time() * 1000), "event": str(event)}
    payload.update({k: v for k, v in fields.items() if v is not None})
    try:
        line = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        line = " ".join([f"event={event}"] + [f"{k}={fields.get(k)!r}" for k in sorted(fields)])
    logger.log(level, line)
