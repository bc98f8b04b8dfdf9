from __future__ import annotations

from fastapi import APIRouter, Request, Response

from adminstore.core.metrics import metrics_enabled

router = APIRouter()


@router.get("/metrics")
def metrics(request: Request) -> Response:
    """Prometheus-style metrics.

    Disabled by default. Enable with:
      ADMINSTORE_METRICS_ENABLED=1 (or metrics_enabled in the config file)
    """
    eng = getattr(request.app.state, "engine", None)
    enabled = bool(getattr(request.app.state, "metrics_enabled", False)) or metrics_enabled()
    if eng is None or not enabled:
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    return Response(content=eng.metrics.format_prometheus(), media_type="text/plain")
