from typing import Optional

from fastapi import APIRouter

from serialcan import metrics

router = APIRouter()


@router.get("/api/metrics")
def get_metrics(prefix: Optional[str] = None):
    """Return the event counters, optionally only those starting with `prefix`."""
    return metrics.get_all(prefix=prefix)


@router.post("/api/metrics/reset")
def reset_metrics():
    metrics.reset_all()
    return {"status": "ok"}
