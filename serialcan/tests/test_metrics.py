from fastapi import FastAPI
from fastapi.testclient import TestClient

from serialcan import metrics
from serialcan.api.metrics import router


def setup_function():
    metrics.reset_all()


def test_counters():
    metrics.inc("lawicel_send")
    metrics.inc("lawicel_send", 2)
    metrics.inc("sim_write")
    assert metrics.get("lawicel_send") == 3
    assert metrics.get("lawicel_recv") == 0
    assert metrics.get_all(prefix="lawicel_") == {"lawicel_send": 3}
    snapshot = metrics.get_all()
    snapshot["lawicel_send"] = 0
    assert metrics.get("lawicel_send") == 3
    metrics.reset_all()
    assert metrics.get_all() == {}


def test_metrics_router():
    app = FastAPI()
    app.include_router(router)
    client = TestClient(app)
    metrics.inc("lawicel_recv")
    metrics.inc("sim_read", 4)
    r = client.get("/api/metrics", params={"prefix": "sim_"})
    assert r.status_code == 200
    assert r.json() == {"sim_read": 4}
    assert client.post("/api/metrics/reset").json() == {"status": "ok"}
    assert client.get("/api/metrics").json() == {}
