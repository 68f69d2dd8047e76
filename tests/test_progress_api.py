from fastapi.testclient import TestClient

from main import app


client = TestClient(app)


def test_health():
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json().get("status") in {"ok", "healthy"}


def test_progress_blends_tasks_and_time():
    payload = {
        "action_items": [{"status": "COMPLETED"}] * 6 + [{"status": "PENDING"}] * 4,
        "start_date": "2024-05-01T00:00:00Z",
        "due_date": "2024-05-01T00:00:00Z",
        "now": "2024-06-01T00:00:00Z",
    }
    res = client.post("/api/projects/progress", json=payload)
    assert res.status_code == 200
    body = res.json()
    assert body["progress"] == 72
    assert body["task_ratio"] == 0.6
    assert body["time_ratio"] == 1.0
    assert body["completion_percent"] == 60


def test_completed_project_reports_100():
    res = client.post(
        "/api/projects/progress",
        json={"status": "COMPLETED", "action_items": [{"status": "PENDING"}]},
    )
    assert res.json()["progress"] == 100


def test_stored_progress_used_for_empty_project():
    res = client.post("/api/projects/progress", json={"progress": 50})
    assert res.json()["progress"] == 35


def test_unknown_status_rejected():
    res = client.post("/api/projects/progress", json={"status": "ARCHIVED"})
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "validation_error"


def test_stored_progress_out_of_range_rejected():
    res = client.post("/api/projects/progress", json={"progress": 150})
    assert res.status_code == 422
