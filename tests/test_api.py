# tests/test_api.py

import time

import pytest
from fastapi.testclient import TestClient

from auth import create_access_token
from main import create_app
from repository import VideoStore

PAYLOAD = {
    "template_id": "template-1",
    "product_data": {
        "name": "Desk Lamp",
        "price": 39.9,
        "images": ["https://example.com/lamp.png"],
    },
    "settings": {"music": "calm"},
}


def _headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


@pytest.fixture
def client(session_factory):
    app = create_app(session_factory=session_factory, interval=0.01)
    with TestClient(app) as test_client:
        yield test_client


def _wait_until_finished(client, job_id, user_id, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        body = client.get(f"/api/generate/status/{job_id}", headers=_headers(user_id)).json()
        if body["status"] != "processing":
            return body
        time.sleep(0.01)
    return body


def test_root(client):
    assert client.get("/").status_code == 200


def test_generation_requires_a_token(client):
    assert client.post("/api/generate/video", json=PAYLOAD).status_code == 401
    bad = {"Authorization": "Bearer not-a-jwt"}
    assert client.get("/api/generate/templates", headers=bad).status_code == 401


def test_generate_video_returns_202_and_job_id(client):
    response = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice"))

    assert response.status_code == 202
    body = response.json()
    assert body["status"] == "processing"
    assert body["job_id"]


def test_job_can_be_polled_to_completion(client):
    job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]

    body = _wait_until_finished(client, job_id, "alice")

    assert body["status"] == "completed"
    assert body["progress"] == 100
    assert body["error"] is None

    video = client.get(f"/api/videos/{body['video_id']}", headers=_headers("alice")).json()
    assert video["status"] == "completed"
    assert video["title"] == "Video Desk Lamp"
    assert video["url"].endswith(".mp4")


def test_foreign_and_unknown_jobs_look_the_same(client):
    job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]

    foreign = client.get(f"/api/generate/status/{job_id}", headers=_headers("mallory"))
    unknown = client.get("/api/generate/status/unknown-job", headers=_headers("mallory"))

    assert foreign.status_code == unknown.status_code == 404
    assert foreign.json() == unknown.json() == {"detail": "Job not found."}


@pytest.mark.parametrize(
    "change",
    [
        {"template_id": ""},
        {"product_data": {"name": "", "price": 1, "images": ["https://example.com/a.png"]}},
        {"product_data": {"name": "Lamp", "price": 0, "images": ["https://example.com/a.png"]}},
        {"product_data": {"name": "Lamp", "price": 5, "images": []}},
    ],
)
def test_invalid_payloads_are_rejected(client, change):
    response = client.post("/api/generate/video", json={**PAYLOAD, **change}, headers=_headers("alice"))
    assert response.status_code == 422


def test_unknown_template_is_a_bad_request(client):
    payload = {**PAYLOAD, "template_id": "template-404"}
    response = client.post("/api/generate/video", json=payload, headers=_headers("alice"))
    assert response.status_code == 400


def test_templates_endpoint(client):
    response = client.get("/api/generate/templates", headers=_headers("alice"))

    assert response.status_code == 200
    assert {t["id"] for t in response.json()} == {"template-1", "template-2"}


def test_cancel_endpoint(session_factory):
    app = create_app(session_factory=session_factory, interval=5.0)
    with TestClient(app) as client:
        job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]

        assert client.post(f"/api/generate/status/{job_id}/cancel", headers=_headers("bob")).status_code == 404
        assert client.post(f"/api/generate/status/{job_id}/cancel", headers=_headers("alice")).status_code == 200

        body = _wait_until_finished(client, job_id, "alice")

    assert body["status"] == "failed"
    assert body["error"] == "Generation cancelled"


def test_videos_are_listed_per_user(client):
    client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice"))

    mine = client.get("/api/videos/", headers=_headers("alice")).json()
    theirs = client.get("/api/videos/", headers=_headers("bob")).json()

    assert len(mine["videos"]) == 1
    assert mine["videos"][0]["template_id"] == "template-1"
    assert mine["pagination"] == {"page": 1, "limit": 10, "total": 1, "pages": 1}
    assert theirs["videos"] == []
    assert theirs["pagination"]["total"] == 0


def test_video_list_is_paginated_and_searchable(client, session_factory):
    store = VideoStore(session_factory)
    for i in range(51):
        store.create_record({"title": f"Video Lamp {i}", "user_id": "alice", "status": "completed"})
    store.create_record({"title": "Video Blue Mug", "user_id": "alice", "status": "completed"})

    last = client.get("/api/videos/?page=2&limit=50", headers=_headers("alice")).json()
    found = client.get("/api/videos/?search=blue", headers=_headers("alice")).json()

    assert len(last["videos"]) == 2
    assert last["pagination"] == {"page": 2, "limit": 50, "total": 52, "pages": 2}
    assert [v["title"] for v in found["videos"]] == ["Video Blue Mug"]
    assert client.get("/api/videos/?limit=0", headers=_headers("alice")).status_code == 422
    assert client.get("/api/videos/?page=0", headers=_headers("alice")).status_code == 422


def test_delete_video_removes_record_and_job(session_factory):
    app = create_app(session_factory=session_factory, interval=5.0)
    with TestClient(app) as client:
        job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]
        video_id = client.get(f"/api/generate/status/{job_id}", headers=_headers("alice")).json()["video_id"]

        foreign = client.delete(f"/api/videos/{video_id}", headers=_headers("bob"))
        own = client.delete(f"/api/videos/{video_id}", headers=_headers("alice"))

        assert foreign.status_code == 404
        assert own.status_code == 200
        assert own.json() == {"message": "Video deleted."}
        assert client.get(f"/api/videos/{video_id}", headers=_headers("alice")).status_code == 404
        assert client.get(f"/api/generate/status/{job_id}", headers=_headers("alice")).status_code == 404
        assert client.delete(f"/api/videos/{video_id}", headers=_headers("alice")).status_code == 404


def test_cancelling_a_finished_job_is_a_conflict(client):
    job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]
    assert _wait_until_finished(client, job_id, "alice")["status"] == "completed"

    response = client.post(f"/api/generate/status/{job_id}/cancel", headers=_headers("alice"))

    assert response.status_code == 409
    assert response.json() == {"detail": "Job can no longer be cancelled."}


def test_finished_jobs_are_swept_away(session_factory):
    app = create_app(session_factory=session_factory, interval=0.01, retention_seconds=0, sweep_seconds=0.01)
    registry = app.state.generation_service.registry
    with TestClient(app) as client:
        job_id = client.post("/api/generate/video", json=PAYLOAD, headers=_headers("alice")).json()["job_id"]

        deadline = time.monotonic() + 5.0
        while job_id in registry and time.monotonic() < deadline:
            time.sleep(0.01)

        assert job_id not in registry
        assert client.get(f"/api/generate/status/{job_id}", headers=_headers("alice")).status_code == 404
