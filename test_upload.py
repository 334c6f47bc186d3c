import os
from dataclasses import replace

import pytest

from app.config import get_settings
from app.dependencies import get_video_processor
from app.main import app
from app.utils.errors import TranscodingError


class RecordingProcessor:
    def __init__(self, result=None, error=None):
        self.result = result or []
        self.error = error
        self.calls = []

    def process(self, data, filename):
        self.calls.append((data, filename))
        if self.error:
            raise self.error
        return self.result


def upload(client, headers=None):
    return client.post(
        "/upload",
        files={"video": ("site.mp4", b"fake-video-bytes", "video/mp4")},
        headers=headers or {},
    )


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_upload_returns_ppe_data(client, settings):
    response = upload(client)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [f["frame_index"] for f in body["ppeData"]] == [1, 2, 3]
    person = body["ppeData"][0]["persons"][0]
    assert person["head_cover"]["detected"] is True
    assert person["face_cover"]["detected"] is False
    assert os.listdir(settings.frames_temp_root) == []


def test_missing_upload_is_rejected(client):
    processor = RecordingProcessor()
    app.dependency_overrides[get_video_processor] = lambda: processor

    response = client.post("/upload")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No file uploaded"}
    assert processor.calls == []


def test_empty_upload_is_rejected(client):
    processor = RecordingProcessor()
    app.dependency_overrides[get_video_processor] = lambda: processor

    response = client.post("/upload", files={"video": ("empty.mp4", b"", "video/mp4")})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert processor.calls == []


def test_pipeline_failure_becomes_json_error(client):
    app.dependency_overrides[get_video_processor] = lambda: RecordingProcessor(
        error=TranscodingError("Error extracting frames from video")
    )

    response = upload(client)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Error extracting frames from video"}


def test_unexpected_failure_becomes_generic_error(client):
    app.dependency_overrides[get_video_processor] = lambda: RecordingProcessor(error=RuntimeError("boom"))

    response = upload(client)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Error processing video"}


@pytest.fixture
def auth_client(client, settings):
    app.dependency_overrides[get_settings] = lambda: replace(settings, auth_enabled=True)
    return client


@pytest.fixture
def token(auth_client):
    auth_client.post("/signup", json={"username": "alice", "email": "alice@example.com", "password": "hunter22"})
    return auth_client.post("/login", json={"username": "alice", "password": "hunter22"}).json()["token"]


def test_auth_required_when_enabled(auth_client):
    response = upload(auth_client)

    assert response.status_code == 401
    assert response.json()["success"] is False


def test_invalid_token_rejected(auth_client):
    response = upload(auth_client, headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_authenticated_upload_counts_success(auth_client, token, user_store):
    response = upload(auth_client, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    user_id = str(user_store.find_by_username("alice")["_id"])
    assert user_store.get_upload_counters(user_id) == {"success_count": 1, "failure_count": 0}


def test_authenticated_upload_counts_failure(auth_client, token, user_store):
    app.dependency_overrides[get_video_processor] = lambda: RecordingProcessor(error=TranscodingError())

    response = upload(auth_client, headers={"Authorization": f"Bearer {token}"})
    upload(auth_client, headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 500
    user_id = str(user_store.find_by_username("alice")["_id"])
    assert user_store.get_upload_counters(user_id) == {"success_count": 0, "failure_count": 2}
