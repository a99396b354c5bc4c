"""Tests for the upload control API."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from chunkpilot.api.v1.routes_upload import get_upload_controller
from chunkpilot.main import app
from chunkpilot.upload.controller import UploadSessionController

from conftest import CHUNK_SIZE


@pytest.fixture
def api_controller(backend):
    """Install a controller backed by the recording backend."""
    controller = UploadSessionController(backend, chunk_size=CHUNK_SIZE)
    app.dependency_overrides[get_upload_controller] = lambda: controller
    yield controller
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_controller):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def local_file(tmp_path):
    """Create a 10 byte local file."""
    path = tmp_path / "report.pdf"
    path.write_bytes(b"0123456789")
    return path


def test_status_when_idle(client):
    """Test the initial status."""
    response = client.get("/api/v1/uploads/status")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "idle"
    assert data["progress"] == 0
    assert data["log"] == []


def test_select_missing_file(client, tmp_path):
    """Test selecting a file that does not exist."""
    response = client.post("/api/v1/uploads/file", json={"path": str(tmp_path / "nope.bin")})

    assert response.status_code == 404


def test_start_without_file(client):
    """Test starting before a file is selected."""
    response = client.post("/api/v1/uploads/start")

    assert response.status_code == 400
    assert "no file" in response.json()["detail"].lower()


def test_upload_selected_file(client, backend, local_file):
    """Test selecting and uploading a file end to end."""
    response = client.post("/api/v1/uploads/file", json={"path": str(local_file)})
    assert response.status_code == 200
    assert response.json()["file_name"] == "report.pdf"
    assert response.json()["file_size"] == 10

    response = client.post("/api/v1/uploads/start")
    assert response.status_code == 202

    status = client.get("/api/v1/uploads/status").json()
    assert status["state"] == "idle"
    assert status["progress"] == 100
    assert status["log"][-1]["event"] == "completed"
    assert backend.put_calls == [0, 1, 2]

    finished = client.get("/api/v1/uploads/sessions/finished").json()
    assert len(finished) == 1
    session_id = finished[0]["session"]["id"]
    assert finished[0]["session"]["file_name"] == "report.pdf"
    assert "fileName" not in finished[0]["session"]
    assert finished[0]["download_url"] == f"memory://uploads/download/{session_id}"
    assert finished[0]["download_zip_url"] == f"memory://uploads/download/{session_id}/zip"
    assert backend.assembled_bytes(session_id) == b"0123456789"


def test_pause_and_resume_when_idle(client):
    """Test that pause and resume are refused without a transfer."""
    assert client.post("/api/v1/uploads/pause").status_code == 409
    assert client.post("/api/v1/uploads/resume").status_code == 409


def test_failed_upload_is_reported_in_status(client, backend, local_file):
    """Test that a background failure shows up in the status."""
    backend.fail_put_at = {1}
    client.post("/api/v1/uploads/file", json={"path": str(local_file)})

    response = client.post("/api/v1/uploads/start")
    assert response.status_code == 202

    status = client.get("/api/v1/uploads/status").json()
    assert status["state"] == "failed"
    assert "chunk 1 rejected" in status["last_error"]
    assert status["current_chunk_index"] == 1

    backend.fail_put_at = set()
    assert client.post("/api/v1/uploads/resume").status_code == 202
    assert client.get("/api/v1/uploads/status").json()["state"] == "idle"
    assert backend.put_calls == [0, 1, 2]


def test_select_other_file_for_failed_session(client, backend, local_file, tmp_path):
    """Test that a failed session refuses a different file."""
    backend.fail_put_at = {1}
    client.post("/api/v1/uploads/file", json={"path": str(local_file)})
    client.post("/api/v1/uploads/start")
    assert client.get("/api/v1/uploads/status").json()["state"] == "failed"

    other = tmp_path / "other.pdf"
    other.write_bytes(b"abcdefghij")
    response = client.post("/api/v1/uploads/file", json={"path": str(other)})

    assert response.status_code == 409
    assert "report.pdf" in response.json()["detail"]
    assert client.get("/api/v1/uploads/status").json()["file_name"] == "report.pdf"


def test_resume_listed_session_after_reselect(client, backend, local_file):
    """Test resuming an unfinished session that needs its file reselected."""

    async def open_partial_session():
        session_id = await backend.init_session("report.pdf", 10)
        await backend.put_chunk(session_id, 0, b"0123")
        return session_id

    session_id = asyncio.run(open_partial_session())
    backend.reset_calls()

    unfinished = client.get("/api/v1/uploads/sessions/unfinished").json()
    assert [item["session"]["id"] for item in unfinished] == [session_id]

    response = client.post(f"/api/v1/uploads/sessions/{session_id}/resume")
    assert response.status_code == 202

    status = client.get("/api/v1/uploads/status").json()
    assert status["pending_file_name"] == "report.pdf"
    assert status["log"][-1]["event"] == "mismatch"
    assert backend.put_calls == []

    client.post("/api/v1/uploads/file", json={"path": str(local_file)})

    status = client.get("/api/v1/uploads/status").json()
    assert status["state"] == "idle"
    assert status["pending_file_name"] is None
    assert backend.put_calls == [1, 2]
    assert backend.oracle_queries == [session_id]
    assert client.get("/api/v1/uploads/sessions/unfinished").json() == []


def test_resume_unknown_session(client):
    """Test resuming a session the backend does not list."""
    response = client.post("/api/v1/uploads/sessions/missing/resume")

    assert response.status_code == 404


def test_listing_backend_failure(client, backend, monkeypatch):
    """Test that listing failures surface as 502."""
    from chunkpilot.upload.exceptions import BackendError

    async def broken():
        raise BackendError("store down")

    monkeypatch.setattr(backend, "list_finished_sessions", broken)

    response = client.get("/api/v1/uploads/sessions/finished")

    assert response.status_code == 502


def test_reset(client, local_file):
    """Test that reset clears the selection."""
    client.post("/api/v1/uploads/file", json={"path": str(local_file)})

    response = client.post("/api/v1/uploads/reset")

    assert response.status_code == 200
    assert response.json()["file_name"] is None
