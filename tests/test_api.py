"""Tests for the HTTP surface."""

import asyncio
import io
import zipfile

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from transform_pack.main import create_app
from transform_pack.core import ArchiveBuilder
from transform_pack.utils.errors import CredentialError
from transform_pack.utils.images import validate_image_format

from tests.conftest import FakeBackend


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api_keys():
    return []


@pytest.fixture
def client(test_config, backend, api_keys):
    def factory(api_key):
        api_keys.append(api_key)
        return backend
    
    app = create_app(config=test_config, backend_factory=factory)
    with TestClient(app) as test_client:
        yield test_client


def upload(png_bytes, count=1):
    return [("files", (f"ref-{i}.png", png_bytes, "image/png")) for i in range(count)]


def submit(client, png_bytes, count=1, key="secret"):
    headers = {"X-API-Key": key} if key is not None else {}
    return client.post("/jobs", files=upload(png_bytes, count), headers=headers)


def finish(client, job_id):
    response = client.get(f"/jobs/{job_id}", params={"wait": 5})
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health/").json()["status"] == "healthy"
    ready = client.get("/health/ready").json()
    assert ready["ready"] is True
    assert ready["prompts"] == 15


def test_full_run_and_archive(client, png_bytes, backend, api_keys):
    response = submit(client, png_bytes, count=2)
    assert response.status_code == 202
    job_id = response.json()["job_id"]
    
    job = finish(client, job_id)
    
    assert job["status"] == "completed"
    assert job["completed"] == 15
    assert job["total"] == 15
    assert job["error"] is None
    assert len(job["images"]) == 15
    assert api_keys == ["secret"]
    assert backend.entered and backend.exited
    
    archive = client.get(f"/jobs/{job_id}/archive")
    assert archive.status_code == 200
    assert archive.headers["content-type"] == "application/zip"
    assert 'filename="test-pack.zip"' in archive.headers["content-disposition"]
    with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
        names = zf.namelist()
    assert len(names) == 15
    assert "Muscular/Muscular-5.png" in names


def test_single_image_download(client, png_bytes):
    job_id = submit(client, png_bytes).json()["job_id"]
    job = finish(client, job_id)
    
    first = job["images"][0]
    response = client.get(f"/jobs/{job_id}/images/0")
    
    assert response.status_code == 200
    assert response.headers["content-type"] == first["mime_type"]
    assert response.content == f"image:{first['source_prompt']}".encode()
    assert client.get(f"/jobs/{job_id}/images/99").status_code == 404


def test_missing_api_key(client, png_bytes):
    assert submit(client, png_bytes, key=None).status_code == 401


def test_too_many_reference_images(client, png_bytes):
    assert submit(client, png_bytes, count=7).status_code == 400


def mpo_bytes() -> bytes:
    """Two-frame multi-picture JPEG, as written by many phone cameras."""
    frames = [Image.new("RGB", (4, 4), color) for color in ((10, 20, 30), (40, 50, 60))]
    buffer = io.BytesIO()
    frames[0].save(buffer, format="MPO", save_all=True, append_images=frames[1:])
    return buffer.getvalue()


def test_phone_camera_jpeg_is_accepted(client):
    data = mpo_bytes()
    with Image.open(io.BytesIO(data)) as image:
        assert image.format == "MPO"
    assert validate_image_format(data) == "image/jpeg"
    
    response = client.post(
        "/jobs",
        files=[("files", ("IMG_0001.jpg", data, "image/jpeg"))],
        headers={"X-API-Key": "secret"},
    )
    
    assert response.status_code == 202
    assert finish(client, response.json()["job_id"])["status"] == "completed"


def test_invalid_reference_image(client):
    response = client.post(
        "/jobs",
        files=[("files", ("notes.txt", b"not an image", "text/plain"))],
        headers={"X-API-Key": "secret"},
    )
    
    assert response.status_code == 400
    assert "notes.txt" in response.json()["detail"]


def test_unknown_job(client):
    assert client.get("/jobs/does-not-exist").status_code == 404
    assert client.get("/jobs/does-not-exist/archive").status_code == 404


@pytest.mark.parametrize("backend", [FakeBackend(default=CredentialError("gemini"))])
def test_invalid_credential(client, png_bytes, backend):
    job_id = submit(client, png_bytes).json()["job_id"]
    
    job = finish(client, job_id)
    
    assert job["status"] == "credential_invalid"
    assert job["images"] == []
    assert len(backend.calls) == 1
    assert client.get(f"/jobs/{job_id}/archive").status_code == 409


@pytest.mark.parametrize("backend", [FakeBackend(default=None)])
def test_nothing_produced(client, png_bytes, backend):
    job_id = submit(client, png_bytes).json()["job_id"]
    
    job = finish(client, job_id)
    
    assert job["status"] == "completed"
    assert job["completed"] == 0
    assert job["error"]
    assert client.get(f"/jobs/{job_id}/archive").status_code == 409


def test_archive_is_built_off_the_event_loop(client, png_bytes, monkeypatch):
    loop_states = []
    original_build = ArchiveBuilder.build
    
    def recording_build(self, results):
        try:
            asyncio.get_running_loop()
            loop_states.append("event-loop")
        except RuntimeError:
            loop_states.append("worker-thread")
        return original_build(self, results)
    
    monkeypatch.setattr(ArchiveBuilder, "build", recording_build)
    job_id = submit(client, png_bytes).json()["job_id"]
    finish(client, job_id)
    
    response = client.get(f"/jobs/{job_id}/archive")
    
    assert response.status_code == 200
    assert loop_states == ["worker-thread"]
