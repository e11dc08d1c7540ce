"""Tests for uploads and file status."""

import json

from sqlmodel import Session, select

from tests.conftest import AUTH, OTHER_AUTH, seed_file, test_engine
from chatrelay.models.file import UploadedFile
from chatrelay.models.job import JobRecord


def _jobs():
    with Session(test_engine) as session:
        return session.exec(select(JobRecord)).all()


def test_upload_image_is_ready_immediately(client, storage, provider):
    response = client.post(
        "/api/files/",
        files={"image": ("cat.png", b"\x89PNGdata", "image/png")},
        headers=AUTH,
    )
    assert response.status_code == 200
    data = response.json()["file"]
    assert data["type"] == "image"
    assert data["is_ready"] is True
    assert data["expires_at"] is None
    assert data["size"] == len(b"\x89PNGdata")
    assert data["url"].startswith("http://testserver/public/uploads/1/")
    assert data["url"].endswith(".png")

    assert (storage.root / storage.key_for(data["url"])).read_bytes() == b"\x89PNGdata"
    assert provider.uploaded == []
    assert _jobs() == []


def test_upload_document_starts_readiness_tracker(client, provider):
    response = client.post(
        "/api/files/",
        files={"file": ("notes.pdf", b"%PDF-1.4", "application/pdf")},
        headers=AUTH,
    )
    assert response.status_code == 200
    data = response.json()["file"]
    assert data["type"] == "file"
    assert data["is_ready"] is False
    assert data["expires_at"] is not None

    assert provider.uploaded == [("notes.pdf", b"%PDF-1.4")]
    with Session(test_engine) as session:
        record = session.get(UploadedFile, data["id"])
        assert record.vector_store_id == "vs_1"

    jobs = _jobs()
    assert len(jobs) == 1
    assert jobs[0].name == "activate_file"
    assert json.loads(jobs[0].payload) == {"vector_store_id": "vs_1", "file_id": data["id"], "polls": 0}


def test_upload_without_file_is_rejected(client):
    response = client.post("/api/files/", headers=AUTH)
    assert response.status_code == 422


def test_file_status(client):
    file_id = seed_file(type="file", vector_store_id="vs_9")
    response = client.get(f"/api/files/{file_id}/status", headers=AUTH)
    assert response.status_code == 200
    assert response.json() == {"is_ready": False}


def test_file_status_of_other_user_is_forbidden(client):
    file_id = seed_file()
    assert client.get(f"/api/files/{file_id}/status", headers=OTHER_AUTH).status_code == 403


def test_file_status_not_found(client):
    assert client.get("/api/files/999/status", headers=AUTH).status_code == 404
