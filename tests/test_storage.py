"""Tests for local blob storage."""

import asyncio

import pytest

from chatrelay.core.storage import StorageError, random_key


def test_save_returns_public_url(storage):
    url = asyncio.run(storage.save("generated-images/1/a.png", b"png"))
    assert url == "http://testserver/public/generated-images/1/a.png"
    assert (storage.root / "generated-images/1/a.png").read_bytes() == b"png"
    assert storage.key_for(url) == "generated-images/1/a.png"


def test_key_for_foreign_url(storage):
    assert storage.key_for("https://elsewhere.example/a.png") is None


def test_delete(storage):
    asyncio.run(storage.save("uploads/1/x.txt", b"x"))
    asyncio.run(storage.delete("uploads/1/x.txt"))
    assert not (storage.root / "uploads/1/x.txt").exists()
    # deleting again is fine
    asyncio.run(storage.delete("uploads/1/x.txt"))


def test_keys_cannot_escape_root(storage):
    with pytest.raises(StorageError):
        asyncio.run(storage.save("../outside.txt", b"x"))


def test_random_key_is_unique():
    first = random_key("uploads/3", ".pdf")
    second = random_key("uploads/3", "pdf")
    assert first != second
    assert first.startswith("uploads/3/") and first.endswith(".pdf")
    assert random_key("uploads/3", "").count(".") == 0
