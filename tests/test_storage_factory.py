import pytest

import db
from storage import MemStorage, create_storage, resolve_storage_type


def test_resolve_storage_type(monkeypatch):
    monkeypatch.delenv("STORAGE_TYPE", raising=False)
    monkeypatch.delenv("MONGODB_URI", raising=False)
    assert resolve_storage_type() == "memory"

    monkeypatch.setenv("MONGODB_URI", "mongodb://localhost:27017")
    assert resolve_storage_type() == "mongodb"

    monkeypatch.setenv("STORAGE_TYPE", "Memory")
    assert resolve_storage_type() == "memory"


def test_resolve_storage_type_rejects_unknown(monkeypatch):
    monkeypatch.setenv("STORAGE_TYPE", "postgres")
    with pytest.raises(ValueError):
        resolve_storage_type()


@pytest.mark.asyncio
async def test_unreachable_mongodb_falls_back_to_memory(monkeypatch):
    async def _fail():
        raise ConnectionError("connection refused")

    monkeypatch.setenv("STORAGE_TYPE", "mongodb")
    monkeypatch.setattr(db, "ping_database", _fail)

    storage = await create_storage()
    assert isinstance(storage, MemStorage)
    assert storage.storage_type == "memory"
