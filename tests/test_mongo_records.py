"""MongoDB 文件轉換與錯誤處理 (不需要真的連線)"""
import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from storage import StorageError
from storage.mongo import MongoStorage, lookup_filters, ref_query, to_record, to_reference

OID = ObjectId("507f1f77bcf86cd799439011")


def test_to_record_uses_object_id_string():
    record = to_record({"_id": OID, "username": "alice", "user_id": ObjectId("507f191e810c19729de860ea")})

    assert record["id"] == str(OID)
    assert "_id" not in record
    assert record["user_id"] == "507f191e810c19729de860ea"


def test_to_record_keeps_legacy_numeric_id():
    record = to_record({"_id": OID, "id": 12, "job_id": 3})

    assert record["id"] == 12
    assert record["job_id"] == 3


def test_to_record_none():
    assert to_record(None) is None


def test_to_reference():
    assert to_reference(5) == 5
    assert to_reference("5") == 5
    assert to_reference(OID) == str(OID)
    assert to_reference(str(OID)) == str(OID)
    assert to_reference(None) is None


def test_lookup_filters_order():
    assert lookup_filters(7) == [{"id": 7}]
    assert lookup_filters(str(OID)) == [{"_id": OID}]
    assert lookup_filters("junk") == []


def test_ref_query_matches_all_forms():
    assert ref_query(str(OID)) == {"$in": [str(OID), OID]}
    assert ref_query(4) == {"$in": ["4", 4]}


class _BrokenCollection:
    async def find_one(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    async def count_documents(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")


class _BrokenDatabase:
    def __getitem__(self, name):
        return _BrokenCollection()

    def __getattr__(self, name):
        return _BrokenCollection()


@pytest.mark.asyncio
async def test_driver_errors_become_storage_errors():
    storage = MongoStorage(_BrokenDatabase())

    with pytest.raises(StorageError):
        await storage.get_user(1)
    with pytest.raises(StorageError):
        await storage.get_user_count()
