# storage/mongo.py
import functools
import logging
from datetime import datetime, timezone

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from storage.base import (
    Storage,
    StorageError,
    build_profile,
    normalize_username,
    split_profile_fields,
)
from storage.ids import id_variants, is_object_id, to_int_id

logger = logging.getLogger(__name__)

# 依角色對應的 profile 集合
PROFILE_COLLECTIONS = {
    "freelancer": "freelancer_profiles",
    "employer": "employer_profiles",
}

# 會被當成外鍵 (參照其他文件) 的欄位
REFERENCE_FIELDS = ("user_id", "job_id", "service_id", "buyer_id", "seller_id", "order_id")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def to_record(doc: dict | None) -> dict | None:
    """
    MongoDB 文件 -> API 使用的 dict
    - 有舊的數字 id 就沿用，否則用 _id 的字串
    - 移除 _id，外鍵裡的 ObjectId 轉成字串
    """
    if doc is None:
        return None
    record = dict(doc)
    object_id = record.pop("_id", None)
    if record.get("id") is None:
        record["id"] = str(object_id) if object_id is not None else None
    for field in REFERENCE_FIELDS:
        if isinstance(record.get(field), ObjectId):
            record[field] = str(record[field])
    return record


def to_reference(value):
    """寫入外鍵時統一格式：數字維持 int，其餘存字串"""
    if value is None:
        return None
    numeric = to_int_id(value)
    if numeric is not None and not is_object_id(value):
        return numeric
    return str(value)


def lookup_filters(record_id) -> list[dict]:
    """
    依 ID 型態產生查詢條件 (依序嘗試)：
    1. 數字 -> 舊資料的 id 欄位
    2. ObjectId -> 文件本身的 _id
    """
    filters = []
    numeric = to_int_id(record_id)
    if numeric is not None:
        filters.append({"id": numeric})
    if is_object_id(record_id):
        filters.append({"_id": ObjectId(str(record_id))})
    return filters


def ref_query(value) -> dict:
    return {"$in": id_variants(value)}


def translate_errors(func):
    """把 pymongo 的錯誤轉成 StorageError，並記錄 log"""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error("MongoDB error in %s: %s", func.__name__, e)
            raise StorageError(f"{func.__name__} failed: {e}") from e

    return wrapper


class MongoStorage(Storage):
    """
    MongoDB 儲存 (透過 motor 非同步驅動)。
    同時支援兩種 ID：新文件用 ObjectId，舊資料匯入時保留的數字 id。
    """

    storage_type = "mongodb"

    def __init__(self, database: AsyncIOMotorDatabase):
        self.db = database

    # --- 內部工具 ---
    async def _find_raw(self, collection: str, record_id) -> dict | None:
        for query in lookup_filters(record_id):
            doc = await self.db[collection].find_one(query)
            if doc is not None:
                return doc
        return None

    async def _find_one(self, collection: str, record_id) -> dict | None:
        return to_record(await self._find_raw(collection, record_id))

    async def _find_many(self, collection: str, query: dict | None = None) -> list[dict]:
        cursor = self.db[collection].find(query or {}).sort("created_at", -1)
        return [to_record(doc) async for doc in cursor]

    async def _insert(self, collection: str, data: dict) -> dict:
        doc = {**data, "created_at": _now()}
        result = await self.db[collection].insert_one(doc)
        doc["_id"] = result.inserted_id
        return to_record(doc)

    async def _update(self, collection: str, record_id, data: dict) -> dict | None:
        existing = await self._find_raw(collection, record_id)
        if existing is None:
            return None
        data = {k: v for k, v in data.items() if k not in ("id", "_id", "created_at")}
        if not data:
            return to_record(existing)
        updated = await self.db[collection].find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": data},
            return_document=ReturnDocument.AFTER,
        )
        return to_record(updated)

    # --- 使用者 ---
    @translate_errors
    async def get_user(self, user_id) -> dict | None:
        user = await self._find_one("users", user_id)
        if user is None:
            logger.debug("User not found with id %s", user_id)
        return user

    @translate_errors
    async def get_user_by_username(self, username: str) -> dict | None:
        # 同時比對正規化後與原始輸入 (舊資料可能沒轉小寫)
        doc = await self.db.users.find_one({
            "$or": [
                {"username": normalize_username(username)},
                {"username": username.strip()},
            ]
        })
        return to_record(doc)

    @translate_errors
    async def get_user_by_email(self, email: str) -> dict | None:
        return to_record(await self.db.users.find_one({"email": email}))

    @translate_errors
    async def create_user(self, data: dict) -> dict:
        role = data.get("role") or "freelancer"
        user_data, profile_data = split_profile_fields(role, data)
        user = await self._insert("users", {
            **user_data,
            "username": normalize_username(data["username"]),
            "role": role,
            "status": "active",
            "blocked_reason": None,
            "bio": data.get("bio") or None,
            "profile_picture": data.get("profile_picture") or None,
            "skills": data.get("skills") or [],
            "location": data.get("location") or None,
        })

        profile = build_profile(role, profile_data)
        if profile is not None:
            await self._insert(PROFILE_COLLECTIONS[role], {**profile, "user_id": to_reference(user["id"])})

        logger.info("Created user %s (id=%s, role=%s)", user["username"], user["id"], role)
        return user

    @translate_errors
    async def update_user(self, user_id, data: dict) -> dict | None:
        existing = await self._find_raw("users", user_id)
        if existing is None:
            logger.info("Could not find user with id %s to update", user_id)
            return None

        role = existing.get("role")
        user_data, profile_data = split_profile_fields(role, data)
        if "username" in user_data:
            user_data["username"] = normalize_username(user_data["username"])
        updated = await self._update("users", existing["_id"], user_data)

        if profile_data and role in PROFILE_COLLECTIONS:
            # 舊資料可能沒有 profile：有就更新，沒有就補建一筆
            collection = self.db[PROFILE_COLLECTIONS[role]]
            profile = await collection.find_one({"user_id": ref_query(updated["id"])})
            if profile is not None:
                await collection.update_one({"_id": profile["_id"]}, {"$set": profile_data})
            else:
                await self._insert(PROFILE_COLLECTIONS[role], {**profile_data, "user_id": to_reference(updated["id"])})
        return updated

    @translate_errors
    async def delete_user(self, user_id) -> None:
        existing = await self._find_raw("users", user_id)
        if existing is None:
            logger.info("User not found with id %s for deletion", user_id)
            return

        record_id = to_record(existing)["id"]
        await self.db.users.delete_one({"_id": existing["_id"]})

        # 連帶刪除：角色檔案、服務、工作、應徵紀錄
        owned = {"user_id": ref_query(record_id)}
        for collection in (*PROFILE_COLLECTIONS.values(), "services", "jobs", "applications"):
            await self.db[collection].delete_many(owned)

        logger.info("Deleted user with id %s and related records", record_id)

    @translate_errors
    async def get_all_users(self) -> list[dict]:
        return await self._find_many("users")

    @translate_errors
    async def get_role_profile(self, user_id) -> dict | None:
        user = await self._find_one("users", user_id)
        if user is None or user.get("role") not in PROFILE_COLLECTIONS:
            return None
        doc = await self.db[PROFILE_COLLECTIONS[user["role"]]].find_one({"user_id": ref_query(user["id"])})
        return to_record(doc)

    # --- 後台統計 ---
    @translate_errors
    async def get_user_count(self) -> int:
        return await self.db.users.count_documents({})

    @translate_errors
    async def get_service_count(self) -> int:
        return await self.db.services.count_documents({})

    @translate_errors
    async def get_job_count(self) -> int:
        return await self.db.jobs.count_documents({})

    @translate_errors
    async def get_application_count(self) -> int:
        return await self.db.applications.count_documents({})

    @translate_errors
    async def get_order_count(self) -> int:
        return await self.db.orders.count_documents({})

    @translate_errors
    async def get_user_count_by_role(self, role: str) -> int:
        return await self.db.users.count_documents({"role": role})

    # --- 服務 ---
    @translate_errors
    async def get_service(self, service_id) -> dict | None:
        return await self._find_one("services", service_id)

    @translate_errors
    async def get_services(self, filters: dict | None = None) -> list[dict]:
        return await self._find_many("services", filters)

    @translate_errors
    async def get_user_services(self, user_id) -> list[dict]:
        return await self._find_many("services", {"user_id": ref_query(user_id)})

    @translate_errors
    async def create_service(self, user_id, data: dict) -> dict:
        return await self._insert("services", {
            **data,
            "user_id": to_reference(user_id),
            "status": data.get("status") or "active",
            "image": data.get("image") or None,
            "delivery_time": data.get("delivery_time") or None,
        })

    @translate_errors
    async def update_service(self, service_id, data: dict) -> dict | None:
        return await self._update("services", service_id, data)

    # --- 工作 ---
    @translate_errors
    async def get_job(self, job_id) -> dict | None:
        return await self._find_one("jobs", job_id)

    @translate_errors
    async def get_jobs(self, filters: dict | None = None) -> list[dict]:
        return await self._find_many("jobs", filters)

    @translate_errors
    async def get_user_jobs(self, user_id) -> list[dict]:
        return await self._find_many("jobs", {"user_id": ref_query(user_id)})

    @translate_errors
    async def create_job(self, user_id, data: dict) -> dict:
        return await self._insert("jobs", {
            **data,
            "user_id": to_reference(user_id),
            "status": data.get("status") or "open",
            "image": data.get("image") or None,
            "location": data.get("location") or None,
        })

    @translate_errors
    async def update_job(self, job_id, data: dict) -> dict | None:
        return await self._update("jobs", job_id, data)

    # --- 應徵 ---
    @translate_errors
    async def get_application(self, application_id) -> dict | None:
        return await self._find_one("applications", application_id)

    @translate_errors
    async def get_applications_for_job(self, job_id) -> list[dict]:
        if to_int_id(job_id) == 0:
            return await self._find_many("applications")
        return await self._find_many("applications", {"job_id": ref_query(job_id)})

    @translate_errors
    async def get_user_applications(self, user_id) -> list[dict]:
        return await self._find_many("applications", {"user_id": ref_query(user_id)})

    @translate_errors
    async def create_application(self, user_id, data: dict) -> dict:
        return await self._insert("applications", {
            **data,
            "user_id": to_reference(user_id),
            "job_id": to_reference(data.get("job_id")),
            "status": "pending",
            "resume_file": data.get("resume_file") or None,
        })

    @translate_errors
    async def update_application_status(self, application_id, status: str) -> dict | None:
        return await self._update("applications", application_id, {"status": status})

    # --- 訂單 ---
    @translate_errors
    async def get_order(self, order_id) -> dict | None:
        return await self._find_one("orders", order_id)

    @translate_errors
    async def get_orders_for_service(self, service_id) -> list[dict]:
        return await self._find_many("orders", {"service_id": ref_query(service_id)})

    @translate_errors
    async def get_user_orders(self, user_id) -> list[dict]:
        variants = ref_query(user_id)
        return await self._find_many("orders", {"$or": [{"buyer_id": variants}, {"seller_id": variants}]})

    @translate_errors
    async def create_order(self, data: dict) -> dict:
        order = await self._insert("orders", {
            **{k: v for k, v in data.items() if k != "payment_details"},
            "service_id": to_reference(data.get("service_id")),
            "buyer_id": to_reference(data.get("buyer_id")),
            "seller_id": to_reference(data.get("seller_id")),
            "payment_method": data.get("payment_method") or "card",
            "status": data.get("status") or "pending",
        })

        details = data.get("payment_details")
        if details:
            payment = await self._insert("payments", {
                "order_id": to_reference(order["id"]),
                "card_name": details.get("card_name"),
                "card_number_last4": details.get("card_number_last4"),
                "expiry_date": details.get("expiry_date"),
                "payment_method": order["payment_method"],
                "amount": order.get("total_price"),
                "currency": details.get("currency") or "DNT",
                "status": "completed",
            })
            logger.info("Payment record %s created for order %s", payment["id"], order["id"])
        return order

    @translate_errors
    async def get_payments_for_order(self, order_id) -> list[dict]:
        return await self._find_many("payments", {"order_id": ref_query(order_id)})

    # --- 評價 ---
    @translate_errors
    async def get_reviews_for_service(self, service_id) -> list[dict]:
        return await self._find_many("reviews", {"service_id": ref_query(service_id)})

    @translate_errors
    async def create_review(self, data: dict) -> dict:
        return await self._insert("reviews", {
            **data,
            "service_id": to_reference(data.get("service_id")),
            "user_id": to_reference(data.get("user_id")),
            "comment": data.get("comment") or None,
        })
