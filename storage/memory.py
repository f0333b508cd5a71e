# storage/memory.py
import itertools
import logging
from datetime import datetime, timezone

from storage.base import (
    Storage,
    build_profile,
    normalize_username,
    split_profile_fields,
)
from storage.ids import to_int_id

logger = logging.getLogger(__name__)

COLLECTIONS = ("users", "profiles", "services", "jobs", "applications", "orders", "payments", "reviews")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ref(value):
    """外鍵：能轉數字就轉數字，否則原樣保留"""
    numeric = to_int_id(value)
    return numeric if numeric is not None else value


def _newest_first(records) -> list[dict]:
    return sorted(records, key=lambda r: (r["created_at"], r["id"]), reverse=True)


class MemStorage(Storage):
    """
    記憶體儲存：每個集合是一個 {數字 ID: dict} 的 dict。
    適合開發與測試，伺服器重啟後資料就會消失。
    只認得數字 ID，MongoDB 的 ObjectId 一律視為找不到。
    """

    storage_type = "memory"

    def __init__(self):
        self._tables: dict[str, dict[int, dict]] = {name: {} for name in COLLECTIONS}
        # 每個集合各自的自動遞增計數器 (從 1 開始)
        self._counters = {name: itertools.count(1) for name in COLLECTIONS}

    # --- 內部工具 ---
    def _insert(self, table: str, record: dict) -> dict:
        record_id = next(self._counters[table])
        record = {**record, "id": record_id, "created_at": _now()}
        self._tables[table][record_id] = record
        return dict(record)

    def _get(self, table: str, record_id) -> dict | None:
        numeric = to_int_id(record_id)
        if numeric is None:
            return None
        record = self._tables[table].get(numeric)
        return dict(record) if record else None

    def _update(self, table: str, record_id, data: dict) -> dict | None:
        numeric = to_int_id(record_id)
        if numeric is None or numeric not in self._tables[table]:
            return None
        data = {k: v for k, v in data.items() if k not in ("id", "created_at")}
        updated = {**self._tables[table][numeric], **data}
        self._tables[table][numeric] = updated
        return dict(updated)

    def _filter(self, table: str, **conditions) -> list[dict]:
        rows = [
            r for r in self._tables[table].values()
            if all(r.get(k) == v for k, v in conditions.items())
        ]
        return [dict(r) for r in _newest_first(rows)]

    # --- 使用者 ---
    async def get_user(self, user_id) -> dict | None:
        return self._get("users", user_id)

    async def get_user_by_username(self, username: str) -> dict | None:
        normalized = normalize_username(username)
        return next(
            (dict(u) for u in self._tables["users"].values() if u["username"] == normalized),
            None,
        )

    async def get_user_by_email(self, email: str) -> dict | None:
        return next(
            (dict(u) for u in self._tables["users"].values() if u["email"] == email),
            None,
        )

    async def create_user(self, data: dict) -> dict:
        role = data.get("role") or "freelancer"
        user_data, profile_data = split_profile_fields(role, data)
        user = self._insert("users", {
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
            self._insert("profiles", {**profile, "user_id": user["id"], "role": role})

        logger.info("Created user %s (id=%s, role=%s)", user["username"], user["id"], role)
        return user

    async def update_user(self, user_id, data: dict) -> dict | None:
        existing = self._get("users", user_id)
        if existing is None:
            return None

        user_data, profile_data = split_profile_fields(existing["role"], data)
        if "username" in user_data:
            user_data["username"] = normalize_username(user_data["username"])
        updated = self._update("users", existing["id"], user_data)

        if profile_data:
            profile = await self.get_role_profile(existing["id"])
            if profile:
                self._update("profiles", profile["id"], profile_data)
            else:
                self._insert("profiles", {**profile_data, "user_id": existing["id"], "role": existing["role"]})
        return updated

    async def delete_user(self, user_id) -> None:
        numeric = to_int_id(user_id)
        if numeric is None or numeric not in self._tables["users"]:
            return

        del self._tables["users"][numeric]

        # 連帶刪除：角色檔案、服務、工作、應徵紀錄
        for table in ("profiles", "services", "jobs", "applications"):
            doomed = [rid for rid, r in self._tables[table].items() if r.get("user_id") == numeric]
            for rid in doomed:
                del self._tables[table][rid]

        logger.info("Deleted user id=%s and related records", numeric)

    async def get_all_users(self) -> list[dict]:
        return [dict(u) for u in self._tables["users"].values()]

    async def get_role_profile(self, user_id) -> dict | None:
        matches = self._filter("profiles", user_id=_ref(user_id))
        return matches[0] if matches else None

    # --- 後台統計 ---
    async def get_user_count(self) -> int:
        return len(self._tables["users"])

    async def get_service_count(self) -> int:
        return len(self._tables["services"])

    async def get_job_count(self) -> int:
        return len(self._tables["jobs"])

    async def get_application_count(self) -> int:
        return len(self._tables["applications"])

    async def get_order_count(self) -> int:
        return len(self._tables["orders"])

    async def get_user_count_by_role(self, role: str) -> int:
        return sum(1 for u in self._tables["users"].values() if u["role"] == role)

    # --- 服務 ---
    async def get_service(self, service_id) -> dict | None:
        return self._get("services", service_id)

    async def get_services(self, filters: dict | None = None) -> list[dict]:
        return self._filter("services", **(filters or {}))

    async def get_user_services(self, user_id) -> list[dict]:
        return self._filter("services", user_id=_ref(user_id))

    async def create_service(self, user_id, data: dict) -> dict:
        return self._insert("services", {
            **data,
            "user_id": _ref(user_id),
            "status": data.get("status") or "active",
            "image": data.get("image") or None,
            "delivery_time": data.get("delivery_time") or None,
        })

    async def update_service(self, service_id, data: dict) -> dict | None:
        return self._update("services", service_id, data)

    # --- 工作 ---
    async def get_job(self, job_id) -> dict | None:
        return self._get("jobs", job_id)

    async def get_jobs(self, filters: dict | None = None) -> list[dict]:
        return self._filter("jobs", **(filters or {}))

    async def get_user_jobs(self, user_id) -> list[dict]:
        return self._filter("jobs", user_id=_ref(user_id))

    async def create_job(self, user_id, data: dict) -> dict:
        return self._insert("jobs", {
            **data,
            "user_id": _ref(user_id),
            "status": data.get("status") or "open",
            "image": data.get("image") or None,
            "location": data.get("location") or None,
        })

    async def update_job(self, job_id, data: dict) -> dict | None:
        return self._update("jobs", job_id, data)

    # --- 應徵 ---
    async def get_application(self, application_id) -> dict | None:
        return self._get("applications", application_id)

    async def get_applications_for_job(self, job_id) -> list[dict]:
        # 特例：job_id = 0 代表取得全部
        if to_int_id(job_id) == 0:
            return self._filter("applications")
        return self._filter("applications", job_id=_ref(job_id))

    async def get_user_applications(self, user_id) -> list[dict]:
        return self._filter("applications", user_id=_ref(user_id))

    async def create_application(self, user_id, data: dict) -> dict:
        return self._insert("applications", {
            **data,
            "user_id": _ref(user_id),
            "job_id": _ref(data.get("job_id")),
            "status": "pending",
            "resume_file": data.get("resume_file") or None,
        })

    async def update_application_status(self, application_id, status: str) -> dict | None:
        return self._update("applications", application_id, {"status": status})

    # --- 訂單 ---
    async def get_order(self, order_id) -> dict | None:
        return self._get("orders", order_id)

    async def get_orders_for_service(self, service_id) -> list[dict]:
        return self._filter("orders", service_id=_ref(service_id))

    async def get_user_orders(self, user_id) -> list[dict]:
        ref = _ref(user_id)
        rows = [
            o for o in self._tables["orders"].values()
            if o.get("buyer_id") == ref or o.get("seller_id") == ref
        ]
        return [dict(o) for o in _newest_first(rows)]

    async def create_order(self, data: dict) -> dict:
        order = self._insert("orders", {
            **{k: v for k, v in data.items() if k != "payment_details"},
            "service_id": _ref(data.get("service_id")),
            "buyer_id": _ref(data.get("buyer_id")),
            "seller_id": _ref(data.get("seller_id")),
            "payment_method": data.get("payment_method") or "card",
            "status": data.get("status") or "pending",
        })

        details = data.get("payment_details")
        if details:
            self._insert("payments", {
                "order_id": order["id"],
                "card_name": details.get("card_name"),
                "card_number_last4": details.get("card_number_last4"),
                "expiry_date": details.get("expiry_date"),
                "payment_method": order["payment_method"],
                "amount": order.get("total_price"),
                "currency": details.get("currency") or "DNT",
                "status": "completed",
            })
        return order

    async def get_payments_for_order(self, order_id) -> list[dict]:
        return self._filter("payments", order_id=_ref(order_id))

    # --- 評價 ---
    async def get_reviews_for_service(self, service_id) -> list[dict]:
        return self._filter("reviews", service_id=_ref(service_id))

    async def create_review(self, data: dict) -> dict:
        return self._insert("reviews", {
            **data,
            "service_id": _ref(data.get("service_id")),
            "user_id": _ref(data.get("user_id")),
            "comment": data.get("comment") or None,
        })
