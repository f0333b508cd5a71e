# storage/base.py
import asyncio
from abc import ABC, abstractmethod

# 角色專屬檔案 (profile) 的欄位，update_user 時會被分流到 profile 紀錄
FREELANCER_PROFILE_FIELDS = ("education", "hourly_rate", "years_experience", "categories")
EMPLOYER_PROFILE_FIELDS = ("company", "industry", "website")

PROFILE_FIELDS = {
    "freelancer": FREELANCER_PROFILE_FIELDS,
    "employer": EMPLOYER_PROFILE_FIELDS,
}

PROFILE_DEFAULTS = {
    "education": "",
    "hourly_rate": 0,
    "years_experience": 0,
    "categories": [],
    "company": "",
    "industry": "",
    "website": "",
}


class StorageError(Exception):
    """儲存層 (資料庫驅動) 發生無法處理的錯誤"""


def normalize_username(username: str) -> str:
    return username.strip().lower()


def split_profile_fields(role: str | None, data: dict) -> tuple[dict, dict]:
    """把 data 拆成 (使用者欄位, 角色檔案欄位)"""
    profile_keys = PROFILE_FIELDS.get(role or "", ())
    user_data = {k: v for k, v in data.items() if k not in profile_keys}
    profile_data = {k: v for k, v in data.items() if k in profile_keys}
    return user_data, profile_data


def build_profile(role: str | None, data: dict) -> dict | None:
    """註冊時依角色建立預設的 profile 內容；admin 沒有 profile"""
    keys = PROFILE_FIELDS.get(role or "")
    if not keys:
        return None
    return {k: data.get(k) if data.get(k) is not None else PROFILE_DEFAULTS[k] for k in keys}


class Storage(ABC):
    """
    儲存層介面。
    路由只透過這個介面存取資料，實作有兩種：
    - MemStorage: 記憶體 dict，數字 ID
    - MongoStorage: MongoDB (motor)，ObjectId 與舊數字 ID 並存

    所有紀錄都是 dict；找不到回傳 None，列表找不到回傳 []。
    """

    storage_type: str = "unknown"

    # --- 使用者 ---
    @abstractmethod
    async def get_user(self, user_id) -> dict | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> dict | None: ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> dict | None: ...

    @abstractmethod
    async def create_user(self, data: dict) -> dict: ...

    @abstractmethod
    async def update_user(self, user_id, data: dict) -> dict | None: ...

    @abstractmethod
    async def delete_user(self, user_id) -> None: ...

    @abstractmethod
    async def get_all_users(self) -> list[dict]: ...

    @abstractmethod
    async def get_role_profile(self, user_id) -> dict | None: ...

    # --- 後台統計 ---
    @abstractmethod
    async def get_user_count(self) -> int: ...

    @abstractmethod
    async def get_service_count(self) -> int: ...

    @abstractmethod
    async def get_job_count(self) -> int: ...

    @abstractmethod
    async def get_application_count(self) -> int: ...

    @abstractmethod
    async def get_order_count(self) -> int: ...

    @abstractmethod
    async def get_user_count_by_role(self, role: str) -> int: ...

    async def get_admin_statistics(self) -> dict:
        """一次取得後台儀表板需要的所有數字 (平行查詢)"""
        (
            user_count,
            service_count,
            job_count,
            application_count,
            order_count,
            freelancers,
            employers,
            admins,
        ) = await asyncio.gather(
            self.get_user_count(),
            self.get_service_count(),
            self.get_job_count(),
            self.get_application_count(),
            self.get_order_count(),
            self.get_user_count_by_role("freelancer"),
            self.get_user_count_by_role("employer"),
            self.get_user_count_by_role("admin"),
        )
        return {
            "user_count": user_count,
            "service_count": service_count,
            "job_count": job_count,
            "application_count": application_count,
            "order_count": order_count,
            "users_by_role": {
                "freelancers": freelancers,
                "employers": employers,
                "admins": admins,
            },
        }

    async def update_user_status(self, user_id, status: str, blocked_reason: str | None = None) -> dict | None:
        """停權 (blocked) 時記錄原因；恢復 (active) 時清除原因"""
        update: dict = {"status": status}
        if status == "blocked" and blocked_reason:
            update["blocked_reason"] = blocked_reason
        elif status == "active":
            update["blocked_reason"] = None
        return await self.update_user(user_id, update)

    # --- 服務 ---
    @abstractmethod
    async def get_service(self, service_id) -> dict | None: ...

    @abstractmethod
    async def get_services(self, filters: dict | None = None) -> list[dict]: ...

    @abstractmethod
    async def get_user_services(self, user_id) -> list[dict]: ...

    @abstractmethod
    async def create_service(self, user_id, data: dict) -> dict: ...

    @abstractmethod
    async def update_service(self, service_id, data: dict) -> dict | None: ...

    # --- 工作 ---
    @abstractmethod
    async def get_job(self, job_id) -> dict | None: ...

    @abstractmethod
    async def get_jobs(self, filters: dict | None = None) -> list[dict]: ...

    @abstractmethod
    async def get_user_jobs(self, user_id) -> list[dict]: ...

    @abstractmethod
    async def create_job(self, user_id, data: dict) -> dict: ...

    @abstractmethod
    async def update_job(self, job_id, data: dict) -> dict | None: ...

    # --- 應徵 ---
    @abstractmethod
    async def get_application(self, application_id) -> dict | None: ...

    @abstractmethod
    async def get_applications_for_job(self, job_id) -> list[dict]:
        """job_id 為 0 時回傳全部應徵紀錄"""

    async def get_job_applications(self, job_id) -> list[dict]:
        return await self.get_applications_for_job(job_id)

    @abstractmethod
    async def get_user_applications(self, user_id) -> list[dict]: ...

    @abstractmethod
    async def create_application(self, user_id, data: dict) -> dict: ...

    @abstractmethod
    async def update_application_status(self, application_id, status: str) -> dict | None: ...

    # --- 訂單 ---
    @abstractmethod
    async def get_order(self, order_id) -> dict | None: ...

    @abstractmethod
    async def get_orders_for_service(self, service_id) -> list[dict]: ...

    @abstractmethod
    async def get_user_orders(self, user_id) -> list[dict]:
        """使用者當買家或賣家的所有訂單"""

    @abstractmethod
    async def create_order(self, data: dict) -> dict:
        """data 含 payment_details 時，另外建立一筆付款紀錄"""

    @abstractmethod
    async def get_payments_for_order(self, order_id) -> list[dict]: ...

    # --- 評價 ---
    @abstractmethod
    async def get_reviews_for_service(self, service_id) -> list[dict]: ...

    @abstractmethod
    async def create_review(self, data: dict) -> dict: ...

    async def close(self) -> None:
        """釋放資源 (預設不需要)"""
