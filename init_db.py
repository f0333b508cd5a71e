# init_db.py
import asyncio
import logging

from pymongo import ASCENDING, DESCENDING

from config import ADMIN_EMAIL, ADMIN_PASSWORD, ADMIN_USERNAME
from routes.auth import hash_password

logger = logging.getLogger(__name__)

# 每個集合需要的索引：(欄位, 是否唯一)
# create_index 本身是冪等的，已存在的索引不會重複建立
INDEXES = {
    "users": [("username", True), ("email", True), ("role", False)],
    "freelancer_profiles": [("user_id", True)],
    "employer_profiles": [("user_id", True)],
    "services": [("user_id", False), ("category", False), ("status", False)],
    "jobs": [("user_id", False), ("category", False), ("status", False)],
    "applications": [("job_id", False), ("user_id", False)],
    "orders": [("buyer_id", False), ("seller_id", False), ("service_id", False)],
    "payments": [("order_id", False)],
    "reviews": [("service_id", False)],
}


async def init_database(database) -> None:
    """
    建立 MongoDB 索引：
    1. 使用者名稱與 Email 唯一
    2. 外鍵欄位加索引，加速「某人的服務 / 某工作的應徵」這類查詢
    3. 所有集合依 created_at 排序
    """
    logger.info("Checking MongoDB indexes...")
    for collection, fields in INDEXES.items():
        for field, unique in fields:
            await database[collection].create_index([(field, ASCENDING)], unique=unique)
        await database[collection].create_index([("created_at", DESCENDING)])
    logger.info("MongoDB indexes are up to date")


async def ensure_admin_user(storage, username: str | None = None, password: str | None = None,
                            email: str | None = None) -> dict | None:
    """
    依環境變數 ADMIN_USERNAME / ADMIN_PASSWORD 建立管理員帳號。
    帳號已存在時改為更新密碼並確保角色是 admin。
    """
    username = username or ADMIN_USERNAME
    password = password or ADMIN_PASSWORD
    email = email or ADMIN_EMAIL
    if not username or not password:
        return None

    hashed = await hash_password(password)
    existing = await storage.get_user_by_username(username)
    if existing:
        logger.info("Admin user %s already exists, updating role", existing["username"])
        return await storage.update_user(existing["id"], {"password": hashed, "role": "admin", "status": "active"})

    logger.info("Creating admin user %s", username)
    return await storage.create_user({
        "username": username,
        "password": hashed,
        "email": email,
        "full_name": "Administrator",
        "role": "admin",
        "bio": "System administrator",
    })


async def _main() -> None:
    from db import close_client, get_database
    from logging_config import setup_logging
    from storage.mongo import MongoStorage

    setup_logging()
    database = get_database()
    try:
        await init_database(database)
        await ensure_admin_user(MongoStorage(database))
    finally:
        close_client()


if __name__ == "__main__":
    asyncio.run(_main())
