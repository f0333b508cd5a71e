# db.py
import logging
import os

from fastapi import HTTPException, Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

# --- 資料庫設定 ---
# 從環境變數讀取，沒設定就用本機開發預設值
MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
MONGODB_DB = os.getenv("MONGODB_DB", "workit")
# 連線逾時 (毫秒)，避免 MongoDB 沒開時啟動卡很久
MONGODB_TIMEOUT_MS = int(os.getenv("MONGODB_TIMEOUT_MS", "3000"))

# 宣告全域 client，預設為 None
_client: AsyncIOMotorClient | None = None


def get_client() -> AsyncIOMotorClient:
    """
    Lazy Loading: 第一次被呼叫時才建立 MongoDB client。
    motor 的 client 內建連線池，整個程式共用一個即可。
    """
    global _client
    if _client is None:
        logger.info("Initializing MongoDB client (%s, db=%s)", MONGODB_URI, MONGODB_DB)
        _client = AsyncIOMotorClient(MONGODB_URI, serverSelectionTimeoutMS=MONGODB_TIMEOUT_MS)
    return _client


def get_database() -> AsyncIOMotorDatabase:
    return get_client()[MONGODB_DB]


async def ping_database() -> None:
    """確認 MongoDB 可連線，失敗會拋出例外"""
    await get_client().admin.command("ping")


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB client closed")


async def get_storage(request: Request):
    """
    FastAPI 的 Dependency (依賴項) 函式。
    回傳啟動時建立好的儲存實作 (MemStorage 或 MongoStorage)。
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is None:
        raise HTTPException(status_code=500, detail="Storage is not available.")
    return storage
