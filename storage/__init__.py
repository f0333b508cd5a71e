# storage/__init__.py
import logging
import os

from storage.base import Storage, StorageError
from storage.memory import MemStorage

logger = logging.getLogger(__name__)

STORAGE_TYPES = ("memory", "mongodb")


def resolve_storage_type() -> str:
    """
    決定要用哪一種儲存：
    1. STORAGE_TYPE 有設定就照設定
    2. 沒設定但有 MONGODB_URI -> mongodb
    3. 都沒有 -> memory
    """
    explicit = os.getenv("STORAGE_TYPE", "").strip().lower()
    if explicit:
        if explicit not in STORAGE_TYPES:
            raise ValueError(f"Unknown STORAGE_TYPE {explicit!r}; expected one of {STORAGE_TYPES}")
        return explicit
    return "mongodb" if os.getenv("MONGODB_URI") else "memory"


async def create_storage() -> Storage:
    """
    建立儲存實作。
    MongoDB 連不上時不讓伺服器掛掉，而是退回記憶體儲存並記錄警告。
    """
    storage_type = resolve_storage_type()

    if storage_type == "mongodb":
        # 延遲匯入：只用記憶體時不需要載入 motor
        from db import get_database, ping_database
        from storage.mongo import MongoStorage

        try:
            await ping_database()
            logger.info("Using MongoDB storage")
            return MongoStorage(get_database())
        except Exception as e:
            logger.warning("MongoDB unavailable (%s); falling back to in-memory storage", e)

    logger.info("Using in-memory storage")
    return MemStorage()


__all__ = ["Storage", "StorageError", "MemStorage", "create_storage", "resolve_storage_type"]
