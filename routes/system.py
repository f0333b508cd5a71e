import platform
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from config import APP_ENV
from db import get_storage
from storage import Storage

router = APIRouter(tags=["system"])


@router.get("/info")
async def system_info(storage: Storage = Depends(get_storage)):
    """目前使用的資料庫類型與執行環境，方便除錯"""
    return {
        "database_type": storage.storage_type,
        "python_version": platform.python_version(),
        "environment": APP_ENV,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
