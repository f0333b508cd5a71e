import logging
import os
from datetime import datetime

import aiofiles  # 非同步檔案處理套件，避免上傳大檔案時卡住整個伺服器
from fastapi import HTTPException, UploadFile

from storage.ids import normalize_id

logger = logging.getLogger(__name__)

# --- 1. 設定檔案儲存路徑常數 ---
UPLOAD_ROOT = os.getenv("UPLOAD_ROOT", "uploads")  # 所有上傳檔案的根目錄
UPLOAD_URL_PREFIX = "/uploads"                     # 對外的網址前綴 (main.py 會掛載)
FOLDER_PROFILES = "profiles"  # 使用者頭像
FOLDER_SERVICES = "services"  # 服務封面圖
FOLDER_JOBS = "jobs"          # 工作封面圖
FOLDER_RESUMES = "resumes"    # 應徵履歷

UPLOAD_FOLDERS = (FOLDER_PROFILES, FOLDER_SERVICES, FOLDER_JOBS, FOLDER_RESUMES)

# 不能回傳給前端的欄位
SENSITIVE_USER_FIELDS = ("password",)


def setup_upload_directories(root: str | None = None):
    """
    初始化資料夾結構：伺服器啟動時呼叫，確保資料夾都已經存在。
    exist_ok=True 表示如果資料夾已經存在，就跳過，不會報錯。
    """
    root = root or UPLOAD_ROOT
    for folder in UPLOAD_FOLDERS:
        os.makedirs(os.path.join(root, folder), exist_ok=True)


def _safe_filename(name: str) -> str:
    # 把空白、斜線等可能造成路徑錯誤的符號換成底線
    return os.path.basename(name.replace("\\", "/")).replace(" ", "_")


async def save_upload_file(file: UploadFile, sub_folder: str, prefix: str = "", root: str | None = None) -> str:
    """
    通用檔案儲存函式

    參數:
    - file: 使用者上傳的檔案物件
    - sub_folder: 子資料夾名稱 (profiles / services / jobs / resumes)
    - prefix: 檔名前綴 (通常是 username)，方便辨識是誰上傳的

    回傳:
    - 對外網址，例如 /uploads/services/alice_20231225_103000_cover.png
    """
    if sub_folder not in UPLOAD_FOLDERS:
        raise ValueError(f"Unknown upload folder: {sub_folder}")

    root = root or UPLOAD_ROOT
    target_dir = os.path.join(root, sub_folder)
    os.makedirs(target_dir, exist_ok=True)

    # 加上時間戳記，避免不同人上傳同名檔案互相覆蓋
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    parts = [p for p in (_safe_filename(prefix), timestamp, _safe_filename(file.filename or "upload")) if p]
    new_filename = "_".join(parts)

    file_path = os.path.join(target_dir, new_filename)

    # 分塊寫入 (每次 64KB)，大檔案也不會把記憶體吃光
    async with aiofiles.open(file_path, "wb") as out_file:
        while content := await file.read(64 * 1024):
            await out_file.write(content)

    logger.info("Saved upload %s", file_path)
    return f"{UPLOAD_URL_PREFIX}/{sub_folder}/{new_filename}"


def safe_user(user: dict | None) -> dict | None:
    """移除密碼等敏感欄位後才能回傳給前端"""
    if user is None:
        return None
    return {k: v for k, v in user.items() if k not in SENSITIVE_USER_FIELDS}


def parse_id(raw: str, label: str = "Resource"):
    """
    把網址上的 ID 轉成儲存層的 ID。
    無法辨識的 ID (例如 "abc") 直接回 404，不要讓它進到資料庫。
    """
    record_id = normalize_id(raw)
    if record_id is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return record_id
