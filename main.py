import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.sessions import SessionMiddleware

from config import IS_PRODUCTION, SECRET_KEY, SESSION_COOKIE, SESSION_MAX_AGE
from db import close_client
from init_db import ensure_admin_user, init_database
from logging_config import setup_logging
from storage import StorageError, create_storage
from utils import UPLOAD_ROOT, UPLOAD_URL_PREFIX, setup_upload_directories

# --- 1. Logging ---
setup_logging()
logger = logging.getLogger(__name__)


# --- 2. 啟動與關閉流程 ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    啟動時：
    1. 建立儲存層 (MongoDB 或記憶體)
    2. 若是 MongoDB，建立索引
    3. 依環境變數建立管理員帳號
    """
    storage = await create_storage()
    app.state.storage = storage

    if storage.storage_type == "mongodb":
        await init_database(storage.db)
    await ensure_admin_user(storage)

    logger.info("WorkIt API started (storage=%s)", storage.storage_type)
    try:
        yield
    finally:
        await storage.close()
        close_client()


# --- 3. 建立應用程式 ---
app = FastAPI(title="WorkIt Marketplace API", lifespan=lifespan)

# --- 4. 掛載上傳檔案目錄 ---
# 讓使用者上傳的頭像、履歷可以透過 /uploads/... 讀取
setup_upload_directories()
app.mount(UPLOAD_URL_PREFIX, StaticFiles(directory=UPLOAD_ROOT), name="uploads")

# --- 5. 設定 Session (登入狀態管理) ---
app.add_middleware(
    SessionMiddleware,
    secret_key=SECRET_KEY,
    session_cookie=SESSION_COOKIE,
    max_age=SESSION_MAX_AGE,
    same_site="lax",              # 防止 CSRF 攻擊的設定
    https_only=IS_PRODUCTION,     # 正式環境只允許 HTTPS 傳送 Cookie
)


# --- 6. 錯誤處理 ---
@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("StorageError on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": str(exc), "error": "StorageError"})


# --- 7. 匯入並註冊各個功能的路由 ---
from routes.admin import router as admin_router  # noqa: E402
from routes.applications import router as applications_router  # noqa: E402
from routes.auth import router as auth_router  # noqa: E402
from routes.jobs import router as jobs_router  # noqa: E402
from routes.orders import router as orders_router  # noqa: E402
from routes.services import router as services_router  # noqa: E402
from routes.system import router as system_router  # noqa: E402
from routes.users import router as users_router  # noqa: E402

app.include_router(auth_router, prefix="/api/auth")
app.include_router(users_router, prefix="/api/users")
app.include_router(services_router, prefix="/api/services")
app.include_router(jobs_router, prefix="/api/jobs")
app.include_router(applications_router, prefix="/api/applications")
app.include_router(orders_router, prefix="/api/orders")
app.include_router(admin_router, prefix="/api/admin")
app.include_router(system_router, prefix="/api/system")


@app.get("/")
async def root():
    return {"name": "WorkIt Marketplace API", "docs": "/docs"}
