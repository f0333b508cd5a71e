import logging

import bcrypt
from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.concurrency import run_in_threadpool

from db import get_storage
from models import LoginRequest, RegisterRequest
from storage import Storage
from storage.ids import normalize_id
from utils import safe_user

logger = logging.getLogger(__name__)

# --- 1. 設定 Router ---
router = APIRouter(tags=["auth"])

BCRYPT_ROUNDS = 10
BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


# --- 2. 密碼工具 ---
# bcrypt 計算很耗 CPU，丟到 threadpool 執行，避免卡住 event loop
async def hash_password(password: str) -> str:
    hashed = await run_in_threadpool(bcrypt.hashpw, password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


async def verify_password(password: str, stored: str | None) -> bool:
    """
    驗證密碼：
    - 資料庫存的是 bcrypt 雜湊 -> 用 bcrypt 比對
    - 舊資料可能是明碼 -> 直接比對字串
    """
    if not stored or not password:
        return False
    if stored.startswith(BCRYPT_PREFIXES):
        try:
            return await run_in_threadpool(bcrypt.checkpw, password.encode("utf-8"), stored.encode("utf-8"))
        except ValueError as e:
            logger.warning("bcrypt rejected password check: %s", e)
            return False
    return stored == password


async def authenticate(storage: Storage, username: str, password: str) -> dict:
    """
    檢查帳號密碼，成功回傳 user (含密碼雜湊)，失敗直接拋出 HTTPException。
    """
    user = await storage.get_user_by_username(username)
    if not user or not await verify_password(password, user.get("password")):
        logger.info("Login failed for username %s", username.strip().lower())
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    if user.get("status") == "blocked":
        reason = user.get("blocked_reason") or "no reason given"
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Your account has been blocked: {reason}")
    return user


# --- 3. 核心依賴函式：取得當前登入者 ---
async def get_current_user(request: Request, storage: Storage = Depends(get_storage)) -> dict | None:
    """
    檢查 Session，如果使用者已登入，返回使用者的資料 (dict)。
    如果未登入，返回 None。

    運作原理：
    1. 瀏覽器發送請求時會帶上 Cookie (Session)。
    2. 伺服器驗證 Cookie 簽章後取得 "user_id"。
    3. 用這個 ID 去資料庫查是不是真的有這個人。
    """
    raw_id = request.session.get("user_id")
    if raw_id is None:
        return None

    user_id = normalize_id(raw_id)
    if user_id is None:
        request.session.clear()  # Session 資料怪怪的，為了安全就清掉
        return None

    user = await storage.get_user(user_id)
    if not user or user.get("status") == "blocked":
        # Session 有紀錄，但帳號已被刪除或停權 -> 強制登出
        request.session.clear()
        return None
    return user


async def require_user(user: dict | None = Depends(get_current_user)) -> dict:
    """必須登入才能使用的路由"""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user


async def require_admin(user: dict | None = Depends(get_current_user)) -> dict:
    """只有管理員 (admin) 能使用的路由"""
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized, please log in")
    if user.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Admin privileges required.")
    return user


def login_session(request: Request, user: dict) -> None:
    request.session["user_id"] = user["id"]


# --- 4. 註冊 ---
@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(request: Request, payload: RegisterRequest, storage: Storage = Depends(get_storage)):
    """
    建立帳號並直接登入。
    """
    if payload.password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords do not match")

    # 檢查重複 (防止同名或同信箱註冊)
    if await storage.get_user_by_username(payload.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if await storage.get_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="Email already exists")

    data = payload.model_dump(exclude={"confirm_password"}, exclude_none=True)
    data["role"] = payload.role.value
    data["password"] = await hash_password(payload.password)

    user = await storage.create_user(data)
    login_session(request, user)
    return safe_user(user)


# --- 5. 登入 / 登出 ---
@router.post("/login")
async def login(request: Request, payload: LoginRequest, storage: Storage = Depends(get_storage)):
    user = await authenticate(storage, payload.username, payload.password)
    login_session(request, user)
    logger.info("User %s logged in", user["username"])
    return {**safe_user(user), "message": "Login successful"}


@router.post("/logout")
async def logout(request: Request):
    request.session.clear()
    return {"message": "Logged out successfully"}


@router.get("/me")
async def me(user: dict | None = Depends(get_current_user)):
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return safe_user(user)
