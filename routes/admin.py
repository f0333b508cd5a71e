import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from db import get_storage
from models import BlockUserRequest, LoginRequest
from routes.auth import authenticate, login_session, require_admin
from storage import Storage
from utils import parse_id, safe_user

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


async def _get_target_user(storage: Storage, user_id: str) -> dict:
    user = await storage.get_user(parse_id(user_id, "User"))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# =========================================================
# 1. 管理員登入 (只接受 admin 帳號)
# =========================================================
@router.post("/login")
async def admin_login(request: Request, payload: LoginRequest, storage: Storage = Depends(get_storage)):
    # 先確認帳號存在且是管理員，再驗證密碼
    candidate = await storage.get_user_by_username(payload.username)
    if not candidate:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    if candidate.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="This endpoint is for admin users only")

    user = await authenticate(storage, payload.username, payload.password)
    login_session(request, user)
    logger.info("Admin %s logged in", user["username"])
    return {**safe_user(user), "message": "Admin login successful"}


# =========================================================
# 2. 後台儀表板統計
# =========================================================
@router.get("/stats")
async def admin_stats(admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    stats = await storage.get_admin_statistics()
    return {
        "counts": {
            "users": stats["user_count"],
            "services": stats["service_count"],
            "jobs": stats["job_count"],
            "applications": stats["application_count"],
            "orders": stats["order_count"],
        },
        "users_by_role": stats["users_by_role"],
    }


# =========================================================
# 3. 使用者管理：列表、停權、解除停權、刪除
# =========================================================
@router.get("/users")
async def admin_list_users(admin: dict = Depends(require_admin), storage: Storage = Depends(get_storage)):
    return [safe_user(u) for u in await storage.get_all_users()]


@router.put("/users/{user_id}/block")
async def admin_block_user(
    user_id: str,
    payload: BlockUserRequest,
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    if not payload.reason or not payload.reason.strip():
        raise HTTPException(status_code=400, detail="A reason for blocking is required")

    user = await _get_target_user(storage, user_id)
    if user["role"] == "admin":
        raise HTTPException(status_code=403, detail="Admin users cannot be blocked")

    updated = await storage.update_user_status(user["id"], "blocked", payload.reason.strip())
    logger.info("Admin %s blocked user %s", admin["username"], user["username"])
    return safe_user(updated)


@router.put("/users/{user_id}/unblock")
async def admin_unblock_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    user = await _get_target_user(storage, user_id)
    updated = await storage.update_user_status(user["id"], "active")
    logger.info("Admin %s unblocked user %s", admin["username"], user["username"])
    return safe_user(updated)


@router.delete("/users/{user_id}")
async def admin_delete_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    storage: Storage = Depends(get_storage),
):
    user = await _get_target_user(storage, user_id)
    if user["role"] == "admin":
        raise HTTPException(status_code=403, detail="Admin users cannot be deleted")

    await storage.delete_user(user["id"])
    logger.info("Admin %s deleted user %s", admin["username"], user["username"])
    return {"message": "User deleted successfully"}
