import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from db import get_storage
from models import MAX_PASSWORD_BYTES, ChangePasswordRequest, password_too_long
from routes.auth import hash_password, require_user, verify_password
from storage import Storage
from storage.ids import same_id
from utils import FOLDER_PROFILES, parse_id, safe_user, save_upload_file

logger = logging.getLogger(__name__)

# 設定 Router
router = APIRouter(tags=["users"])

MIN_PASSWORD_LENGTH = 6


def _ensure_self(current_user: dict, user_id, message: str) -> None:
    """只能操作自己的資料"""
    if not same_id(current_user["id"], user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)


# =========================================================
# 1. 查看個人檔案 (公開)
# =========================================================
@router.get("/{user_id}")
async def get_user(user_id: str, storage: Storage = Depends(get_storage)):
    record_id = parse_id(user_id, "User")
    user = await storage.get_user(record_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    profile = await storage.get_role_profile(user["id"])
    return {**safe_user(user), "profile": profile}


# =========================================================
# 2. 編輯個人檔案 (只能改自己的)
# =========================================================
@router.put("/{user_id}")
async def update_user(
    user_id: str,
    full_name: str | None = Form(None),
    email: str | None = Form(None),
    bio: str | None = Form(None),
    location: str | None = Form(None),
    skills: str | None = Form(None),  # 逗號分隔，例如 "python, design"
    education: str | None = Form(None),
    hourly_rate: float | None = Form(None),
    years_experience: int | None = Form(None),
    company: str | None = Form(None),
    industry: str | None = Form(None),
    website: str | None = Form(None),
    profile_picture: UploadFile | None = File(None),  # 頭像是非必填
    current_user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    record_id = parse_id(user_id, "User")
    _ensure_self(current_user, record_id, "You can only update your own profile")

    fields = {
        "full_name": full_name,
        "email": email,
        "bio": bio,
        "location": location,
        "education": education,
        "hourly_rate": hourly_rate,
        "years_experience": years_experience,
        "company": company,
        "industry": industry,
        "website": website,
    }
    data = {k: v for k, v in fields.items() if v is not None}
    if skills is not None:
        data["skills"] = [s.strip() for s in skills.split(",") if s.strip()]

    # 換 Email 時要檢查沒有被別人用走
    if email and email != current_user.get("email"):
        existing = await storage.get_user_by_email(email)
        if existing and not same_id(existing["id"], current_user["id"]):
            raise HTTPException(status_code=400, detail="Email already exists")

    # 有上傳新頭像才更新路徑，否則保留原頭像
    if profile_picture and profile_picture.filename:
        data["profile_picture"] = await save_upload_file(profile_picture, FOLDER_PROFILES, current_user["username"])

    updated = await storage.update_user(current_user["id"], data)
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return safe_user(updated)


# =========================================================
# 3. 修改密碼
# =========================================================
@router.put("/{user_id}/change-password")
async def change_password(
    user_id: str,
    payload: ChangePasswordRequest,
    current_user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    record_id = parse_id(user_id, "User")
    _ensure_self(current_user, record_id, "You can only change your own password")

    if not payload.current_password or not payload.new_password or not payload.confirm_password:
        raise HTTPException(status_code=400, detail="All password fields are required")
    if payload.new_password != payload.confirm_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if len(payload.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )
    if password_too_long(payload.new_password):
        raise HTTPException(status_code=400, detail=f"New password cannot be longer than {MAX_PASSWORD_BYTES} bytes")

    if not await verify_password(payload.current_password, current_user.get("password")):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    updated = await storage.update_user(current_user["id"], {"password": await hash_password(payload.new_password)})
    if not updated:
        raise HTTPException(status_code=500, detail="Failed to update password")

    logger.info("Password changed for user %s", current_user["username"])
    return {"message": "Password updated successfully"}


# =========================================================
# 4. 使用者的服務、工作、應徵、訂單
# =========================================================
@router.get("/{user_id}/services")
async def get_user_services(user_id: str, storage: Storage = Depends(get_storage)):
    return await storage.get_user_services(parse_id(user_id, "User"))


@router.get("/{user_id}/jobs")
async def get_user_jobs(user_id: str, storage: Storage = Depends(get_storage)):
    return await storage.get_user_jobs(parse_id(user_id, "User"))


@router.get("/{user_id}/applications")
async def get_user_applications(
    user_id: str,
    current_user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    record_id = parse_id(user_id, "User")
    _ensure_self(current_user, record_id, "You can only view your own applications")

    applications = await storage.get_user_applications(current_user["id"])
    # 每筆應徵補上對應的工作資料
    jobs = await asyncio.gather(*(storage.get_job(a["job_id"]) for a in applications))
    return [{**a, "job": job} for a, job in zip(applications, jobs)]


@router.get("/{user_id}/orders")
async def get_user_orders(
    user_id: str,
    current_user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    record_id = parse_id(user_id, "User")
    _ensure_self(current_user, record_id, "You can only view your own orders")

    orders = await storage.get_user_orders(current_user["id"])
    services = await asyncio.gather(*(storage.get_service(o["service_id"]) for o in orders))
    return [{**o, "service": service} for o, service in zip(orders, services)]


# =========================================================
# 5. 個人統計數字 (個人頁面上方的數字卡片)
# =========================================================
@router.get("/{user_id}/stats")
async def get_user_stats(user_id: str, storage: Storage = Depends(get_storage)):
    record_id = parse_id(user_id, "User")
    user = await storage.get_user(record_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    uid = user["id"]
    orders, services = await asyncio.gather(storage.get_user_orders(uid), storage.get_user_services(uid))

    stats = {
        "orders_made": sum(1 for o in orders if same_id(o.get("buyer_id"), uid)),
        "orders_received": sum(1 for o in orders if same_id(o.get("seller_id"), uid)),
    }

    # 統計自己所有服務收到的評價，4 星以上算正評
    review_lists = await asyncio.gather(*(storage.get_reviews_for_service(s["id"]) for s in services))
    reviews = [r for batch in review_lists for r in batch]
    stats["positive_reviews"] = sum(1 for r in reviews if (r.get("rating") or 0) >= 4)
    stats["total_reviews"] = len(reviews)

    # 依角色補上專屬數字
    if user["role"] == "freelancer":
        stats["active_services"] = len(services)
        stats["job_applications"] = len(await storage.get_user_applications(uid))
    elif user["role"] == "employer":
        jobs = await storage.get_user_jobs(uid)
        stats["active_jobs"] = len(jobs)
        received = await asyncio.gather(*(storage.get_job_applications(j["id"]) for j in jobs))
        stats["applications_received"] = sum(len(batch) for batch in received)

    logger.debug("Stats for user %s: %s", uid, stats)
    return stats
