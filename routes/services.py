import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from db import get_storage
from models import ReviewCreate, ServiceOrderRequest, ServiceStatus, ServiceUpdate
from routes.auth import require_user
from storage import Storage
from storage.ids import same_id
from utils import FOLDER_SERVICES, parse_id, safe_user, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["services"])


async def _with_users(storage: Storage, records: list[dict]) -> list[dict]:
    """每筆資料補上 user (擁有者/評價者) 的公開資訊"""
    users = await asyncio.gather(*(storage.get_user(r["user_id"]) for r in records))
    return [{**r, "user": safe_user(u)} if u else r for r, u in zip(records, users)]


async def _get_service_or_404(storage: Storage, service_id: str) -> dict:
    service = await storage.get_service(parse_id(service_id, "Service"))
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


# ---------------------------------------------------------
# 1. 服務列表與詳情 (公開)
# ---------------------------------------------------------
@router.get("")
async def list_services(
    category: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    storage: Storage = Depends(get_storage),
):
    filters = {}
    if category:
        filters["category"] = category
    if status_filter:
        filters["status"] = status_filter

    services = await storage.get_services(filters)
    return await _with_users(storage, services)


@router.get("/{service_id}")
async def get_service(service_id: str, storage: Storage = Depends(get_storage)):
    service = await _get_service_or_404(storage, service_id)
    owner = await storage.get_user(service["user_id"])
    if owner:
        return {**service, "user": safe_user(owner)}
    return service


# ---------------------------------------------------------
# 2. 建立 / 修改服務
# ---------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_service(
    title: str = Form(..., min_length=1),
    description: str = Form(...),
    price: float = Form(..., ge=0),
    category: str = Form(...),
    currency: str | None = Form(None),
    delivery_time: str | None = Form(None),
    service_status: ServiceStatus = Form(ServiceStatus.active, alias="status"),
    image: UploadFile | None = File(None),
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    data = {
        "title": title,
        "description": description,
        "price": price,
        "category": category,
        "currency": currency,
        "delivery_time": delivery_time,
        "status": service_status.value,
    }
    if image and image.filename:
        data["image"] = await save_upload_file(image, FOLDER_SERVICES, user["username"])

    service = await storage.create_service(user["id"], {k: v for k, v in data.items() if v is not None})
    logger.info("Service %s created by %s", service["id"], user["username"])
    return service


@router.put("/{service_id}")
async def update_service(
    service_id: str,
    payload: ServiceUpdate,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    service = await _get_service_or_404(storage, service_id)
    # 只有擁有者或管理員可以修改
    if not same_id(service["user_id"], user["id"]) and user["role"] != "admin":
        raise HTTPException(status_code=403, detail="You can only update your own services")

    data = payload.model_dump(exclude_none=True, mode="json")
    return await storage.update_service(service["id"], data)


# ---------------------------------------------------------
# 3. 下單購買服務
# ---------------------------------------------------------
@router.post("/{service_id}/orders", status_code=status.HTTP_201_CREATED)
async def order_service(
    service_id: str,
    payload: ServiceOrderRequest | None = None,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    service = await _get_service_or_404(storage, service_id)

    # 不能買自己的服務
    if same_id(service["user_id"], user["id"]):
        raise HTTPException(status_code=400, detail="You cannot order your own service")

    payload = payload or ServiceOrderRequest()
    order = await storage.create_order({
        "service_id": service["id"],
        "buyer_id": user["id"],
        "seller_id": service["user_id"],
        "total_price": service.get("price"),
        "payment_method": payload.payment_method.value,
        "requirements": payload.requirements,
    })
    logger.info("Order %s placed by %s for service %s", order["id"], user["username"], service["id"])
    return order


# ---------------------------------------------------------
# 4. 評價
# ---------------------------------------------------------
@router.get("/{service_id}/reviews")
async def list_reviews(service_id: str, storage: Storage = Depends(get_storage)):
    reviews = await storage.get_reviews_for_service(parse_id(service_id, "Service"))
    return await _with_users(storage, reviews)


@router.post("/{service_id}/reviews", status_code=status.HTTP_201_CREATED)
async def create_review(
    service_id: str,
    payload: ReviewCreate,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    service = await _get_service_or_404(storage, service_id)

    if same_id(service["user_id"], user["id"]):
        raise HTTPException(status_code=400, detail="You cannot review your own service")

    # service_id 與 user_id 只從伺服器端取得，不信任前端傳的值
    return await storage.create_review({
        "service_id": service["id"],
        "user_id": user["id"],
        "rating": payload.rating,
        "comment": payload.comment.strip() if payload.comment else None,
    })
