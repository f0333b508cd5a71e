import logging

from fastapi import APIRouter, Depends, HTTPException, status

from db import get_storage
from models import CheckoutRequest
from routes.auth import require_user
from storage import Storage
from storage.ids import same_id
from utils import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["orders"])


# 付款頁面直接建立訂單 (預設狀態為已付款 paid)
@router.post("", status_code=status.HTTP_201_CREATED)
async def checkout(
    payload: CheckoutRequest,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    service = await storage.get_service(parse_id(str(payload.service_id), "Service"))
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")

    if same_id(service["user_id"], user["id"]):
        raise HTTPException(status_code=400, detail="You cannot order your own service")

    data = {
        "service_id": service["id"],
        "buyer_id": user["id"],
        "seller_id": service["user_id"],
        "payment_method": payload.payment_method.value,
        # 沒給金額 (或給 0) 就用服務定價
        "total_price": payload.total_price or service.get("price"),
        "status": payload.status.value,
    }
    if payload.payment_details:
        data["payment_details"] = payload.payment_details.model_dump(exclude_none=True)

    order = await storage.create_order(data)
    logger.info("Order %s created (status=%s) by %s", order["id"], order["status"], user["username"])
    return order


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    order = await storage.get_order(parse_id(order_id, "Order"))
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    # 只有買賣雙方與管理員看得到
    if user["role"] != "admin" and not (
        same_id(order.get("buyer_id"), user["id"]) or same_id(order.get("seller_id"), user["id"])
    ):
        raise HTTPException(status_code=403, detail="You can only view your own orders")

    payments = await storage.get_payments_for_order(order["id"])
    return {**order, "payments": payments}
