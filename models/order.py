# models/order.py
from enum import Enum

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    card = "card"
    bank_transfer = "bank_transfer"


class PaymentDetails(BaseModel):
    card_name: str
    # 只保存卡號末四碼
    card_number_last4: str = Field(..., pattern=r"^\d{4}$")
    expiry_date: str
    currency: str | None = None


class ServiceOrderRequest(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.card
    requirements: str | None = None


class CheckoutRequest(BaseModel):
    """付款頁面送出的訂單"""
    service_id: str | int
    payment_method: PaymentMethod = PaymentMethod.card
    total_price: float | None = Field(None, ge=0)
    status: OrderStatus = OrderStatus.paid
    payment_details: PaymentDetails | None = None
