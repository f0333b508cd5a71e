# models/application.py
from enum import Enum

from pydantic import BaseModel


class ApplicationStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ApplicationStatusUpdate(BaseModel):
    # 用字串接收，非法值由路由回傳 400 "Invalid status"
    status: str | None = None
