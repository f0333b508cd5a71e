# models/service.py
from enum import Enum

from pydantic import BaseModel, Field


class ServiceStatus(str, Enum):
    active = "active"
    paused = "paused"
    deleted = "deleted"


class ServiceUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    price: float | None = Field(None, ge=0)
    currency: str | None = None
    category: str | None = None
    delivery_time: str | None = None
    status: ServiceStatus | None = None
