# models/job.py
from enum import Enum

from pydantic import BaseModel, Field


class JobStatus(str, Enum):
    open = "open"
    closed = "closed"
    filled = "filled"


class JobUpdate(BaseModel):
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    budget: float | None = Field(None, ge=0)
    category: str | None = None
    job_type: str | None = None
    location: str | None = None
    status: JobStatus | None = None
