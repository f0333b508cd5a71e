import logging

from fastapi import APIRouter, Depends, HTTPException

from db import get_storage
from models import ApplicationStatus, ApplicationStatusUpdate
from routes.auth import require_user
from storage import Storage
from storage.ids import same_id
from utils import parse_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["applications"])

# 發案人只能把應徵改成「錄取」或「不錄取」
DECISION_STATUSES = (ApplicationStatus.approved.value, ApplicationStatus.rejected.value)


@router.put("/{application_id}/status")
async def update_application_status(
    application_id: str,
    payload: ApplicationStatusUpdate,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    if payload.status not in DECISION_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid status")

    application = await storage.get_application(parse_id(application_id, "Application"))
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")

    job = await storage.get_job(application["job_id"])
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")

    # 只有這個工作的發案人可以審核
    if not same_id(job["user_id"], user["id"]):
        raise HTTPException(status_code=403, detail="You don't have permission to update this application")

    updated = await storage.update_application_status(application["id"], payload.status)
    logger.info("Application %s marked %s by %s", application["id"], payload.status, user["username"])
    return updated
