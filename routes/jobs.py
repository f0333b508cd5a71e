import asyncio
import logging

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status

from db import get_storage
from models import JobStatus, JobUpdate
from routes.auth import require_user
from storage import Storage
from storage.ids import same_id
from utils import FOLDER_JOBS, FOLDER_RESUMES, parse_id, safe_user, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(tags=["jobs"])


async def _get_job_or_404(storage: Storage, job_id: str) -> dict:
    job = await storage.get_job(parse_id(job_id, "Job"))
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


# ---------------------------------------------------------
# 1. 工作列表與詳情 (公開)
# ---------------------------------------------------------
@router.get("")
async def list_jobs(
    category: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    job_type: str | None = Query(None),
    location: str | None = Query(None),
    storage: Storage = Depends(get_storage),
):
    filters = {
        k: v
        for k, v in {
            "category": category,
            "status": status_filter,
            "job_type": job_type,
            "location": location,
        }.items()
        if v
    }
    jobs = await storage.get_jobs(filters)

    owners = await asyncio.gather(*(storage.get_user(j["user_id"]) for j in jobs))
    return [{**j, "user": safe_user(u)} if u else j for j, u in zip(jobs, owners)]


@router.get("/{job_id}")
async def get_job(job_id: str, storage: Storage = Depends(get_storage)):
    job = await _get_job_or_404(storage, job_id)
    owner = await storage.get_user(job["user_id"])
    if owner:
        return {**job, "user": safe_user(owner)}
    return job


# ---------------------------------------------------------
# 2. 建立 / 修改工作
# ---------------------------------------------------------
@router.post("", status_code=status.HTTP_201_CREATED)
async def create_job(
    title: str = Form(..., min_length=1),
    description: str = Form(...),
    budget: float = Form(..., ge=0),
    category: str = Form(...),
    job_type: str = Form(...),
    location: str | None = Form(None),
    job_status: JobStatus = Form(JobStatus.open, alias="status"),
    image: UploadFile | None = File(None),
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    data = {
        "title": title,
        "description": description,
        "budget": budget,
        "category": category,
        "job_type": job_type,
        "location": location,
        "status": job_status.value,
    }
    if image and image.filename:
        data["image"] = await save_upload_file(image, FOLDER_JOBS, user["username"])

    job = await storage.create_job(user["id"], {k: v for k, v in data.items() if v is not None})
    logger.info("Job %s created by %s", job["id"], user["username"])
    return job


@router.put("/{job_id}")
async def update_job(
    job_id: str,
    payload: JobUpdate,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    job = await _get_job_or_404(storage, job_id)
    if not same_id(job["user_id"], user["id"]) and user["role"] != "admin":
        raise HTTPException(status_code=403, detail="You can only update your own jobs")

    return await storage.update_job(job["id"], payload.model_dump(exclude_none=True, mode="json"))


# ---------------------------------------------------------
# 3. 應徵
# ---------------------------------------------------------
@router.get("/{job_id}/applications")
async def list_job_applications(
    job_id: str,
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    job = await _get_job_or_404(storage, job_id)

    # 只有發案人可以看應徵名單
    if not same_id(job["user_id"], user["id"]):
        raise HTTPException(status_code=403, detail="You are not authorized to view these applications")

    applications = await storage.get_applications_for_job(job["id"])
    applicants = await asyncio.gather(*(storage.get_user(a["user_id"]) for a in applications))
    return [{**a, "user": safe_user(u)} if u else a for a, u in zip(applications, applicants)]


@router.post("/{job_id}/applications", status_code=status.HTTP_201_CREATED)
async def apply_to_job(
    job_id: str,
    cover_letter: str | None = Form(None),
    resume_file: UploadFile | None = File(None),
    user: dict = Depends(require_user),
    storage: Storage = Depends(get_storage),
):
    job = await _get_job_or_404(storage, job_id)

    # 防呆：不能應徵自己發的工作
    if same_id(job["user_id"], user["id"]):
        raise HTTPException(status_code=400, detail="You cannot apply to your own job")

    # 防止重複應徵
    existing = await storage.get_user_applications(user["id"])
    if any(same_id(a.get("job_id"), job["id"]) for a in existing):
        raise HTTPException(
            status_code=400,
            detail={"message": "You have already applied to this job", "code": "DUPLICATE_APPLICATION"},
        )

    data = {"job_id": job["id"], "cover_letter": cover_letter}
    if resume_file and resume_file.filename:
        data["resume_file"] = await save_upload_file(resume_file, FOLDER_RESUMES, user["username"])

    application = await storage.create_application(user["id"], data)
    logger.info("User %s applied to job %s", user["username"], job["id"])
    return application
