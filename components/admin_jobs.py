# components/admin_jobs.py
from typing import List
from fastapi import APIRouter, Depends, Request

from data.models import Player
from core.security import get_current_admin
from core.scheduler import JobInfo

router = APIRouter(prefix="/api/admin/jobs", tags=["Admin Jobs"])


@router.get("", response_model=List[JobInfo])
async def list_jobs(request: Request, admin: Player = Depends(get_current_admin)):
    """Status and run statistics of every background job."""
    jobs = getattr(request.app.state, "jobs", {})
    return [job.get_info() for job, _store in jobs.values()]
