"""Scheduler routes - visibility into the time-driven sweeps."""

from fastapi import APIRouter

from appointment_lifecycle.api.deps import Scheduler

router = APIRouter()


@router.get("/jobs")
async def list_jobs(scheduler: Scheduler):
    """List scheduled sweep jobs and their next run times."""
    return {"jobs": scheduler.get_jobs()}
