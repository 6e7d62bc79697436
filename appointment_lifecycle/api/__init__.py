from fastapi import APIRouter
from appointment_lifecycle.api.routes import appointments, scheduler

api_router = APIRouter()

api_router.include_router(appointments.router, prefix="/appointments", tags=["Appointments"])
api_router.include_router(scheduler.router, prefix="/scheduler", tags=["Scheduler"])
