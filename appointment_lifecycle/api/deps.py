"""Request dependencies shared by the API routes."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request

from appointment_lifecycle.models.user import UserRole
from appointment_lifecycle.services.lifecycle import Actor, AppointmentLifecycleEngine
from appointment_lifecycle.services.scheduler import AppointmentScheduler


def get_engine(request: Request) -> AppointmentLifecycleEngine:
    return request.app.state.engine


def get_scheduler(request: Request) -> AppointmentScheduler:
    return request.app.state.scheduler


def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Caller identity, authenticated upstream and forwarded in headers."""
    if not x_user_id or not x_user_role:
        raise HTTPException(status_code=401, detail="Missing caller identity")
    try:
        return Actor(user_id=UUID(x_user_id), role=UserRole(x_user_role.lower()))
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid caller identity")


Engine = Annotated[AppointmentLifecycleEngine, Depends(get_engine)]
Scheduler = Annotated[AppointmentScheduler, Depends(get_scheduler)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
