"""Services package - Business logic layer."""

from appointment_lifecycle.services.directory import Directory
from appointment_lifecycle.services.lifecycle import Actor, AppointmentLifecycleEngine
from appointment_lifecycle.services.notifications import NotificationDispatcher, build_email_sink
from appointment_lifecycle.services.scheduler import AppointmentScheduler
from appointment_lifecycle.services.store import AppointmentStore

__all__ = [
    "Actor",
    "AppointmentLifecycleEngine",
    "AppointmentScheduler",
    "AppointmentStore",
    "Directory",
    "NotificationDispatcher",
    "build_email_sink",
]
