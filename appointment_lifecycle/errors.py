"""Error taxonomy shared by the lifecycle engine, the store and the transport.

Every command failure is raised as a subclass of :class:`AppointmentError`.
The ``kind`` attribute is stable and is what the HTTP layer reports back to
callers; ``details`` carries the offending fields or values.
"""

from typing import Any
from uuid import UUID


class AppointmentError(Exception):
    """Base class for every failure surfaced by an appointment command."""

    kind = "appointment_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationFailed(AppointmentError):
    """Malformed command input."""

    kind = "validation"


class InvalidCoordinate(ValidationFailed):
    """Latitude or longitude outside its valid range."""

    kind = "invalid_coordinate"


class SlotConflict(AppointmentError):
    """The (doctor, date, time) slot is already held by an active appointment."""

    kind = "slot_conflict"


class IllegalTransition(AppointmentError):
    """The command is not allowed from the appointment's current state."""

    kind = "illegal_transition"

    def __init__(self, command: str, status: str, message: str | None = None):
        super().__init__(
            message or f"Cannot {command} an appointment in status '{status}'",
            {"command": command, "status": status},
        )


class NotAuthorizedForAppointment(AppointmentError):
    """Actor does not own the appointment and presented no valid token."""

    kind = "not_authorized"


class TooLateToCancel(AppointmentError):
    """Cancellation attempted inside the minimum lead time."""

    kind = "too_late_to_cancel"


class ConcurrentModification(AppointmentError):
    """Optimistic concurrency check lost against another writer."""

    kind = "concurrent_modification"

    def __init__(self, appointment_id: UUID, expected_revision: int):
        super().__init__(
            f"Appointment {appointment_id} was modified concurrently",
            {"appointment_id": str(appointment_id), "expected_revision": expected_revision},
        )


class AppointmentNotFound(AppointmentError):
    kind = "not_found"

    def __init__(self, appointment_id: UUID):
        super().__init__("Appointment not found", {"appointment_id": str(appointment_id)})


class CatalogEntryNotFound(AppointmentError):
    """A referenced patient, doctor or hospital does not exist or is inactive."""

    kind = "catalog_not_found"


class StoreUnavailable(AppointmentError):
    """The appointment store could not be reached; the command may be retried."""

    kind = "store_unavailable"


class TransportError(Exception):
    """A notification could not be delivered. Never surfaced as a command failure."""
