"""Errors raised by the clinic registry.

All of them are recoverable: a rejected operation leaves the registry exactly
as it was before the call.
"""


class RegistryError(Exception):
    """Base class for registry errors."""


class NotFoundError(RegistryError):
    """Unknown doctor, patient or appointment id."""


class SlotUnavailableError(RegistryError):
    """Requested slot is not in the doctor's open set."""


class InvalidTransitionError(RegistryError):
    """Appointment status change is not permitted."""


class ValidationError(RegistryError):
    """Input rejected before any state change (e.g. empty completion notes)."""


class AuditWriteError(RegistryError):
    """
    Audit record could not be written.

    Raised after the booking has been committed; ``appointment`` is the
    confirmed appointment the record describes.
    """
    def __init__(self, message: str, appointment=None):
        super().__init__(message)
        self.appointment = appointment
