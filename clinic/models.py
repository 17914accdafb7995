"""Domain model for the clinic registry.

Doctors own their open slots, patients own their medical history and
appointments own the status machine. Appointments refer to doctors and
patients by id only; the registry resolves those ids.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from clinic.errors import InvalidTransitionError, ValidationError


class Specialty(str, Enum):
    """Medical departments a doctor can belong to."""
    CARDIOLOGY = "CARDIOLOGY"
    NEUROLOGY = "NEUROLOGY"
    ORTHOPEDICS = "ORTHOPEDICS"
    DERMATOLOGY = "DERMATOLOGY"
    GENERAL = "GENERAL"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


# Pattern: current status -> [allowed next statuses]
VALID_TRANSITIONS: Dict[AppointmentStatus, List[AppointmentStatus]] = {
    AppointmentStatus.PENDING: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
    ],
    AppointmentStatus.CANCELLED: [],
    AppointmentStatus.COMPLETED: [],
}


def validate_transition(
    current: AppointmentStatus,
    intended: AppointmentStatus
) -> bool:
    """
    Check whether an appointment may move from ``current`` to ``intended``.

    Example:
        >>> validate_transition(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED)
        True
        >>> validate_transition(AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)
        False
    """
    return intended in VALID_TRANSITIONS.get(current, [])


def require_naive_slot(slot: datetime) -> datetime:
    """
    Slots are naive local clinic times. A timezone-aware datetime cannot be
    ordered against them, so it is rejected instead of stored.
    """
    if not isinstance(slot, datetime):
        raise ValidationError(f"Slot must be a datetime, got {type(slot).__name__}")
    if slot.utcoffset() is not None:
        raise ValidationError(
            f"Slot {slot.isoformat()} carries a timezone; use local clinic time"
        )
    return slot


@dataclass
class Doctor:
    """A doctor and the set of slots they have opened for booking."""
    doctor_id: str
    name: str
    specialty: Specialty
    fee: Decimal
    _slots: Set[datetime] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self):
        try:
            self.fee = Decimal(str(self.fee))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Consultation fee is not a number: {self.fee!r}")
        if not self.fee.is_finite():
            raise ValidationError(f"Consultation fee must be finite: {self.fee}")
        if self.fee < 0:
            raise ValidationError(f"Consultation fee cannot be negative: {self.fee}")

        try:
            self.specialty = Specialty(self.specialty)
        except ValueError:
            raise ValidationError(f"Unknown specialty: {self.specialty}")

    def add_available_slot(self, slot: datetime) -> None:
        """Open a slot. Adding an already open slot does nothing."""
        self._slots.add(require_naive_slot(slot))

    def is_available(self, slot: datetime) -> bool:
        return slot in self._slots

    def remove_slot(self, slot: datetime) -> None:
        """Close a slot. Removing a slot that is not open does nothing."""
        self._slots.discard(slot)

    def list_slots(self) -> List[datetime]:
        """Open slots in ascending order."""
        return sorted(self._slots)


@dataclass
class Patient:
    """A patient with an append-only medical history."""
    patient_id: str
    name: str
    age: int
    phone: str = ""
    blood_type: str = ""
    _history: List[str] = field(default_factory=list, init=False, repr=False, compare=False)

    def __post_init__(self):
        if isinstance(self.age, bool) or not isinstance(self.age, int):
            raise ValidationError(f"Patient age must be a whole number: {self.age!r}")
        if self.age <= 0:
            raise ValidationError(f"Patient age must be positive: {self.age}")

    def add_medical_note(self, text: str) -> None:
        self._history.append(text)

    def history(self) -> Tuple[str, ...]:
        """Medical history, oldest first."""
        return tuple(self._history)


@dataclass
class Appointment:
    """
    One booking of a doctor's slot by a patient.

    Status machine (see VALID_TRANSITIONS):
    - PENDING: created by the registry, confirmed within the same booking
    - CONFIRMED: slot is held for the patient
    - CANCELLED: terminal, slot goes back to the doctor
    - COMPLETED: terminal, a note goes into the patient's history
    """
    appointment_id: str
    doctor_id: str
    patient_id: str
    slot: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_terminal(self) -> bool:
        return not VALID_TRANSITIONS[self.status]

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        return (self.slot, self.appointment_id)

    def _transition(self, intended: AppointmentStatus) -> None:
        if not validate_transition(self.status, intended):
            raise InvalidTransitionError(
                f"Appointment {self.appointment_id} cannot go from "
                f"{self.status.value} to {intended.value}"
            )
        self.status = intended

    def confirm(self) -> None:
        self._transition(AppointmentStatus.CONFIRMED)

    def cancel(self) -> None:
        self._transition(AppointmentStatus.CANCELLED)

    def complete(self, notes: str) -> None:
        """
        Mark the appointment as completed.

        Raises:
            InvalidTransitionError: If the appointment is not CONFIRMED
            ValidationError: If notes are empty
        """
        if not validate_transition(self.status, AppointmentStatus.COMPLETED):
            raise InvalidTransitionError(
                f"Appointment {self.appointment_id} cannot be completed "
                f"from {self.status.value}"
            )
        if not notes or not notes.strip():
            raise ValidationError("Completion notes are required")

        self.notes = notes.strip()
        self.status = AppointmentStatus.COMPLETED
