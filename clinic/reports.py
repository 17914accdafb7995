"""Read-only views produced by the registry.

Snapshots, not live objects: mutating the registry afterwards does not change
a view that was already handed out.
"""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple

from clinic.models import AppointmentStatus, Specialty


@dataclass(frozen=True)
class DoctorListing:
    """A doctor with their open slots, as shown in a specialty listing."""
    doctor_id: str
    name: str
    specialty: Specialty
    fee: Decimal
    slots: Tuple[datetime, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "doctor_id": self.doctor_id,
            "name": self.name,
            "specialty": self.specialty.value,
            "fee": float(self.fee),
            "available_slots": [slot.isoformat() for slot in self.slots],
        }


@dataclass(frozen=True)
class ScheduleEntry:
    """One appointment in a report, with names resolved."""
    appointment_id: str
    slot: datetime
    doctor_id: str
    doctor_name: str
    patient_id: str
    patient_name: str
    status: AppointmentStatus
    fee: Decimal
    notes: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "appointment_id": self.appointment_id,
            "slot": self.slot.isoformat(),
            "doctor_id": self.doctor_id,
            "doctor_name": self.doctor_name,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "status": self.status.value,
            "fee": float(self.fee),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class PatientProfile:
    patient_id: str
    name: str
    age: int
    phone: str
    blood_type: str
    history: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "patient_id": self.patient_id,
            "name": self.name,
            "age": self.age,
            "phone": self.phone,
            "blood_type": self.blood_type,
            "medical_history": list(self.history),
        }


@dataclass(frozen=True)
class ClinicStatistics:
    """
    Aggregate counts for the whole registry.

    ``by_status`` always carries every AppointmentStatus, zero-filled.
    ``revenue`` is the fee sum over COMPLETED appointments only.
    """
    total_doctors: int
    total_patients: int
    total_appointments: int
    by_status: Dict[AppointmentStatus, int] = field(default_factory=dict)
    revenue: Decimal = Decimal("0")

    def to_dict(self) -> Dict:
        return {
            "total_doctors": self.total_doctors,
            "total_patients": self.total_patients,
            "total_appointments": self.total_appointments,
            "by_status": {status.value: count for status, count in self.by_status.items()},
            "revenue": float(self.revenue),
        }
