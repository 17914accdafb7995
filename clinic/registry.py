"""Clinic registry: the system of record for doctors, patients and appointments.

Booking, cancellation and completion run under one re-entrant lock per
registry, so two callers can never both take the same slot. Reports copy what
they need under the lock and build their results outside it.

The audit record for a booking is written after the lock is released. The
booking stands even if that write fails; the failure is logged and raised as
AuditWriteError carrying the confirmed appointment.
"""
import itertools
import threading
from datetime import date, datetime
from decimal import Decimal
from operator import attrgetter
from typing import Dict, List, Optional, Union

from clinic import config
from clinic.audit import AuditTrail, LoggingAuditSink, format_audit_record
from clinic.errors import (
    AuditWriteError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from clinic.logging_config import get_logger
from clinic.models import (
    Appointment,
    AppointmentStatus,
    Doctor,
    Patient,
    Specialty,
    require_naive_slot,
)
from clinic.reports import (
    ClinicStatistics,
    DoctorListing,
    PatientProfile,
    ScheduleEntry,
)
from clinic.roster import ClinicRoster

logger = get_logger(__name__)


def format_history_note(slot: datetime, doctor_name: str, notes: str) -> str:
    """History entry written when an appointment is completed."""
    return f"[{slot.date().isoformat()}] Dr. {doctor_name}: {notes}"


class Registry:
    """Owns every doctor, patient and appointment of one clinic."""

    def __init__(self, name: Optional[str] = None, audit: Optional[AuditTrail] = None):
        self.name = name or config.CLINIC_NAME
        self._audit = audit or AuditTrail(LoggingAuditSink())
        self._doctors: Dict[str, Doctor] = {}
        self._patients: Dict[str, Patient] = {}
        self._appointments: List[Appointment] = []
        self._appointment_index: Dict[str, Appointment] = {}
        self._id_sequence = itertools.count(config.APPOINTMENT_ID_START)
        self._lock = threading.RLock()

    @classmethod
    def from_roster(cls, roster: ClinicRoster, audit: Optional[AuditTrail] = None) -> "Registry":
        """Build a registry populated with the roster's doctors, slots and patients."""
        registry = cls(name=roster.clinic_name, audit=audit)
        for entry in roster.doctors:
            doctor = Doctor(entry.id, entry.name, entry.specialty, entry.fee)
            for slot in entry.slots:
                doctor.add_available_slot(slot)
            registry.add_doctor(doctor)
        for entry in roster.patients:
            registry.add_patient(
                Patient(entry.id, entry.name, entry.age, entry.phone, entry.blood_type)
            )
        return registry

    # ------------------------------------------------------------------
    # Registration and lookup
    # ------------------------------------------------------------------

    def add_doctor(self, doctor: Doctor) -> None:
        with self._lock:
            if doctor.doctor_id in self._doctors:
                raise ValidationError(f"Doctor '{doctor.doctor_id}' is already registered")
            self._doctors[doctor.doctor_id] = doctor

    def add_patient(self, patient: Patient) -> None:
        with self._lock:
            if patient.patient_id in self._patients:
                raise ValidationError(f"Patient '{patient.patient_id}' is already registered")
            self._patients[patient.patient_id] = patient

    def get_doctor(self, doctor_id: str) -> Doctor:
        with self._lock:
            doctor = self._doctors.get(doctor_id)
        if doctor is None:
            raise NotFoundError(f"Doctor '{doctor_id}' not found")
        return doctor

    def get_patient(self, patient_id: str) -> Patient:
        with self._lock:
            patient = self._patients.get(patient_id)
        if patient is None:
            raise NotFoundError(f"Patient '{patient_id}' not found")
        return patient

    def get_appointment(self, appointment_id: str) -> Appointment:
        with self._lock:
            appointment = self._appointment_index.get(appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment '{appointment_id}' not found")
        return appointment

    def open_slot(self, doctor_id: str, slot: datetime) -> None:
        """
        Open a slot for booking.

        Raises:
            NotFoundError: Unknown doctor
            SlotUnavailableError: The slot is held by an active appointment
            ValidationError: The slot carries a timezone
        """
        require_naive_slot(slot)
        with self._lock:
            doctor = self.get_doctor(doctor_id)
            held = any(
                a.doctor_id == doctor_id and a.slot == slot
                and a.status != AppointmentStatus.CANCELLED
                for a in self._appointments
            )
            if held:
                raise SlotUnavailableError(
                    f"Slot {slot.isoformat()} is already booked for doctor '{doctor_id}'"
                )
            doctor.add_available_slot(slot)

    # ------------------------------------------------------------------
    # Booking lifecycle
    # ------------------------------------------------------------------

    def _next_appointment_id(self) -> str:
        return f"{config.APPOINTMENT_ID_PREFIX}-{next(self._id_sequence)}"

    def book_appointment(self, patient_id: str, doctor_id: str, slot: datetime) -> Appointment:
        """
        Book ``slot`` with a doctor for a patient.

        Returns:
            The CONFIRMED appointment

        Raises:
            NotFoundError: Unknown doctor or patient
            SlotUnavailableError: Slot is not open
            ValidationError: The slot carries a timezone
            AuditWriteError: Booking committed but the audit record was not written
        """
        require_naive_slot(slot)
        with self._lock:
            doctor = self.get_doctor(doctor_id)
            patient = self.get_patient(patient_id)

            if not doctor.is_available(slot):
                logger.info(
                    "booking_rejected",
                    doctor_id=doctor_id,
                    patient_id=patient_id,
                    slot=slot.isoformat(),
                )
                raise SlotUnavailableError(
                    f"Slot {slot.isoformat()} is not available for doctor '{doctor_id}'"
                )

            appointment = Appointment(
                appointment_id=self._next_appointment_id(),
                doctor_id=doctor_id,
                patient_id=patient_id,
                slot=slot,
            )
            appointment.confirm()

            self._appointments.append(appointment)
            self._appointment_index[appointment.appointment_id] = appointment
            doctor.remove_slot(slot)

            record = format_audit_record(appointment, doctor, patient)

        logger.info(
            "appointment_booked",
            appointment_id=appointment.appointment_id,
            doctor_id=doctor_id,
            patient_id=patient_id,
            slot=slot.isoformat(),
        )
        self._write_audit(record, appointment)
        return appointment

    def _write_audit(self, record: str, appointment: Appointment) -> None:
        try:
            self._audit.record(record, appointment)
        except AuditWriteError as e:
            logger.warning(
                "audit_write_failed",
                appointment_id=appointment.appointment_id,
                error=str(e),
            )
            raise

    def cancel_appointment(self, appointment_id: str) -> Appointment:
        """
        Cancel an appointment and give its slot back to the doctor.

        Raises:
            NotFoundError: Unknown appointment id
            InvalidTransitionError: Appointment is already cancelled or completed
        """
        with self._lock:
            appointment = self.get_appointment(appointment_id)
            appointment.cancel()
            self._doctors[appointment.doctor_id].add_available_slot(appointment.slot)

        logger.info(
            "appointment_cancelled",
            appointment_id=appointment_id,
            doctor_id=appointment.doctor_id,
            slot=appointment.slot.isoformat(),
        )
        return appointment

    def complete_appointment(self, appointment_id: str, notes: str) -> Appointment:
        """
        Complete a confirmed appointment and record the notes in the patient's history.

        Raises:
            NotFoundError: Unknown appointment id
            InvalidTransitionError: Appointment is not CONFIRMED
            ValidationError: Notes are empty
        """
        with self._lock:
            appointment = self.get_appointment(appointment_id)
            doctor = self._doctors[appointment.doctor_id]
            patient = self._patients[appointment.patient_id]

            appointment.complete(notes)
            patient.add_medical_note(
                format_history_note(appointment.slot, doctor.name, appointment.notes)
            )

        logger.info(
            "appointment_completed",
            appointment_id=appointment_id,
            patient_id=appointment.patient_id,
        )
        return appointment

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def _entry(self, appointment: Appointment) -> ScheduleEntry:
        doctor = self._doctors[appointment.doctor_id]
        patient = self._patients[appointment.patient_id]
        return ScheduleEntry(
            appointment_id=appointment.appointment_id,
            slot=appointment.slot,
            doctor_id=doctor.doctor_id,
            doctor_name=doctor.name,
            patient_id=patient.patient_id,
            patient_name=patient.name,
            status=appointment.status,
            fee=doctor.fee,
            notes=appointment.notes,
        )

    def describe_appointment(self, appointment_id: str) -> ScheduleEntry:
        with self._lock:
            return self._entry(self.get_appointment(appointment_id))

    def list_appointments(self) -> List[ScheduleEntry]:
        """Every appointment ever booked, in booking order."""
        with self._lock:
            return [self._entry(a) for a in self._appointments]

    def doctor_slots(self, doctor_id: str) -> List[datetime]:
        with self._lock:
            return self.get_doctor(doctor_id).list_slots()

    def patient_profile(self, patient_id: str) -> PatientProfile:
        with self._lock:
            patient = self.get_patient(patient_id)
            return PatientProfile(
                patient_id=patient.patient_id,
                name=patient.name,
                age=patient.age,
                phone=patient.phone,
                blood_type=patient.blood_type,
                history=patient.history(),
            )

    def list_by_specialty(self, specialty: Union[Specialty, str, None] = None) -> List[DoctorListing]:
        """Doctors of a specialty (all doctors when None), in registration order."""
        if specialty is not None:
            try:
                specialty = Specialty(specialty)
            except ValueError:
                raise ValidationError(f"Unknown specialty: {specialty}")

        with self._lock:
            return [
                DoctorListing(
                    doctor_id=d.doctor_id,
                    name=d.name,
                    specialty=d.specialty,
                    fee=d.fee,
                    slots=tuple(d.list_slots()),
                )
                for d in self._doctors.values()
                if specialty is None or d.specialty == specialty
            ]

    def daily_schedule(self, day: Union[date, datetime]) -> List[ScheduleEntry]:
        """Non-cancelled appointments on ``day``, earliest first."""
        if isinstance(day, datetime):
            day = day.date()

        with self._lock:
            matching = sorted(
                (
                    a for a in self._appointments
                    if a.slot.date() == day and a.status != AppointmentStatus.CANCELLED
                ),
                key=attrgetter("sort_key"),
            )
            return [self._entry(a) for a in matching]

    def statistics(self) -> ClinicStatistics:
        with self._lock:
            total_doctors = len(self._doctors)
            total_patients = len(self._patients)
            snapshot = [
                (a.status, self._doctors[a.doctor_id].fee) for a in self._appointments
            ]

        by_status = {status: 0 for status in AppointmentStatus}
        revenue = Decimal("0")
        for status, fee in snapshot:
            by_status[status] += 1
            if status == AppointmentStatus.COMPLETED:
                revenue += fee

        return ClinicStatistics(
            total_doctors=total_doctors,
            total_patients=total_patients,
            total_appointments=len(snapshot),
            by_status=by_status,
            revenue=revenue,
        )
