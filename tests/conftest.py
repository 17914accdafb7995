"""Shared test fixtures."""
import pytest

from clinic.audit import AuditTrail, MemoryAuditSink
from clinic.models import Doctor, Patient, Specialty
from clinic.registry import Registry

from tests.utils.slots import NEXT_DAY_9, SLOT_9, SLOT_10, SLOT_11, SLOT_14


@pytest.fixture
def audit_sink() -> MemoryAuditSink:
    return MemoryAuditSink()


@pytest.fixture
def audit_trail(audit_sink) -> AuditTrail:
    """Audit trail without backoff so failing-sink tests stay fast."""
    return AuditTrail(audit_sink, max_attempts=3, backoff_seconds=0)


@pytest.fixture
def registry(audit_trail) -> Registry:
    """Registry with two cardiologists, one neurologist and two patients."""
    registry = Registry(name="Test Clinic", audit=audit_trail)

    cardio = Doctor("D001", "Ayse Demir", Specialty.CARDIOLOGY, 350)
    for slot in (SLOT_11, SLOT_9, SLOT_10, NEXT_DAY_9):
        cardio.add_available_slot(slot)

    cardio_2 = Doctor("D003", "Can Aydin", Specialty.CARDIOLOGY, 300)
    cardio_2.add_available_slot(SLOT_9)

    neuro = Doctor("D002", "Mehmet Kaya", Specialty.NEUROLOGY, 400)
    neuro.add_available_slot(SLOT_14)

    registry.add_doctor(cardio)
    registry.add_doctor(neuro)
    registry.add_doctor(cardio_2)
    registry.add_patient(Patient("P001", "Bengu Gedik", 21, "0555-111-2233", "A+"))
    registry.add_patient(Patient("P002", "Ahmet Yilmaz", 35, "0544-222-3344", "B-"))
    return registry
