"""Concurrent access to the registry from many threads."""
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from clinic.audit import AuditTrail, MemoryAuditSink
from clinic.errors import InvalidTransitionError, SlotUnavailableError
from clinic.models import AppointmentStatus, Doctor, Patient, Specialty
from clinic.registry import Registry

from tests.utils.slots import SLOT_9


@pytest.fixture
def busy_registry():
    """One doctor with a day of slots, twenty patients."""
    sink = MemoryAuditSink()
    registry = Registry(name="Busy Clinic", audit=AuditTrail(sink, backoff_seconds=0))
    doctor = Doctor("D001", "Ayse Demir", Specialty.GENERAL, 200)
    for i in range(16):
        doctor.add_available_slot(SLOT_9 + timedelta(minutes=30 * i))
    registry.add_doctor(doctor)
    for i in range(20):
        registry.add_patient(Patient(f"P{i:03d}", f"Patient {i}", 30))
    return registry, sink


def attempt(registry, patient_id, slot, barrier):
    barrier.wait()
    try:
        return registry.book_appointment(patient_id, "D001", slot)
    except SlotUnavailableError as e:
        return e


class TestConcurrentBooking:

    def test_same_slot_exactly_one_winner(self, busy_registry):
        registry, sink = busy_registry
        workers = 20
        barrier = threading.Barrier(workers)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(attempt, registry, f"P{i:03d}", SLOT_9, barrier)
                for i in range(workers)
            ]
            results = [f.result() for f in futures]

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, SlotUnavailableError)]

        assert len(winners) == 1
        assert len(losers) == workers - 1
        assert winners[0].status == AppointmentStatus.CONFIRMED
        assert registry.statistics().total_appointments == 1
        assert len(sink.records) == 1
        assert SLOT_9 not in registry.doctor_slots("D001")

    def test_distinct_slots_all_succeed_with_unique_ids(self, busy_registry):
        registry, _ = busy_registry
        slots = registry.doctor_slots("D001")
        barrier = threading.Barrier(len(slots))

        with ThreadPoolExecutor(max_workers=len(slots)) as pool:
            futures = [
                pool.submit(attempt, registry, f"P{i:03d}", slot, barrier)
                for i, slot in enumerate(slots)
            ]
            results = [f.result() for f in futures]

        ids = {r.appointment_id for r in results}
        assert len(ids) == len(slots)
        assert registry.doctor_slots("D001") == []

    def test_concurrent_cancel_only_once(self, busy_registry):
        registry, _ = busy_registry
        appointment = registry.book_appointment("P000", "D001", SLOT_9)
        workers = 8
        barrier = threading.Barrier(workers)

        def cancel():
            barrier.wait()
            try:
                registry.cancel_appointment(appointment.appointment_id)
                return True
            except InvalidTransitionError:
                return False

        with ThreadPoolExecutor(max_workers=workers) as pool:
            outcomes = list(pool.map(lambda _: cancel(), range(workers)))

        assert outcomes.count(True) == 1
        assert registry.doctor_slots("D001").count(SLOT_9) == 1

    def test_reports_consistent_during_bookings(self, busy_registry):
        registry, _ = busy_registry
        slots = registry.doctor_slots("D001")
        stop = threading.Event()
        violations = []

        def watch():
            while not stop.is_set():
                stats = registry.statistics()
                open_slots = len(registry.doctor_slots("D001"))
                if sum(stats.by_status.values()) != stats.total_appointments:
                    violations.append(("status counts", stats))
                # Slots only move from open to booked here, so a later read
                # of the open set can only be smaller
                if open_slots + stats.total_appointments > len(slots):
                    violations.append(("slot accounting", open_slots, stats.total_appointments))

        watcher = threading.Thread(target=watch)
        watcher.start()
        try:
            for i, slot in enumerate(slots):
                registry.book_appointment(f"P{i:03d}", "D001", slot)
        finally:
            stop.set()
            watcher.join()

        assert violations == []
        assert registry.statistics().by_status[AppointmentStatus.CONFIRMED] == len(slots)
