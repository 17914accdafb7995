"""Unit tests for the registry's read-only reports."""
from datetime import date
from decimal import Decimal

import pytest

from clinic.errors import NotFoundError, ValidationError
from clinic.models import AppointmentStatus, Specialty

from tests.utils.slots import NEXT_DAY_9, SLOT_9, SLOT_10, SLOT_11, SLOT_14


class TestListBySpecialty:

    def test_filters_and_keeps_registration_order(self, registry):
        listings = registry.list_by_specialty(Specialty.CARDIOLOGY)
        assert [d.doctor_id for d in listings] == ["D001", "D003"]

    def test_slots_sorted_and_fee_included(self, registry):
        listing = registry.list_by_specialty(Specialty.CARDIOLOGY)[0]
        assert listing.slots == (SLOT_9, SLOT_10, SLOT_11, NEXT_DAY_9)
        assert listing.fee == Decimal("350")

    def test_accepts_string_specialty(self, registry):
        assert [d.doctor_id for d in registry.list_by_specialty("NEUROLOGY")] == ["D002"]

    def test_no_match_returns_empty(self, registry):
        assert registry.list_by_specialty(Specialty.DERMATOLOGY) == []

    def test_unknown_specialty_rejected(self, registry):
        with pytest.raises(ValidationError):
            registry.list_by_specialty("ASTROLOGY")

    def test_none_lists_every_doctor(self, registry):
        assert len(registry.list_by_specialty()) == 3

    def test_booked_slot_disappears_from_listing(self, registry):
        registry.book_appointment("P001", "D001", SLOT_10)
        listing = registry.list_by_specialty(Specialty.CARDIOLOGY)[0]
        assert SLOT_10 not in listing.slots

    def test_listing_is_a_snapshot(self, registry):
        listing = registry.list_by_specialty(Specialty.CARDIOLOGY)[0]
        registry.book_appointment("P001", "D001", SLOT_9)
        assert SLOT_9 in listing.slots

    def test_to_dict(self, registry):
        data = registry.list_by_specialty(Specialty.NEUROLOGY)[0].to_dict()
        assert data == {
            "doctor_id": "D002",
            "name": "Mehmet Kaya",
            "specialty": "NEUROLOGY",
            "fee": 400.0,
            "available_slots": ["2025-01-15T14:00:00"],
        }


class TestDailySchedule:

    def test_sorted_by_time(self, registry):
        registry.book_appointment("P001", "D002", SLOT_14)
        registry.book_appointment("P002", "D001", SLOT_10)
        registry.book_appointment("P001", "D001", SLOT_9)

        schedule = registry.daily_schedule(date(2025, 1, 15))
        assert [e.slot for e in schedule] == [SLOT_9, SLOT_10, SLOT_14]

    def test_ties_broken_by_id(self, registry):
        first = registry.book_appointment("P001", "D003", SLOT_9)
        second = registry.book_appointment("P002", "D001", SLOT_9)

        schedule = registry.daily_schedule(date(2025, 1, 15))
        assert [e.appointment_id for e in schedule] == [
            first.appointment_id, second.appointment_id
        ]

    def test_excludes_cancelled_and_other_days(self, registry):
        kept = registry.book_appointment("P001", "D001", SLOT_9)
        dropped = registry.book_appointment("P002", "D001", SLOT_10)
        registry.book_appointment("P001", "D001", NEXT_DAY_9)
        registry.cancel_appointment(dropped.appointment_id)

        schedule = registry.daily_schedule(date(2025, 1, 15))
        assert [e.appointment_id for e in schedule] == [kept.appointment_id]

    def test_includes_completed(self, registry):
        appointment = registry.book_appointment("P001", "D001", SLOT_9)
        registry.complete_appointment(appointment.appointment_id, "ok")

        entry = registry.daily_schedule(date(2025, 1, 15))[0]
        assert entry.status == AppointmentStatus.COMPLETED
        assert entry.notes == "ok"

    def test_accepts_datetime(self, registry):
        registry.book_appointment("P001", "D001", SLOT_9)
        assert len(registry.daily_schedule(SLOT_14)) == 1

    def test_entries_resolve_names(self, registry):
        registry.book_appointment("P001", "D001", SLOT_9)
        entry = registry.daily_schedule(date(2025, 1, 15))[0]
        assert entry.doctor_name == "Ayse Demir"
        assert entry.patient_name == "Bengu Gedik"
        assert entry.fee == Decimal("350")


class TestStatistics:

    def test_empty_registry_counts(self, registry):
        stats = registry.statistics()
        assert stats.total_doctors == 3
        assert stats.total_patients == 2
        assert stats.total_appointments == 0
        assert stats.by_status == {status: 0 for status in AppointmentStatus}
        assert stats.revenue == Decimal("0")

    def test_revenue_counts_completed_only(self, registry):
        completed = registry.book_appointment("P001", "D001", SLOT_9)
        registry.book_appointment("P002", "D002", SLOT_14)
        cancelled = registry.book_appointment("P002", "D001", SLOT_10)
        registry.complete_appointment(completed.appointment_id, "ok")
        registry.cancel_appointment(cancelled.appointment_id)

        stats = registry.statistics()
        assert stats.total_appointments == 3
        assert stats.by_status[AppointmentStatus.COMPLETED] == 1
        assert stats.by_status[AppointmentStatus.CONFIRMED] == 1
        assert stats.by_status[AppointmentStatus.CANCELLED] == 1
        assert stats.by_status[AppointmentStatus.PENDING] == 0
        assert stats.revenue == Decimal("350")

    def test_revenue_sums_several_doctors(self, registry):
        a = registry.book_appointment("P001", "D001", SLOT_9)
        b = registry.book_appointment("P002", "D002", SLOT_14)
        registry.complete_appointment(a.appointment_id, "ok")
        registry.complete_appointment(b.appointment_id, "ok")
        assert registry.statistics().revenue == Decimal("750")

    def test_to_dict(self, registry):
        a = registry.book_appointment("P001", "D001", SLOT_9)
        registry.complete_appointment(a.appointment_id, "ok")
        data = registry.statistics().to_dict()
        assert data["by_status"] == {
            "PENDING": 0, "CONFIRMED": 0, "CANCELLED": 0, "COMPLETED": 1
        }
        assert data["revenue"] == 350.0


class TestPatientProfile:

    def test_profile_includes_history(self, registry):
        a = registry.book_appointment("P001", "D001", SLOT_9)
        registry.complete_appointment(a.appointment_id, "Mild flu.")

        profile = registry.patient_profile("P001")
        assert profile.name == "Bengu Gedik"
        assert profile.blood_type == "A+"
        assert profile.history == ("[2025-01-15] Dr. Ayse Demir: Mild flu.",)

    def test_unknown_patient(self, registry):
        with pytest.raises(NotFoundError):
            registry.patient_profile("P999")
