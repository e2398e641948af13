import logging
from datetime import datetime

import pytest

from caresync.models import AppointmentType, EhrDepartment, Institution, Provider
from caresync.services.availability.builder import (
    AvailabilityRow,
    AvailabilityRowSet,
    build_availability,
    format_availability_debug,
)
from conftest import TIME_ZONE, TODAY, FakeSlotSource, slot


def _institution():
    return Institution(
        institution_id="inst-1",
        name="General",
        time_zone=TIME_ZONE,
        ehr_user_id="SYNCUSER",
        ehr_user_id_type="External",
        appointment_find_enabled=False,
        appointment_find_cache_expiration_seconds=300,
    )


def _provider(slot_classification="DURATION_MATCHED"):
    return Provider(
        provider_id="prov-1",
        institution_id="inst-1",
        name="Dr. Allen",
        time_zone=TIME_ZONE,
        scheduling_system_id="EPIC",
        ehr_provider_id="E100",
        ehr_provider_id_type="External",
        slot_classification=slot_classification,
        active=True,
    )


def _appointment_type(appointment_type_id, duration, visit_type_id=None):
    return AppointmentType(
        appointment_type_id=appointment_type_id,
        provider_id="prov-1",
        name=f"{duration} min",
        scheduling_system_id="EPIC",
        duration_in_minutes=duration,
        ehr_visit_type_id=visit_type_id or f"VT-{appointment_type_id}",
        ehr_visit_type_id_type="External",
    )


def _department(ehr_department_id, department_id):
    return EhrDepartment(
        ehr_department_id=ehr_department_id,
        provider_id="prov-1",
        department_id=department_id,
        department_id_type="External",
        name=department_id,
    )


def _at(hour, minute=0):
    return datetime(TODAY.year, TODAY.month, TODAY.day, hour, minute)


class TestDurationMatched:
    def test_slot_lengths_select_appointment_types(self, caplog):
        """30 and 60 minute slots map to their types; the 45 minute slot has no type and is dropped."""
        source = FakeSlotSource([slot("9:00", 30), slot("9:30", 60), slot("10:30", 45)])
        types = [_appointment_type("A", 30), _appointment_type("B", 60)]

        with caplog.at_level(logging.INFO, logger="caresync.services.availability.builder"):
            row_set = build_availability(_provider(), _institution(), TODAY, [_department("D", "DEP1")], types, source)

        assert sorted(row_set.rows) == [
            AvailabilityRow(_at(9), "A", "D"),
            AvailabilityRow(_at(9, 30), "B", "D"),
        ]
        assert "No appointment type found for the 45-minute slot" in caplog.text

    def test_one_row_per_type_sharing_a_duration(self):
        source = FakeSlotSource([slot("9:00", 30)])
        types = [_appointment_type("A", 30), _appointment_type("A2", 30)]

        row_set = build_availability(_provider(), _institution(), TODAY, [_department("D", "DEP1")], types, source)

        assert sorted(r.appointment_type_id for r in row_set.rows) == ["A", "A2"]

    def test_unbookable_slots_are_dropped(self):
        source = FakeSlotSource(
            [
                slot("9:00", openings=0),
                slot("9:30", held="Lunch"),
                slot("10:00", unavailable="Out"),
                slot("10:30", held="   ", unavailable=""),
            ]
        )

        row_set = build_availability(
            _provider(), _institution(), TODAY, [_department("D", "DEP1")], [_appointment_type("A", 30)], source
        )

        assert [r.date_time for r in row_set.rows] == [_at(10, 30)]

    def test_one_unscoped_read_per_department(self):
        source = FakeSlotSource([slot("9:00", 30)])
        departments = [_department("D1", "DEP1"), _department("D2", "DEP2")]
        types = [_appointment_type("A", 30), _appointment_type("B", 60)]

        row_set = build_availability(_provider(), _institution(), TODAY, departments, types, source)

        assert len(source.schedule_calls) == 2
        assert all(call.visit_type_id is None for call in source.schedule_calls)
        assert sorted((r.ehr_department_id, r.appointment_type_id) for r in row_set.rows) == [("D1", "A"), ("D2", "A")]

    def test_request_carries_provider_department_and_user(self):
        source = FakeSlotSource([])

        build_availability(_provider(), _institution(), TODAY, [_department("D", "DEP1")], [_appointment_type("A", 30)], source)

        request = source.schedule_calls[0]
        assert request.provider_id == "E100"
        assert request.department_id == "DEP1"
        assert request.user_id == "SYNCUSER"
        assert request.date == TODAY


class TestVisitTypeFiltered:
    def test_one_read_per_type_and_department(self):
        source = FakeSlotSource([slot("9:00", 45), slot("9:45", 45, openings=0)])
        departments = [_department("D1", "DEP1"), _department("D2", "DEP2")]
        types = [_appointment_type("A", 30, "VT1"), _appointment_type("B", 60, "VT2"), _appointment_type("C", 15, "VT3")]

        row_set = build_availability(
            _provider("VISIT_TYPE_FILTERED"), _institution(), TODAY, departments, types, source
        )

        assert len(source.schedule_calls) == 6
        assert {c.visit_type_id for c in source.schedule_calls} == {"VT1", "VT2", "VT3"}
        # Length does not matter here: every bookable slot is a row for the scoped type
        assert len(row_set.rows) == 6
        assert {r.date_time for r in row_set.rows} == {_at(9)}

    def test_no_appointment_types_means_no_reads(self):
        source = FakeSlotSource([slot("9:00")])

        row_set = build_availability(
            _provider("VISIT_TYPE_FILTERED"), _institution(), TODAY, [_department("D", "DEP1")], [], source
        )

        assert source.schedule_calls == []
        assert row_set.rows == ()


class TestBuildAvailability:
    def test_same_responses_give_same_rows(self):
        source = FakeSlotSource([slot("9:00", 30), slot("9:30", 60)])
        args = (
            _provider(),
            _institution(),
            TODAY,
            [_department("D", "DEP1")],
            [_appointment_type("A", 30), _appointment_type("B", 60)],
            source,
        )

        assert build_availability(*args) == build_availability(*args)

    def test_row_set_carries_provider_date_and_zone(self):
        row_set = build_availability(_provider(), _institution(), TODAY, [], [], FakeSlotSource())

        assert row_set.provider_id == "prov-1"
        assert row_set.date == TODAY
        assert row_set.time_zone == TIME_ZONE

    def test_unknown_classification_raises(self):
        with pytest.raises(ValueError):
            build_availability(_provider("SOMETHING_ELSE"), _institution(), TODAY, [], [], FakeSlotSource())


class TestAvailabilityDebugDump:
    def test_groups_sorted_times_by_type(self):
        row_set = AvailabilityRowSet(
            provider_id="prov-1",
            date=TODAY,
            time_zone=TIME_ZONE,
            rows=(
                AvailabilityRow(_at(10), "B", "D"),
                AvailabilityRow(_at(9, 30), "A", "D"),
                AvailabilityRow(_at(9), "A", "D"),
            ),
        )

        assert format_availability_debug("Dr. Allen", "DURATION_MATCHED", row_set).splitlines() == [
            "Dr. Allen availability for 2020-04-27 (classification DURATION_MATCHED):",
            "Appointment Type ID A: [09:00, 09:30]",
            "Appointment Type ID B: [10:00]",
        ]

    def test_empty_row_set(self):
        row_set = AvailabilityRowSet(provider_id="prov-1", date=TODAY, time_zone=TIME_ZONE, rows=())

        assert format_availability_debug("Dr. Allen", "VISIT_TYPE_FILTERED", row_set).splitlines()[1] == "[none]"


class TestExampleScenario:
    def test_duration_matched_example(self):
        """NPV 60m and RPV 30m; only the bookable 60-minute 09:00 slot becomes a row."""
        provider = _provider()
        provider.time_zone = "UTC"
        day = datetime(2024, 3, 1).date()
        source = FakeSlotSource([slot("9:00", 60, openings=1), slot("9:30", 30, openings=0)])
        types = [_appointment_type("NPV", 60), _appointment_type("RPV", 30)]

        row_set = build_availability(provider, _institution(), day, [_department("D", "DEP1")], types, source)

        assert row_set.rows == (AvailabilityRow(datetime(2024, 3, 1, 9, 0), "NPV", "D"),)
