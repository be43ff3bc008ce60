"""Tests for appointment status, availability and the appointment endpoints."""

import json
from datetime import date, datetime

import pytest

from tests.support import collection_path, page
from zenmedix.schemas.appointments import AppointmentCreate, DisplayStatus
from zenmedix.services.appointment_service import (
    REASON_CLOSED,
    REASON_ERROR,
    REASON_OCCUPIED,
    REASON_OUT_OF_HOURS,
    AppointmentService,
    derive_status,
    expand_relations,
    is_pending_whatsapp,
    normalize_date,
    schedule_for_day,
    weekday_index,
)
from zenmedix.services.audit_service import AuditService

NOW = datetime(2025, 3, 10, 9, 0)

APPOINTMENTS = collection_path("appointments")
CLINIC = collection_path("clinics", "c1")

OPEN_WEEKDAYS = {
    "0": None,
    "1": {"open": True, "start": "09:00", "end": "14:00"},
    "2": {"open": False, "start": "09:00", "end": "14:00"},
}


class TestDerivedStatus:
    """Status shown for an appointment at read time."""

    def test_cancelled_wins(self):
        apt = {"status": "cancelled", "consultationCompleted": True, "date": "2025-03-01"}
        assert derive_status(apt, NOW) == DisplayStatus.CANCELLED

    @pytest.mark.parametrize(
        "apt",
        [
            {"consultationCompleted": True, "date": "2025-03-01", "time": "10:00"},
            {"status": "completed", "date": "2025-03-01"},
            {"status": "attended", "date": "2025-03-20"},
        ],
    )
    def test_attended(self, apt):
        assert derive_status(apt, NOW) == DisplayStatus.ATTENDED

    def test_past_appointment_is_no_show(self):
        apt = {"status": "scheduled", "date": "2025-03-10 00:00:00.000Z", "time": "08:30"}
        assert derive_status(apt, NOW) == DisplayStatus.NO_SHOW

    def test_future_appointment_is_scheduled(self):
        apt = {"status": "confirmed", "date": "2025-03-10", "time": "09:30"}
        assert derive_status(apt, NOW) == DisplayStatus.SCHEDULED

    def test_appointment_without_time_lasts_all_day(self):
        apt = {"status": "scheduled", "date": "2025-03-10"}
        assert derive_status(apt, NOW) == DisplayStatus.SCHEDULED
        assert derive_status(apt, datetime(2025, 3, 11, 0, 0)) == DisplayStatus.NO_SHOW

    def test_appointment_without_date_is_scheduled(self):
        assert derive_status({"status": "scheduled"}, NOW) == DisplayStatus.SCHEDULED


def test_normalize_date():
    assert normalize_date("2025-03-10 00:00:00.000Z") == "2025-03-10"
    assert normalize_date("2025-03-10T12:00:00Z") == "2025-03-10"
    assert normalize_date(date(2025, 3, 10)) == "2025-03-10"
    assert normalize_date("") is None


def test_pending_whatsapp():
    assert is_pending_whatsapp({"source": "whatsapp"}) is True
    assert is_pending_whatsapp({"source": "whatsapp", "patient": "p1"}) is False
    assert is_pending_whatsapp({"source": "whatsapp", "consultationCompleted": True}) is False
    assert is_pending_whatsapp({"source": "manual"}) is False


def test_expand_relations():
    record = {
        "id": "a1",
        "patient": "p1",
        "clinic": "c1",
        "expand": {"patient": {"id": "p1", "firstName": "Luis"}},
    }

    flat = expand_relations(record)

    assert flat["patient"] == {"id": "p1", "firstName": "Luis"}
    assert flat["clinic"] == "c1"


def test_weekday_index_starts_on_sunday():
    assert weekday_index(date(2025, 3, 9)) == 0
    assert weekday_index(date(2025, 3, 10)) == 1
    assert weekday_index(date(2025, 3, 15)) == 6


def test_schedule_for_day_accepts_every_shape():
    day = {"open": True, "start": "09:00", "end": "14:00"}

    assert schedule_for_day({"1": day}, 1) == day
    assert schedule_for_day({1: day}, 1) == day
    assert schedule_for_day([None, day], 1) == day
    assert schedule_for_day([None], 1) is None
    assert schedule_for_day("invalid", 1) is None
    assert schedule_for_day({"1": "09:00-14:00"}, 1) is None
    assert schedule_for_day([None, True], 1) is None


def availability_stub(stub, existing: int = 0, clinic: dict | None = None) -> None:
    items = [{"id": f"a{i}"} for i in range(existing)]
    stub.on("GET", APPOINTMENTS, page(items))
    if clinic is not None:
        stub.on("GET", CLINIC, clinic)


class TestAvailability:
    """Slot availability checks."""

    @pytest.fixture
    def service(self, store, clock) -> AppointmentService:
        return AppointmentService(store, clock=clock)

    @pytest.mark.asyncio
    async def test_free_slot(self, service, stub):
        availability_stub(stub, clinic={"id": "c1", "schedule": OPEN_WEEKDAYS})

        result = await service.check_availability("c1", "d1", date(2025, 3, 10), "10:00")

        assert result.available is True
        assert result.reason is None

    @pytest.mark.asyncio
    async def test_filter_covers_the_whole_day_and_relations(self, service, stub):
        availability_stub(stub)

        await service.check_availability("c1", "d1", date(2025, 3, 10), "10:00")

        expression = stub.calls("GET", APPOINTMENTS)[0].url.params["filter"]
        assert "date >= '2025-03-10 00:00:00'" in expression
        assert "date <= '2025-03-10 23:59:59'" in expression
        assert "time = '10:00'" in expression
        assert "status != 'cancelled'" in expression
        assert "doctor = 'd1'" in expression
        assert "clinic = 'c1'" in expression

    @pytest.mark.asyncio
    async def test_occupied_slot(self, service, stub):
        availability_stub(stub, existing=1)

        result = await service.check_availability(None, None, date(2025, 3, 10), "10:00")

        assert result.available is False
        assert result.reason == REASON_OCCUPIED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("day", [date(2025, 3, 9), date(2025, 3, 11), date(2025, 3, 12)])
    async def test_closed_day(self, service, stub, day):
        availability_stub(stub, clinic={"id": "c1", "schedule": OPEN_WEEKDAYS})

        result = await service.check_availability("c1", None, day, "10:00")

        assert result.available is False
        assert result.reason == REASON_CLOSED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("time", "available"),
        [("08:59", False), ("09:00", True), ("14:00", True), ("14:01", False)],
    )
    async def test_opening_hours_are_inclusive(self, service, stub, time, available):
        availability_stub(stub, clinic={"id": "c1", "schedule": OPEN_WEEKDAYS})

        result = await service.check_availability("c1", None, date(2025, 3, 10), time)

        assert result.available is available
        if not available:
            assert result.reason == REASON_OUT_OF_HOURS

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "monday",
        [{"open": True}, {"open": True, "start": "09:00"}, {"open": True, "end": "14:00"}],
    )
    async def test_missing_hours_leave_the_day_open(self, service, stub, monday):
        availability_stub(stub, clinic={"id": "c1", "schedule": {"1": monday}})

        result = await service.check_availability("c1", None, date(2025, 3, 10), "10:00")

        assert result.available is True

    @pytest.mark.asyncio
    async def test_malformed_day_entry_counts_as_closed(self, service, stub):
        availability_stub(stub, clinic={"id": "c1", "schedule": {"1": "09:00-14:00"}})

        result = await service.check_availability("c1", None, date(2025, 3, 10), "10:00")

        assert result.available is False
        assert result.reason == REASON_CLOSED

    @pytest.mark.asyncio
    async def test_clinic_without_schedule_is_always_open(self, service, stub):
        availability_stub(stub, clinic={"id": "c1", "schedule": None})

        result = await service.check_availability("c1", None, date(2025, 3, 9), "22:00")

        assert result.available is True

    @pytest.mark.asyncio
    async def test_clinic_lookup_failure_is_ignored(self, service, stub):
        availability_stub(stub)
        stub.on("GET", CLINIC, {"message": "boom"}, status_code=500)

        result = await service.check_availability("c1", None, date(2025, 3, 9), "10:00")

        assert result.available is True

    @pytest.mark.asyncio
    async def test_query_failure_reports_error(self, service, stub):
        stub.on("GET", APPOINTMENTS, {"message": "boom"}, status_code=500)

        result = await service.check_availability("c1", None, date(2025, 3, 10), "10:00")

        assert result.available is False
        assert result.reason == REASON_ERROR


class TestAppointmentService:
    """Listing cache and writes."""

    @pytest.mark.asyncio
    async def test_list_all_is_cached_until_a_write(self, store, storage, clock, stub):
        stub.on("GET", APPOINTMENTS, page([{"id": "a1", "date": "2025-03-10"}]))
        stub.on("POST", APPOINTMENTS, {"id": "a2"})
        service = AppointmentService(store, cache=storage, clock=clock)

        await service.list_all()
        await service.list_all()
        assert len(stub.calls("GET", APPOINTMENTS)) == 1

        await service.create(
            AppointmentCreate(patient_name="Luis", date=date(2025, 3, 11), time="10:00")
        )
        await service.list_all()
        assert len(stub.calls("GET", APPOINTMENTS)) == 2

    @pytest.mark.asyncio
    async def test_create_maps_relations_and_audits(self, store, clock, stub):
        stub.on("POST", APPOINTMENTS, {"id": "a9"})
        service = AppointmentService(store, audit=AuditService(store, clock=clock), clock=clock)

        await service.create(
            AppointmentCreate(
                patient_name="Luis Pérez",
                date=date(2025, 3, 11),
                time="10:00",
                patient_id="p1",
                clinic_id="c1",
            )
        )

        body = json.loads(stub.calls("POST", APPOINTMENTS)[0].content)
        assert body["patient"] == "p1"
        assert body["clinic"] == "c1"
        assert "patientId" not in body
        assert "doctor" not in body
        assert body["patientName"] == "Luis Pérez"
        assert body["status"] == "scheduled"

        audit = json.loads(stub.calls("POST", collection_path("audit_logs"))[0].content)
        assert audit["action"] == "APPOINTMENT_CREATE"
        assert audit["entityId"] == "a9"


@pytest.mark.asyncio
async def test_list_endpoint_adds_display_status(client, stub, login_as):
    """Test every role may list appointments and gets derived statuses."""
    stub.on(
        "GET",
        APPOINTMENTS,
        page(
            [
                {"id": "a1", "status": "scheduled", "date": "2025-03-10", "time": "08:00"},
                {"id": "a2", "status": "scheduled", "date": "2025-03-10", "time": "11:00"},
            ]
        ),
    )

    response = await client.get("/api/v1/appointments/", headers=login_as("recepcion"))

    assert response.status_code == 200
    statuses = {apt["id"]: apt["displayStatus"] for apt in response.json()}
    assert statuses == {"a1": "no_show", "a2": "scheduled"}


@pytest.mark.asyncio
async def test_availability_endpoint(client, stub, auth_headers):
    availability_stub(stub, existing=1)

    response = await client.get(
        "/api/v1/appointments/availability",
        params={"date": "2025-03-10", "time": "10:00", "clinicId": "c1"},
        headers=auth_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"available": False, "reason": REASON_OCCUPIED}


@pytest.mark.asyncio
async def test_availability_endpoint_validates_time(client, auth_headers):
    response = await client.get(
        "/api/v1/appointments/availability",
        params={"date": "2025-03-10", "time": "25:00"},
        headers=auth_headers,
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_missing_appointment_is_404(client, stub, auth_headers):
    response = await client.get("/api/v1/appointments/nope", headers=auth_headers)

    assert response.status_code == 404
    assert stub.requests[0].url.path == collection_path("appointments", "nope")
