"""Tests for patients and consultations."""

import json
from datetime import date

import pytest

from tests.support import collection_path, page
from zenmedix.schemas.consultations import ConsultationCreate
from zenmedix.schemas.patients import PatientCreate
from zenmedix.services.audit_service import AuditService
from zenmedix.services.consultation_service import ConsultationService
from zenmedix.services.patient_service import SEARCH_LIMIT, PatientService, calculate_age

PATIENTS = collection_path("patients")
CONSULTATIONS = collection_path("consultations")
AUDIT_LOGS = collection_path("audit_logs")


@pytest.mark.parametrize(
    ("dob", "age"),
    [
        ("1990-03-10", 35),
        ("1990-03-11", 34),
        ("1990-03-09 00:00:00.000Z", 35),
        (date(2000, 1, 1), 25),
        ("", None),
        ("not a date", None),
    ],
)
def test_calculate_age(dob, age):
    assert calculate_age(dob, date(2025, 3, 10)) == age


@pytest.fixture
def audit(store, clock, make_user) -> AuditService:
    return AuditService(store, user=make_user(), clock=clock)


@pytest.fixture
def patients(store, audit, clock) -> PatientService:
    return PatientService(store, audit=audit, clock=clock)


class TestPatientService:
    """Patient reads and writes."""

    @pytest.mark.asyncio
    async def test_search_filter_is_escaped(self, patients, stub):
        stub.on("GET", PATIENTS, page([{"id": "p1", "firstName": "Luis", "dob": "1990-01-01"}]))

        results = await patients.search("O'Brien")

        params = stub.calls("GET", PATIENTS)[0].url.params
        assert params["filter"] == (
            "firstName ~ 'O\\'Brien' || lastName ~ 'O\\'Brien' "
            "|| dni ~ 'O\\'Brien' || phone ~ 'O\\'Brien'"
        )
        assert params["perPage"] == str(SEARCH_LIMIT)
        assert results[0]["age"] == 35

    @pytest.mark.asyncio
    async def test_get_audits_the_view(self, patients, stub):
        stub.on(
            "GET",
            collection_path("patients", "p1"),
            {"id": "p1", "firstName": "Luis", "lastName": "Pérez"},
        )

        record = await patients.get("p1")

        assert record["age"] is None
        body = json.loads(stub.calls("POST", AUDIT_LOGS)[0].content)
        assert body["action"] == "PATIENT_VIEW"
        assert body["details"] == {"patientName": "Luis Pérez"}

    @pytest.mark.asyncio
    async def test_create_sends_camel_case(self, patients, stub):
        stub.on("POST", PATIENTS, {"id": "p2", "dob": "1985-07-01"})

        await patients.create(
            PatientCreate(
                first_name="Ana",
                last_name="Ruiz",
                dob=date(1985, 7, 1),
                blood_type="O+",
            )
        )

        body = json.loads(stub.calls("POST", PATIENTS)[0].content)
        assert body == {
            "firstName": "Ana",
            "lastName": "Ruiz",
            "dob": "1985-07-01",
            "bloodType": "O+",
        }
        assert stub.audit_actions() == ["PATIENT_CREATE"]

    @pytest.mark.asyncio
    async def test_touch_last_visit_is_best_effort(self, patients, stub):
        stub.on("PATCH", collection_path("patients", "p1"), {"message": "no"}, status_code=403)

        assert await patients.touch_last_visit("p1") is False


class TestConsultationService:
    """Recording consultations."""

    @pytest.fixture
    def consultations(self, store, patients, audit) -> ConsultationService:
        return ConsultationService(store, patients, audit=audit)

    @pytest.mark.asyncio
    async def test_create_maps_aliases_and_updates_last_visit(self, consultations, stub, clock):
        stub.on("POST", CONSULTATIONS, {"id": "k1"})
        stub.on("PATCH", collection_path("patients", "p1"), {"id": "p1"})

        await consultations.create(
            ConsultationCreate(patient_id="p1", appointment_id="a1", diagnosis="Gripe")
        )

        body = json.loads(stub.calls("POST", CONSULTATIONS)[0].content)
        assert body == {
            "patient": "p1",
            "appointment": "a1",
            "type": "consultation",
            "diagnosis": "Gripe",
        }
        visit = json.loads(stub.calls("PATCH", collection_path("patients", "p1"))[0].content)
        assert visit == {"lastVisit": clock().isoformat()}
        assert stub.audit_actions() == ["CONSULTATION_CREATE"]

    @pytest.mark.asyncio
    async def test_explicit_relation_wins_over_alias(self, consultations, stub):
        stub.on("POST", CONSULTATIONS, {"id": "k1"})
        stub.on("PATCH", collection_path("patients", "p1"), {"id": "p1"})

        await consultations.create(ConsultationCreate(patient="p1", patient_id="p9"))

        body = json.loads(stub.calls("POST", CONSULTATIONS)[0].content)
        assert body["patient"] == "p1"

    @pytest.mark.asyncio
    async def test_last_visit_failure_does_not_fail_creation(self, consultations, stub):
        stub.on("POST", CONSULTATIONS, {"id": "k1"})
        stub.on("PATCH", collection_path("patients", "p1"), {"message": "boom"}, status_code=500)

        record = await consultations.create(ConsultationCreate(patient_id="p1"))

        assert record == {"id": "k1"}

    @pytest.mark.asyncio
    async def test_list_by_patient(self, consultations, stub):
        stub.on("GET", CONSULTATIONS, page([{"id": "k1"}]))

        assert await consultations.list_by_patient("p1") == [{"id": "k1"}]

        params = stub.calls("GET", CONSULTATIONS)[0].url.params
        assert params["filter"] == "patient = 'p1'"
        assert params["expand"] == "doctor,appointment"


@pytest.mark.asyncio
async def test_patient_search_endpoint(client, stub, auth_headers):
    stub.on("GET", PATIENTS, page([{"id": "p1", "firstName": "Luis"}]))

    response = await client.get("/api/v1/patients/", params={"q": "Luis"}, headers=auth_headers)

    assert response.status_code == 200
    assert response.json()[0]["id"] == "p1"
    assert "firstName ~ 'Luis'" in stub.calls("GET", PATIENTS)[0].url.params["filter"]


@pytest.mark.asyncio
async def test_patients_are_hidden_from_reception(client, login_as):
    response = await client.get("/api/v1/patients/", headers=login_as("recepcion"))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_patient_validation(client, auth_headers):
    response = await client.post(
        "/api/v1/patients/",
        json={"firstName": "", "lastName": "Ruiz"},
        headers=auth_headers,
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"
