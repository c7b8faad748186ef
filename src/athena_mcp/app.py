"""FastAPI webhook bridge — plain HTTP access for workflow-automation tools.

Every route answers ``{"success": true, "data": ...}``. Any failure,
whether an upstream error, an authentication failure or a malformed
request body, answers HTTP 500 with ``{"success": false, "error": "..."}``.
The bridge does not distinguish error kinds by status code.

Request bodies use the same caller-facing field names as the MCP tools
(``department_id``, ``medication_name``, ...).

FastAPI automatically generates API documentation (visit /docs when
running) and validates request data using Pydantic models.

Run locally with:
    athena-bridge
or:
    uvicorn athena_mcp.app:app --reload --port 3000
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from athena_mcp.errors import AthenaError, ConfigurationError
from athena_mcp.services import AthenaServices, close_services, get_services, set_services

logger = logging.getLogger(__name__)

SERVICE_NAME = "athenahealth-webhook-bridge"
VERSION = "0.1.0"


# --- Request models ---


class PatientSearchRequest(BaseModel):
    firstname: str | None = None
    lastname: str | None = None
    dob: str | None = None
    phone: str | None = None
    email: str | None = None
    department_id: str | None = None
    limit: int | None = None


class CreatePatientRequest(BaseModel):
    firstname: str
    lastname: str
    dob: str
    sex: str
    department_id: str
    email: str | None = None
    mobile_phone: str | None = None
    home_phone: str | None = None
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    zip: str | None = None
    guarantor_firstname: str | None = None
    guarantor_lastname: str | None = None
    guarantor_dob: str | None = None
    guarantor_relationship: str | None = None


class AvailabilityRequest(BaseModel):
    department_id: str
    start_date: str
    end_date: str
    provider_id: str | None = None
    appointment_type: str | None = None


class CreateAppointmentRequest(BaseModel):
    patient_id: str
    provider_id: str
    department_id: str
    appointment_type: str
    date: str
    start_time: str
    duration: str | None = None
    reason: str | None = None
    notes: str | None = None


class CreatePrescriptionRequest(BaseModel):
    medication_name: str
    dosage: str
    route: str
    frequency: str
    quantity: str
    refills: str
    days_supply: str
    pharmacy_id: str | None = None
    notes: str | None = None


class DrugInteractionRequest(BaseModel):
    medications: list[str]


class AcknowledgeAlertRequest(BaseModel):
    acknowledged_by: str


class CreateEncounterRequest(BaseModel):
    patient_id: str
    department_id: str
    encounter_date: str
    provider_id: str | None = None
    encounter_type: str | None = None
    chief_complaint: str | None = None
    appointment_id: str | None = None


class UpdateEncounterRequest(BaseModel):
    chief_complaint: str | None = None
    diagnosis_codes: str | None = None
    procedure_codes: str | None = None
    status: str | None = None


def _ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


# --- App ---


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await close_services()


app = FastAPI(
    title="athenahealth Webhook Bridge",
    description="athenahealth practice-management operations as plain JSON endpoints",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(AthenaError)
async def athena_error_handler(request: Request, exc: AthenaError) -> JSONResponse:
    logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
    )
    logger.warning("%s %s rejected: %s", request.method, request.url.path, problems)
    return JSONResponse(status_code=500, content={"success": False, "error": problems})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s raised %s", request.method, request.url.path, type(exc).__name__)
    return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint. Returns 200 if the server is running."""
    return {"status": "ok", "service": SERVICE_NAME}


@app.get("/health/upstream")
async def upstream_health(services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    """Ping athenahealth with the configured credentials."""
    return _ok(await services.health_check())


@app.get("/")
async def index() -> dict[str, Any]:
    """List every endpoint the bridge serves."""
    return {
        "service": "athenahealth Webhook Bridge",
        "version": VERSION,
        "endpoints": {
            "administrative": [
                "GET /departments - List all departments",
                "GET /departments/{department_id} - Get department details",
                "GET /providers - List all providers",
                "POST /patients/search - Search for patients",
                "POST /patients - Create a new patient",
                "GET /patients/{patient_id} - Get patient details",
                "GET /patients/{patient_id}/summary - Get clinical summary",
            ],
            "scheduling": [
                "POST /appointments/availability - Check appointment availability",
                "POST /appointments - Create an appointment",
            ],
            "clinical": [
                "GET /patients/{patient_id}/allergies - Get patient allergies",
                "GET /patients/{patient_id}/prescriptions - Get patient prescriptions",
                "GET /patients/{patient_id}/problems - Get patient problems",
                "GET /patients/{patient_id}/vitals - Get patient vitals",
                "GET /patients/{patient_id}/labs - Get patient lab results",
                "GET /patients/{patient_id}/alerts - Get clinical alerts",
                "POST /patients/{patient_id}/prescriptions - Create prescription",
                "POST /patients/{patient_id}/drug-interactions - Check drug interactions",
                "POST /alerts/{alert_id}/acknowledge - Acknowledge alert",
            ],
            "encounters": [
                "GET /patients/{patient_id}/encounters - Get patient encounters",
                "GET /encounters/{encounter_id} - Get specific encounter",
                "POST /encounters - Create new encounter",
                "PUT /encounters/{encounter_id} - Update encounter",
            ],
            "health": [
                "GET /health - Bridge liveness",
                "GET /health/upstream - athenahealth connectivity",
            ],
        },
    }


# --- Administrative ---


@app.get("/departments")
async def departments(services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    return _ok(await services.scheduling.list_departments())


@app.get("/departments/{department_id}")
async def department(
    department_id: str, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    return _ok(await services.scheduling.get_department(department_id))


@app.get("/providers")
async def providers(
    name: str | None = None,
    specialty: str | None = None,
    limit: int | None = None,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(await services.scheduling.list_providers(name=name, specialty=specialty, limit=limit))


@app.post("/patients/search")
async def search_patients(
    body: PatientSearchRequest, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    return _ok(await services.patients.search_patients(**body.model_dump()))


@app.post("/patients")
async def create_patient(
    body: CreatePatientRequest, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    patient = await services.patients.create_patient(**body.model_dump())
    services.audit.record("PATIENT_CREATE", {"result": "success", "resource_type": "PATIENT"})
    return _ok(patient)


@app.get("/patients/{patient_id}")
async def get_patient(patient_id: str, services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    return _ok(await services.patients.get_patient(patient_id))


@app.get("/patients/{patient_id}/summary")
async def clinical_summary(
    patient_id: str, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    return _ok(await services.clinical_summary(patient_id))


# --- Scheduling ---


@app.post("/appointments/availability")
async def appointment_availability(
    body: AvailabilityRequest, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    return _ok(await services.scheduling.check_availability(**body.model_dump()))


@app.post("/appointments")
async def create_appointment(
    body: CreateAppointmentRequest, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    appointment = await services.scheduling.create_appointment(**body.model_dump())
    services.audit.record(
        "APPOINTMENT_CREATE",
        {"patient_id": body.patient_id, "result": "success", "resource_type": "APPOINTMENT"},
    )
    return _ok(appointment)


# --- Clinical ---


@app.get("/patients/{patient_id}/allergies")
async def allergies(patient_id: str, services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    return _ok(await services.clinical.get_allergies(patient_id))


@app.get("/patients/{patient_id}/prescriptions")
async def prescriptions(
    patient_id: str,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(
        await services.clinical.get_prescriptions(
            patient_id, status=status, start_date=start_date, end_date=end_date
        )
    )


@app.get("/patients/{patient_id}/problems")
async def problems(patient_id: str, services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    return _ok(await services.clinical.get_problems(patient_id))


@app.get("/patients/{patient_id}/vitals")
async def vitals(
    patient_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(
        await services.clinical.get_vitals(patient_id, start_date=start_date, end_date=end_date)
    )


@app.get("/patients/{patient_id}/labs")
async def labs(
    patient_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(
        await services.clinical.get_labs(patient_id, start_date=start_date, end_date=end_date)
    )


@app.get("/patients/{patient_id}/alerts")
async def alerts(patient_id: str, services: AthenaServices = Depends(get_services)) -> dict[str, Any]:
    return _ok(await services.clinical.get_alerts(patient_id))


@app.post("/patients/{patient_id}/prescriptions")
async def create_prescription(
    patient_id: str,
    body: CreatePrescriptionRequest,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    prescription = await services.clinical.create_prescription(patient_id, **body.model_dump())
    services.audit.record(
        "PRESCRIPTION_CREATE",
        {"patient_id": patient_id, "result": "success", "resource_type": "PRESCRIPTION"},
    )
    return _ok(prescription)


@app.post("/patients/{patient_id}/drug-interactions")
async def drug_interactions(
    patient_id: str,
    body: DrugInteractionRequest,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(await services.clinical.check_drug_interactions(patient_id, body.medications))


@app.post("/alerts/{alert_id}/acknowledge")
async def acknowledge_alert(
    alert_id: str,
    body: AcknowledgeAlertRequest,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    result = await services.clinical.acknowledge_alert(alert_id, body.acknowledged_by)
    services.audit.record(
        "ALERT_ACKNOWLEDGE",
        {"resource_type": "CLINICAL_ALERT", "alert_id": alert_id, "result": "success"},
    )
    return _ok(result)


# --- Encounters ---


@app.get("/patients/{patient_id}/encounters")
async def patient_encounters(
    patient_id: str,
    department_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    return _ok(
        await services.encounters.get_patient_encounters(
            patient_id,
            department_id=department_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
    )


@app.get("/encounters/{encounter_id}")
async def get_encounter(
    encounter_id: str, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    return _ok(await services.encounters.get_encounter(encounter_id))


@app.post("/encounters")
async def create_encounter(
    body: CreateEncounterRequest, services: AthenaServices = Depends(get_services)
) -> dict[str, Any]:
    encounter = await services.encounters.create_encounter(**body.model_dump())
    services.audit.record(
        "ENCOUNTER_CREATE",
        {"patient_id": body.patient_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return _ok(encounter)


@app.put("/encounters/{encounter_id}")
async def update_encounter(
    encounter_id: str,
    body: UpdateEncounterRequest,
    services: AthenaServices = Depends(get_services),
) -> dict[str, Any]:
    encounter = await services.encounters.update_encounter(encounter_id, **body.model_dump())
    services.audit.record(
        "ENCOUNTER_UPDATE",
        {"encounter_id": encounter_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return _ok(encounter)


def main() -> None:
    """Entry point for the athena-bridge console script."""
    import uvicorn

    from athena_mcp.config import load_settings
    from athena_mcp.logging_setup import setup_logging
    from athena_mcp.services import build_services

    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(stream=sys.stderr)
        for problem in e.problems:
            logger.error("Configuration error: %s", problem)
        logger.error("%s", e)
        sys.exit(1)

    audit = setup_logging(settings)
    set_services(build_services(settings, audit=audit))
    logger.info("athenahealth webhook bridge on http://%s:%s", settings.webhook_host, settings.webhook_port)
    uvicorn.run(app, host=settings.webhook_host, port=settings.webhook_port, log_config=None)
