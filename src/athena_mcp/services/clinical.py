"""Clinical data — allergies, problems, prescriptions, vitals, labs, alerts.

API endpoints used:
- GET  /{practiceid}/patients/{patientid}/allergies         — Allergy list
- GET  /{practiceid}/patients/{patientid}/problems          — Problem list
- GET  /{practiceid}/patients/{patientid}/prescriptions     — Prescriptions
- POST /{practiceid}/patients/{patientid}/prescriptions     — New prescription
- GET  /{practiceid}/patients/{patientid}/vitals            — Vital signs
- GET  /{practiceid}/patients/{patientid}/labs              — Lab results
- GET  /{practiceid}/patients/{patientid}/clinicalalerts    — Decision-support alerts
- POST /{practiceid}/clinicalalerts/{alertid}/acknowledge   — Acknowledge alert
- POST /{practiceid}/patients/{patientid}/druginteractions  — Interaction check

Note: several of these are not provisioned on the preview tier. Those
calls fail with UnavailableEndpointError rather than a bare UpstreamError.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from athena_mcp.services.base import DomainService, map_fields, unwrap_list, unwrap_record

PRESCRIPTION_FIELDS = {
    "medication_name": "medicationname",
    "dosage": "dosage",
    "route": "route",
    "frequency": "frequency",
    "quantity": "quantity",
    "refills": "refills",
    "days_supply": "daysupply",
    "pharmacy_id": "pharmacyid",
    "notes": "notes",
}

PRESCRIPTION_FILTERS = {"status": "status", "start_date": "startdate", "end_date": "enddate"}

DATE_RANGE_FILTERS = {"start_date": "startdate", "end_date": "enddate"}

LAB_FILTERS = {**DATE_RANGE_FILTERS, "lab_result_id": "labresultid"}

ALERT_FILTERS = {"alert_type": "alerttype", "severity": "severity", "acknowledged": "acknowledged"}


class ClinicalService(DomainService):
    """Read and write a patient's clinical record."""

    async def get_allergies(self, patient_id: str) -> list[dict[str, Any]]:
        body = await self.client.get(self.path("patients", patient_id, "allergies"))
        return unwrap_list(body, "allergies")

    async def get_problems(self, patient_id: str) -> list[dict[str, Any]]:
        body = await self.client.get(self.path("patients", patient_id, "problems"))
        return unwrap_list(body, "problems")

    async def get_prescriptions(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        """Prescription history, optionally filtered by status and date range."""
        body = await self.client.get(
            self.path("patients", patient_id, "prescriptions"),
            params=map_fields(filters, PRESCRIPTION_FILTERS),
        )
        return unwrap_list(body, "prescriptions")

    async def create_prescription(self, patient_id: str, **fields: Any) -> dict[str, Any]:
        """Create a prescription.

        Takes caller-facing names (``medication_name``, ``days_supply``, ...)
        and sends them form-encoded under athenahealth's names.
        """
        body = await self.client.post(
            self.path("patients", patient_id, "prescriptions"),
            data=map_fields(fields, PRESCRIPTION_FIELDS),
        )
        return unwrap_record(body)

    async def get_vitals(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("patients", patient_id, "vitals"),
            params=map_fields(filters, DATE_RANGE_FILTERS),
        )
        return unwrap_list(body, "vitals")

    async def get_labs(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("patients", patient_id, "labs"),
            params=map_fields(filters, LAB_FILTERS),
        )
        return unwrap_list(body, "labs")

    async def get_alerts(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("patients", patient_id, "clinicalalerts"),
            params=map_fields(filters, ALERT_FILTERS),
        )
        return unwrap_list(body, "clinicalalerts")

    async def acknowledge_alert(self, alert_id: str, acknowledged_by: str) -> dict[str, Any]:
        body = await self.client.post(
            self.path("clinicalalerts", alert_id, "acknowledge"),
            data={"acknowledgedby": acknowledged_by},
        )
        return unwrap_record(body)

    async def check_drug_interactions(
        self, patient_id: str, medications: Sequence[str]
    ) -> list[dict[str, Any]]:
        """Check a list of medications (names or RxNorm codes) for interactions.

        The upstream form encodes the list as ``medications[0]``,
        ``medications[1]``, ...
        """
        form = {f"medications[{index}]": med for index, med in enumerate(medications)}
        body = await self.client.post(
            self.path("patients", patient_id, "druginteractions"), data=form
        )
        return unwrap_list(body, "interactions")
