"""Encounters (visits).

API endpoints used:
- GET  /{practiceid}/patients/{patientid}/encounters — Patient's encounters
- GET  /{practiceid}/encounters/{encounterid}        — Encounter details
- POST /{practiceid}/encounters                      — Open an encounter
- PUT  /{practiceid}/encounters/{encounterid}        — Update an encounter
"""

from __future__ import annotations

from typing import Any

from athena_mcp.services.base import DomainService, map_fields, unwrap_list, unwrap_record

ENCOUNTER_FILTERS = {
    "department_id": "departmentid",
    "start_date": "startdate",
    "end_date": "enddate",
    "status": "status",
}

CREATE_ENCOUNTER_FIELDS = {
    "patient_id": "patientid",
    "department_id": "departmentid",
    "provider_id": "providerid",
    "encounter_date": "encounterdate",
    "encounter_type": "encountertype",
    "chief_complaint": "chiefcomplaint",
    "appointment_id": "appointmentid",
}

UPDATE_ENCOUNTER_FIELDS = {
    "chief_complaint": "chiefcomplaint",
    "diagnosis_codes": "diagnosiscodes",
    "procedure_codes": "procedurecodes",
    "status": "status",
}


class EncounterService(DomainService):
    async def get_patient_encounters(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("patients", patient_id, "encounters"),
            params=map_fields(filters, ENCOUNTER_FILTERS),
        )
        return unwrap_list(body, "encounters")

    async def get_encounter(self, encounter_id: str) -> dict[str, Any]:
        body = await self.client.get(self.path("encounters", encounter_id))
        return unwrap_record(body)

    async def create_encounter(self, **fields: Any) -> dict[str, Any]:
        body = await self.client.post(
            self.path("encounters"), data=map_fields(fields, CREATE_ENCOUNTER_FIELDS)
        )
        return unwrap_record(body)

    async def update_encounter(self, encounter_id: str, **fields: Any) -> dict[str, Any]:
        """Update chief complaint, diagnosis/procedure codes or status.

        Codes are comma-separated strings (ICD-10 and CPT respectively).
        """
        body = await self.client.put(
            self.path("encounters", encounter_id),
            data=map_fields(fields, UPDATE_ENCOUNTER_FIELDS),
        )
        return unwrap_record(body)
