"""Scheduling — providers, departments and appointments.

API endpoints used:
- GET  /{practiceid}/providers                            — Provider directory
- GET  /{practiceid}/providers/{providerid}               — Provider details
- GET  /{practiceid}/departments                          — Department directory
- GET  /{practiceid}/departments/{departmentid}           — Department details
- GET  /{practiceid}/appointments/open                    — Open slots
- POST /{practiceid}/appointments                         — Book an appointment
- GET  /{practiceid}/patients/{patientid}/appointments    — Patient's appointments
"""

from __future__ import annotations

from typing import Any

from athena_mcp.services.base import DomainService, map_fields, unwrap_list, unwrap_record

PROVIDER_FILTERS = {"name": "name", "specialty": "specialty", "limit": "limit", "offset": "offset"}

AVAILABILITY_FIELDS = {
    "department_id": "departmentid",
    "start_date": "startdate",
    "end_date": "enddate",
    "provider_id": "providerid",
    "appointment_type": "appointmenttype",
}

APPOINTMENT_FIELDS = {
    "patient_id": "patientid",
    "provider_id": "providerid",
    "department_id": "departmentid",
    "appointment_type": "appointmenttype",
    "date": "date",
    "start_time": "starttime",
    "duration": "duration",
    "reason": "reasonforvisit",
    "notes": "appointmentnotes",
}

PATIENT_APPOINTMENT_FILTERS = {"start_date": "startdate", "end_date": "enddate", "status": "status"}


class SchedulingService(DomainService):
    """Practice directory lookups and appointment booking."""

    async def list_providers(self, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("providers"), params=map_fields(filters, PROVIDER_FILTERS)
        )
        return unwrap_list(body, "providers")

    async def get_provider(self, provider_id: str) -> dict[str, Any]:
        body = await self.client.get(self.path("providers", provider_id))
        return unwrap_record(body)

    async def list_departments(self) -> list[dict[str, Any]]:
        body = await self.client.get(self.path("departments"))
        return unwrap_list(body, "departments")

    async def get_department(self, department_id: str) -> dict[str, Any]:
        body = await self.client.get(self.path("departments", department_id))
        return unwrap_record(body)

    async def check_availability(self, **criteria: Any) -> list[dict[str, Any]]:
        """Open appointment slots for a department and date range."""
        body = await self.client.get(
            self.path("appointments", "open"),
            params=map_fields(criteria, AVAILABILITY_FIELDS),
        )
        return unwrap_list(body, "appointments")

    async def create_appointment(self, **fields: Any) -> dict[str, Any]:
        body = await self.client.post(
            self.path("appointments"), data=map_fields(fields, APPOINTMENT_FIELDS)
        )
        return unwrap_record(body)

    async def get_patient_appointments(self, patient_id: str, **filters: Any) -> list[dict[str, Any]]:
        body = await self.client.get(
            self.path("patients", patient_id, "appointments"),
            params=map_fields(filters, PATIENT_APPOINTMENT_FILTERS),
        )
        return unwrap_list(body, "appointments")
