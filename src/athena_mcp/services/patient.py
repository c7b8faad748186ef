"""Patient search, details, registration and insurance.

API endpoints used:
- GET  /{practiceid}/patients                       — Search patients
- GET  /{practiceid}/patients/{patientid}           — Patient demographics
- POST /{practiceid}/patients                       — Register a patient
- GET  /{practiceid}/patients/{patientid}/insurances — Insurance policies
"""

from __future__ import annotations

from typing import Any

from athena_mcp.errors import SearchCriteriaError
from athena_mcp.services.base import DomainService, map_fields, unwrap_list, unwrap_record

SEARCH_FIELDS = {
    "firstname": "firstname",
    "lastname": "lastname",
    "dob": "dob",
    "department_id": "departmentid",
    "phone": "phone",
    "email": "email",
    "limit": "limit",
}

# A search must carry at least one of these; "limit" alone does not count
SEARCH_FILTERS = ("firstname", "lastname", "dob", "department_id", "phone", "email")

SEARCH_EXAMPLE = {"firstname": "John", "lastname": "Doe", "limit": 10}

CREATE_PATIENT_FIELDS = {
    "firstname": "firstname",
    "lastname": "lastname",
    "dob": "dob",
    "sex": "sex",
    "department_id": "departmentid",
    "email": "email",
    "mobile_phone": "mobilephone",
    "home_phone": "homephone",
    "address1": "address1",
    "city": "city",
    "state": "state",
    "zip": "zip",
    "guarantor_firstname": "guarantorfirstname",
    "guarantor_lastname": "guarantorlastname",
    "guarantor_dob": "guarantordob",
    "guarantor_relationship": "guarantorrelationshiptopatient",
}


class PatientService(DomainService):
    """Patient demographics and registration."""

    async def search_patients(self, **criteria: Any) -> list[dict[str, Any]]:
        """Search patients by name, DOB, department, phone or email.

        Raises:
            SearchCriteriaError: If none of SEARCH_FILTERS is supplied. No
                upstream call is made in that case.
        """
        if not any(criteria.get(field) for field in SEARCH_FILTERS):
            raise SearchCriteriaError(
                "Please provide at least one of: " + ", ".join(SEARCH_FILTERS),
                fields=list(SEARCH_FILTERS),
                example=SEARCH_EXAMPLE,
            )
        params = map_fields(criteria, SEARCH_FIELDS)
        body = await self.client.get(self.path("patients"), params=params)
        return unwrap_list(body, "patients")

    async def get_patient(self, patient_id: str) -> dict[str, Any]:
        body = await self.client.get(self.path("patients", patient_id))
        return unwrap_record(body)

    async def create_patient(self, **fields: Any) -> dict[str, Any]:
        """Register a new patient.

        Takes caller-facing names (``department_id``, ``mobile_phone``, ...)
        and sends them form-encoded under athenahealth's names.
        """
        form = map_fields(fields, CREATE_PATIENT_FIELDS)
        body = await self.client.post(self.path("patients"), data=form)
        return unwrap_record(body)

    async def get_patient_insurance(self, patient_id: str) -> list[dict[str, Any]]:
        body = await self.client.get(self.path("patients", patient_id, "insurances"))
        return unwrap_list(body, "insurances")
