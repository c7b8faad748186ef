"""Encounter tools.

Encounters represent individual visits. Each has an ID that can be used
with get_encounter() and update_encounter().

Services used:
- EncounterService.get_patient_encounters — GET  .../patients/{id}/encounters
- EncounterService.get_encounter          — GET  .../encounters/{id}
- EncounterService.create_encounter       — POST .../encounters
- EncounterService.update_encounter       — PUT  .../encounters/{id}
"""

from __future__ import annotations

from athena_mcp.errors import AthenaError
from athena_mcp.services import get_services
from athena_mcp.tools.formatting import error_json, to_json

_PREVIEW_NOTE = (
    "Encounter endpoints may not be available in the athenahealth "
    "preview/sandbox environment."
)


async def get_patient_encounters(
    patient_id: str,
    department_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
) -> str:
    """Get encounter (visit) history for a patient.

    Args:
        patient_id: The athenahealth patient ID.
        department_id: Filter by department ID.
        start_date: Start date filter (MM/DD/YYYY).
        end_date: End date filter (MM/DD/YYYY).
        status: Filter by status: OPEN, CLOSED or SIGNED.

    Returns:
        JSON list of encounters with date, type and encounter ID.
    """
    try:
        services = await get_services()
        encounters = await services.encounters.get_patient_encounters(
            patient_id,
            department_id=department_id,
            start_date=start_date,
            end_date=end_date,
            status=status,
        )
    except AthenaError as e:
        return error_json("Failed to get patient encounters", e, note=_PREVIEW_NOTE)

    services.audit.record(
        "ENCOUNTER_ACCESS",
        {"patient_id": patient_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return to_json(encounters)


async def get_encounter(encounter_id: str) -> str:
    """Get details of a specific encounter.

    Args:
        encounter_id: The encounter ID.

    Returns:
        JSON encounter record.
    """
    try:
        services = await get_services()
        encounter = await services.encounters.get_encounter(encounter_id)
    except AthenaError as e:
        return error_json("Failed to get encounter", e, note=_PREVIEW_NOTE)

    services.audit.record(
        "ENCOUNTER_ACCESS",
        {"encounter_id": encounter_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return to_json(encounter)


async def create_encounter(
    patient_id: str,
    department_id: str,
    encounter_date: str,
    provider_id: str | None = None,
    encounter_type: str | None = None,
    chief_complaint: str | None = None,
    appointment_id: str | None = None,
) -> str:
    """Open a new encounter for a patient.

    Args:
        patient_id: The athenahealth patient ID.
        department_id: Department ID.
        encounter_date: Encounter date (MM/DD/YYYY).
        provider_id: Provider ID.
        encounter_type: Type of encounter.
        chief_complaint: Chief complaint.
        appointment_id: Associated appointment ID.

    Returns:
        JSON encounter record.
    """
    try:
        services = await get_services()
        encounter = await services.encounters.create_encounter(
            patient_id=patient_id,
            department_id=department_id,
            encounter_date=encounter_date,
            provider_id=provider_id,
            encounter_type=encounter_type,
            chief_complaint=chief_complaint,
            appointment_id=appointment_id,
        )
    except AthenaError as e:
        return error_json("Failed to create encounter", e, note=_PREVIEW_NOTE)

    services.audit.record(
        "ENCOUNTER_CREATE",
        {"patient_id": patient_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return to_json(encounter)


async def update_encounter(
    encounter_id: str,
    chief_complaint: str | None = None,
    diagnosis_codes: str | None = None,
    procedure_codes: str | None = None,
    status: str | None = None,
) -> str:
    """Update an existing encounter.

    Args:
        encounter_id: The encounter ID.
        chief_complaint: Chief complaint.
        diagnosis_codes: Comma-separated ICD-10 diagnosis codes.
        procedure_codes: Comma-separated CPT procedure codes.
        status: OPEN, CLOSED or SIGNED.

    Returns:
        JSON encounter record.
    """
    try:
        services = await get_services()
        encounter = await services.encounters.update_encounter(
            encounter_id,
            chief_complaint=chief_complaint,
            diagnosis_codes=diagnosis_codes,
            procedure_codes=procedure_codes,
            status=status,
        )
    except AthenaError as e:
        return error_json("Failed to update encounter", e, note=_PREVIEW_NOTE)

    services.audit.record(
        "ENCOUNTER_UPDATE",
        {"encounter_id": encounter_id, "result": "success", "resource_type": "ENCOUNTER"},
    )
    return to_json(encounter)
