"""Clinical tools — drug interactions, prescriptions, alerts, clinical summary.

Services used:
- ClinicalService.check_drug_interactions — POST .../patients/{id}/druginteractions
- ClinicalService.create_prescription     — POST .../patients/{id}/prescriptions
- ClinicalService.acknowledge_alert       — POST .../clinicalalerts/{id}/acknowledge
- AthenaServices.clinical_summary         — patient + six clinical reads
"""

from __future__ import annotations

from athena_mcp.errors import AthenaError, ConfigurationError
from athena_mcp.services import get_services
from athena_mcp.tools.formatting import error_json, to_json


async def check_drug_interactions(patient_id: str, medications: list[str]) -> str:
    """Check a list of medications for interactions for a patient.

    This is a safety-critical tool: it reports interaction alerts between
    the listed medications and the patient's record.

    Args:
        patient_id: The athenahealth patient ID.
        medications: Medication names or RxNorm codes.

    Returns:
        JSON list of interaction alerts (severity, description).
    """
    try:
        services = await get_services()
        interactions = await services.clinical.check_drug_interactions(patient_id, medications)
    except AthenaError as e:
        return error_json("Failed to check drug interactions", e)

    services.audit.data_access("DRUG_INTERACTIONS", "CHECK", patient_id)
    return to_json(interactions)


async def create_prescription(
    patient_id: str,
    medication_name: str,
    dosage: str,
    route: str,
    frequency: str,
    quantity: str,
    refills: str,
    days_supply: str,
    pharmacy_id: str | None = None,
    notes: str | None = None,
) -> str:
    """Create a new prescription for a patient.

    Args:
        patient_id: The athenahealth patient ID.
        medication_name: Medication name.
        dosage: Dosage (e.g. "10mg").
        route: Route of administration (e.g. "oral").
        frequency: Frequency (e.g. "twice daily").
        quantity: Quantity to dispense.
        refills: Number of refills.
        days_supply: Days supply.
        pharmacy_id: Pharmacy ID.
        notes: Additional notes.

    Returns:
        JSON prescription record.
    """
    try:
        services = await get_services()
        prescription = await services.clinical.create_prescription(
            patient_id,
            medication_name=medication_name,
            dosage=dosage,
            route=route,
            frequency=frequency,
            quantity=quantity,
            refills=refills,
            days_supply=days_supply,
            pharmacy_id=pharmacy_id,
            notes=notes,
        )
    except ConfigurationError as e:
        return error_json("Failed to create prescription", e)
    except AthenaError as e:
        services.audit.record(
            "PRESCRIPTION_CREATE", {"patient_id": patient_id, "result": "failure"}
        )
        return error_json("Failed to create prescription", e)

    services.audit.record(
        "PRESCRIPTION_CREATE",
        {"patient_id": patient_id, "result": "success", "resource_type": "PRESCRIPTION"},
    )
    return to_json(prescription)


async def acknowledge_alert(alert_id: str, acknowledged_by: str) -> str:
    """Acknowledge a clinical alert.

    Args:
        alert_id: The clinical alert ID.
        acknowledged_by: User acknowledging the alert.

    Returns:
        JSON confirmation.
    """
    try:
        services = await get_services()
        await services.clinical.acknowledge_alert(alert_id, acknowledged_by)
    except AthenaError as e:
        return error_json("Failed to acknowledge alert", e)

    services.audit.record(
        "ALERT_ACKNOWLEDGE",
        {"resource_type": "CLINICAL_ALERT", "alert_id": alert_id, "result": "success"},
    )
    return to_json({"success": True, "message": "Alert acknowledged"})


async def get_clinical_summary(
    patient_id: str,
    include_allergies: bool = True,
    include_problems: bool = True,
    include_prescriptions: bool = True,
    include_vitals: bool = True,
    include_labs: bool = True,
    include_alerts: bool = True,
) -> str:
    """Get a comprehensive clinical summary for a patient.

    Sections that cannot be fetched come back empty and are listed under
    "_warnings"; the rest of the summary is still returned.

    Args:
        patient_id: The athenahealth patient ID.
        include_allergies: Include allergies.
        include_problems: Include the problem list.
        include_prescriptions: Include prescriptions.
        include_vitals: Include vital signs.
        include_labs: Include lab results.
        include_alerts: Include clinical alerts.

    Returns:
        JSON object with patient demographics and each clinical section.
    """
    try:
        services = await get_services()
        summary = await services.clinical_summary(
            patient_id,
            include_allergies=include_allergies,
            include_problems=include_problems,
            include_prescriptions=include_prescriptions,
            include_vitals=include_vitals,
            include_labs=include_labs,
            include_alerts=include_alerts,
        )
    except AthenaError as e:
        return error_json("Failed to get clinical summary", e)
    return to_json(summary)
