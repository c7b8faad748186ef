"""Prompt templates for a downstream reasoning client.

Each prompt fetches patient data through the services layer and wraps it
in instructions. The text returned becomes a single user message.
"""

from __future__ import annotations

import json
import logging

from athena_mcp.errors import AthenaError
from athena_mcp.services import get_services
from athena_mcp.tools.formatting import to_json

logger = logging.getLogger(__name__)


async def _summary_text(patient_id: str) -> str:
    services = await get_services()
    return to_json(await services.clinical_summary(patient_id))


async def clinical_assessment(patient_id: str, chief_complaint: str | None = None) -> str:
    """Structured clinical assessment built on the patient's clinical summary."""
    summary = await _summary_text(patient_id)
    return f"""# Clinical Assessment for Patient {patient_id}

## Chief Complaint
{chief_complaint or "Not provided"}

## Patient Summary
{summary}

## Assessment Instructions
Based on the patient's clinical data above, please provide:
1. A comprehensive clinical assessment
2. Differential diagnoses to consider
3. Recommended next steps or additional tests
4. Any red flags or urgent concerns that require immediate attention

Please consider the patient's medical history, current medications, allergies, and recent vital signs and lab results in your assessment."""


async def medication_review(patient_id: str) -> str:
    """Medication review over the patient's prescriptions and allergies.

    If the patient record itself cannot be fetched, an error prompt is
    returned instead. Missing prescriptions or allergies only add a note.
    """
    try:
        services = await get_services()
        patient = await services.patients.get_patient(patient_id)
    except AthenaError as e:
        logger.warning("Medication review: patient %s unavailable (%s)", patient_id, e)
        return f"""# Medication Review Error

Unable to generate medication review for patient {patient_id}.

Error: {e}

Note: The athenahealth preview/sandbox environment has limited endpoint availability. Clinical data endpoints (prescriptions, allergies) may not be accessible."""

    warnings = []
    try:
        prescriptions = await services.clinical.get_prescriptions(patient_id)
    except AthenaError:
        prescriptions = []
        warnings.append("Prescription data not available in preview/sandbox environment")
    try:
        allergies = await services.clinical.get_allergies(patient_id)
    except AthenaError:
        allergies = []
        warnings.append("Allergy data not available in preview/sandbox environment")

    note = ""
    if warnings:
        note = "\n## Note\n" + "\n".join(f"- {w}" for w in warnings) + "\n"
    allergy_text = json.dumps(allergies, indent=2) if allergies else "No allergy data available"
    rx_text = (
        json.dumps(prescriptions, indent=2) if prescriptions else "No prescription data available"
    )

    return f"""# Medication Review for {patient.get("firstname", "")} {patient.get("lastname", "")}

## Patient Information
- Patient ID: {patient_id}
- Date of Birth: {patient.get("dob", "Unknown")}
- Sex: {patient.get("sex", "Unknown")}
{note}
## Known Allergies
{allergy_text}

## Current Medications
{rx_text}

## Review Instructions
Please review the patient's current medications and provide:
1. Assessment of medication appropriateness
2. Identification of any potential drug interactions
3. Recommendations for medication optimization
4. Suggestions for deprescribing if appropriate
5. Monitoring requirements for current medications

Consider the patient's age, allergies, and any contraindications in your review."""


async def care_plan(patient_id: str, diagnosis: str | None = None) -> str:
    """Care plan development for a diagnosis."""
    summary = await _summary_text(patient_id)
    return f"""# Care Plan Development for Patient {patient_id}

## Primary Diagnosis
{diagnosis or "Not specified"}

## Patient Clinical Summary
{summary}

## Care Plan Instructions
Based on the patient's clinical data and diagnosis, please develop a comprehensive care plan including:
1. Treatment goals (short-term and long-term)
2. Medication management plan
3. Lifestyle modifications and patient education
4. Follow-up schedule and monitoring requirements
5. Referrals to specialists if needed
6. Patient safety considerations
7. Discharge planning if applicable

Please ensure the care plan is evidence-based and tailored to the patient's specific needs and circumstances."""
