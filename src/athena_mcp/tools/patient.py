"""Patient tools — search, details, registration, insurance.

Services used:
- PatientService.search_patients   — GET  /{practiceid}/patients
- PatientService.get_patient       — GET  /{practiceid}/patients/{patientid}
- PatientService.create_patient    — POST /{practiceid}/patients
- PatientService.get_patient_insurance
"""

from __future__ import annotations

from athena_mcp.errors import AthenaError, ConfigurationError, SearchCriteriaError
from athena_mcp.services import get_services
from athena_mcp.tools.formatting import error_json, to_json


async def search_patients(
    firstname: str | None = None,
    lastname: str | None = None,
    dob: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    department_id: str | None = None,
    limit: int = 10,
) -> str:
    """Search for patients by name, DOB, phone, email or department.

    At least one of firstname, lastname, dob, phone, email or department_id
    is required. Without one, guidance is returned and nothing is queried.

    Args:
        firstname: Patient first name.
        lastname: Patient last name.
        dob: Date of birth (MM/DD/YYYY).
        phone: Phone number.
        email: Email address.
        department_id: Limit to patients registered in this department.
        limit: Maximum number of results (default 10).

    Returns:
        JSON list of matching patient records.
    """
    try:
        services = await get_services()
        patients = await services.patients.search_patients(
            firstname=firstname,
            lastname=lastname,
            dob=dob,
            phone=phone,
            email=email,
            department_id=department_id,
            limit=limit,
        )
    except SearchCriteriaError as e:
        return to_json(e.to_dict())
    except ConfigurationError as e:
        return error_json("Patient search failed", e)
    except AthenaError as e:
        services.audit.record("PATIENT_SEARCH", {"result": "failure"})
        return error_json("Patient search failed", e)

    services.audit.record("PATIENT_SEARCH", {"result": "success", "count": len(patients)})
    return to_json(patients)


async def get_patient(patient_id: str) -> str:
    """Get demographic details for a specific patient.

    Args:
        patient_id: The athenahealth patient ID.

    Returns:
        JSON patient record (name, DOB, sex, contact details, department).
    """
    try:
        services = await get_services()
        patient = await services.patients.get_patient(patient_id)
    except AthenaError as e:
        return error_json("Failed to get patient", e)

    services.audit.data_access("PATIENT", "READ", patient_id)
    return to_json(patient)


async def create_patient(
    firstname: str,
    lastname: str,
    dob: str,
    sex: str,
    department_id: str,
    email: str | None = None,
    mobile_phone: str | None = None,
    home_phone: str | None = None,
    address1: str | None = None,
    city: str | None = None,
    state: str | None = None,
    zip: str | None = None,  # noqa: A002 - public field name
    guarantor_firstname: str | None = None,
    guarantor_lastname: str | None = None,
    guarantor_dob: str | None = None,
    guarantor_relationship: str | None = None,
) -> str:
    """Register a new patient in the practice.

    Args:
        firstname: Patient first name.
        lastname: Patient last name.
        dob: Date of birth (MM/DD/YYYY or YYYY-MM-DD).
        sex: "M" or "F".
        department_id: Primary department ID.
        email: Email address.
        mobile_phone: Mobile phone number.
        home_phone: Home phone number.
        address1: Street address.
        city: City.
        state: State.
        zip: ZIP code.
        guarantor_firstname: Guarantor first name.
        guarantor_lastname: Guarantor last name.
        guarantor_dob: Guarantor date of birth.
        guarantor_relationship: 1=Self, 2=Spouse, 3=Child, 4=Other.

    Returns:
        JSON with the new patient's ID, or the upstream validation errors.
    """
    try:
        services = await get_services()
        patient = await services.patients.create_patient(
            firstname=firstname,
            lastname=lastname,
            dob=dob,
            sex=sex,
            department_id=department_id,
            email=email,
            mobile_phone=mobile_phone,
            home_phone=home_phone,
            address1=address1,
            city=city,
            state=state,
            zip=zip,
            guarantor_firstname=guarantor_firstname,
            guarantor_lastname=guarantor_lastname,
            guarantor_dob=guarantor_dob,
            guarantor_relationship=guarantor_relationship,
        )
    except ConfigurationError as e:
        return error_json("Failed to create patient", e)
    except AthenaError as e:
        services.audit.record("PATIENT_CREATE", {"result": "failure"})
        return error_json(
            "Failed to create patient",
            e,
            note="Check the response field for specific validation errors from athenahealth",
        )

    services.audit.record("PATIENT_CREATE", {"result": "success", "resource_type": "PATIENT"})
    return to_json(patient)


async def get_patient_insurance(patient_id: str) -> str:
    """Get insurance policies on file for a patient.

    Args:
        patient_id: The athenahealth patient ID.

    Returns:
        JSON list of insurance policies (plan, member number, rank).
    """
    try:
        services = await get_services()
        policies = await services.patients.get_patient_insurance(patient_id)
    except AthenaError as e:
        return error_json("Failed to get patient insurance", e)

    services.audit.data_access("INSURANCE", "READ", patient_id)
    return to_json(policies)
