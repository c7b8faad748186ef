"""Scheduling tools — departments, providers, availability, appointments.

Services used:
- SchedulingService.list_departments        — GET  /{practiceid}/departments
- SchedulingService.list_providers          — GET  /{practiceid}/providers
- SchedulingService.check_availability      — GET  /{practiceid}/appointments/open
- SchedulingService.create_appointment      — POST /{practiceid}/appointments
- SchedulingService.get_patient_appointments
"""

from __future__ import annotations

from athena_mcp.errors import AthenaError, ConfigurationError
from athena_mcp.services import get_services
from athena_mcp.tools.formatting import error_json, to_json


async def list_departments() -> str:
    """List all departments in the practice.

    Returns:
        JSON list of departments with ID, name and address.
    """
    try:
        services = await get_services()
        departments = await services.scheduling.list_departments()
    except AthenaError as e:
        return error_json("Failed to list departments", e)

    return to_json(departments)


async def list_providers(
    name: str | None = None,
    specialty: str | None = None,
    limit: int = 50,
) -> str:
    """List healthcare providers in the practice.

    Args:
        name: Filter by provider name.
        specialty: Filter by specialty.
        limit: Maximum number of results (default 50).

    Returns:
        JSON list of providers with ID, name, specialty and NPI.
    """
    try:
        services = await get_services()
        providers = await services.scheduling.list_providers(
            name=name, specialty=specialty, limit=limit
        )
    except AthenaError as e:
        return error_json("Failed to list providers", e)

    return to_json(providers)


async def check_appointment_availability(
    department_id: str,
    start_date: str,
    end_date: str,
    provider_id: str | None = None,
    appointment_type: str | None = None,
) -> str:
    """Check open appointment slots for a department and date range.

    Args:
        department_id: Department ID.
        start_date: Start date (MM/DD/YYYY).
        end_date: End date (MM/DD/YYYY).
        provider_id: Provider ID; leave empty to check all providers.
        appointment_type: Appointment type ID.

    Returns:
        JSON list of open slots.
    """
    try:
        services = await get_services()
        slots = await services.scheduling.check_availability(
            department_id=department_id,
            start_date=start_date,
            end_date=end_date,
            provider_id=provider_id,
            appointment_type=appointment_type,
        )
    except AthenaError as e:
        return error_json(
            "Failed to check appointment availability",
            e,
            note="This endpoint may not be available in the preview/sandbox environment",
        )

    return to_json(slots)


async def create_appointment(
    patient_id: str,
    provider_id: str,
    department_id: str,
    appointment_type: str,
    date: str,
    start_time: str,
    duration: str | None = None,
    reason: str | None = None,
    notes: str | None = None,
) -> str:
    """Book a new appointment for a patient.

    Args:
        patient_id: The athenahealth patient ID.
        provider_id: Provider ID.
        department_id: Department ID.
        appointment_type: Appointment type.
        date: Appointment date (MM/DD/YYYY).
        start_time: Start time (HH:MM).
        duration: Duration in minutes.
        reason: Reason for visit.
        notes: Appointment notes.

    Returns:
        JSON appointment record.
    """
    try:
        services = await get_services()
        appointment = await services.scheduling.create_appointment(
            patient_id=patient_id,
            provider_id=provider_id,
            department_id=department_id,
            appointment_type=appointment_type,
            date=date,
            start_time=start_time,
            duration=duration,
            reason=reason,
            notes=notes,
        )
    except ConfigurationError as e:
        return error_json("Failed to create appointment", e)
    except AthenaError as e:
        services.audit.record("APPOINTMENT_CREATE", {"patient_id": patient_id, "result": "failure"})
        return error_json(
            "Failed to create appointment",
            e,
            note="Appointment creation may require specific appointment types for this department",
        )

    services.audit.record(
        "APPOINTMENT_CREATE",
        {"patient_id": patient_id, "result": "success", "resource_type": "APPOINTMENT"},
    )
    return to_json(appointment)


async def get_patient_appointments(
    patient_id: str,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
) -> str:
    """Get appointments booked for a patient.

    Args:
        patient_id: The athenahealth patient ID.
        start_date: Start date filter (MM/DD/YYYY).
        end_date: End date filter (MM/DD/YYYY).
        status: Appointment status filter.

    Returns:
        JSON list of appointments with date, time, provider and status.
    """
    try:
        services = await get_services()
        appointments = await services.scheduling.get_patient_appointments(
            patient_id, start_date=start_date, end_date=end_date, status=status
        )
    except AthenaError as e:
        return error_json("Failed to get patient appointments", e)

    services.audit.data_access("APPOINTMENT", "READ", patient_id)
    return to_json(appointments)
