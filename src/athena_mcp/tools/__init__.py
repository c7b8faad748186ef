"""athenahealth tools exposed over MCP.

Each module in this package contains "tools": async functions that an MCP
client can call. The client reads each tool's description (the docstring)
and its parameters (the signature) to decide which one to use. Every tool
returns JSON text, including on failure.

Tools are organized by domain:
- patient.py:    Search, details, registration, insurance
- clinical.py:   Drug interactions, prescriptions, alerts, clinical summary
- scheduling.py: Departments, providers, availability, appointments
- encounters.py: Encounter history, details, create, update
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any

from athena_mcp.tools.clinical import (
    acknowledge_alert,
    check_drug_interactions,
    create_prescription,
    get_clinical_summary,
)
from athena_mcp.tools.encounters import (
    create_encounter,
    get_encounter,
    get_patient_encounters,
    update_encounter,
)
from athena_mcp.tools.patient import (
    create_patient,
    get_patient,
    get_patient_insurance,
    search_patients,
)
from athena_mcp.tools.scheduling import (
    check_appointment_availability,
    create_appointment,
    get_patient_appointments,
    list_departments,
    list_providers,
)

TOOL_FUNCTIONS: list[Callable[..., Coroutine[Any, Any, str]]] = [
    search_patients,
    get_patient,
    create_patient,
    get_patient_insurance,
    check_drug_interactions,
    create_prescription,
    acknowledge_alert,
    get_clinical_summary,
    list_departments,
    list_providers,
    check_appointment_availability,
    create_appointment,
    get_patient_appointments,
    get_patient_encounters,
    get_encounter,
    create_encounter,
    update_encounter,
]
