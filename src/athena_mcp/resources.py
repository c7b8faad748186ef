"""Read-only resources addressed by athena:// URIs.

    athena://patients                       usage guidance (no listing)
    athena://patient/{id}                   demographics
    athena://patient/{id}/{section}         details, allergies, problems,
                                            prescriptions, vitals, labs, alerts
    athena://providers                      provider list
    athena://provider/{id}                  provider detail
    athena://departments                    department list

read_resource() is the single router; the MCP server registers one thin
template per URI shape and delegates here.
"""

from __future__ import annotations

import logging
from typing import Any

from athena_mcp.errors import AthenaError
from athena_mcp.services import AthenaServices, get_services
from athena_mcp.tools.formatting import error_json, to_json

logger = logging.getLogger(__name__)

SCHEME = "athena://"

# section name -> (service attribute, method)
PATIENT_SECTIONS = {
    "details": ("patients", "get_patient"),
    "allergies": ("clinical", "get_allergies"),
    "problems": ("clinical", "get_problems"),
    "prescriptions": ("clinical", "get_prescriptions"),
    "vitals": ("clinical", "get_vitals"),
    "labs": ("clinical", "get_labs"),
    "alerts": ("clinical", "get_alerts"),
}

PATIENTS_GUIDANCE = {
    "message": "Use the search_patients tool to find patients",
    "example": 'search_patients with firstname="John" lastname="Doe"',
}


async def read_resource(uri: str) -> str:
    """Resolve an athena:// URI to JSON text.

    Raises:
        ValueError: If the URI or patient section is not recognized.
    """
    if not uri.startswith(SCHEME):
        raise ValueError(f"Unknown resource URI: {uri}")
    parts = [part for part in uri[len(SCHEME):].split("/") if part]

    if parts == ["patients"]:
        return to_json(PATIENTS_GUIDANCE)

    try:
        services = await get_services()
        if parts and parts[0] == "patient":
            if len(parts) not in (2, 3):
                raise ValueError(f"Invalid patient URI: {uri}")
            section = parts[2] if len(parts) == 3 else "details"
            return to_json(await _patient_section(services, parts[1], section))
        if parts == ["providers"]:
            return to_json(await services.scheduling.list_providers())
        if parts and parts[0] == "provider":
            if len(parts) != 2:
                raise ValueError(f"Invalid provider URI: missing provider ID in {uri}")
            return to_json(await services.scheduling.get_provider(parts[1]))
        if parts == ["departments"]:
            return to_json(await services.scheduling.list_departments())
    except AthenaError as e:
        logger.error("Error reading resource %s: %s", uri, e)
        return error_json("Failed to read resource", e)

    raise ValueError(f"Unknown resource URI: {uri}")


async def _patient_section(services: AthenaServices, patient_id: str, section: str) -> Any:
    if section not in PATIENT_SECTIONS:
        raise ValueError(f"Unknown resource type: {section}")
    attribute, method = PATIENT_SECTIONS[section]
    services.audit.data_access("PATIENT_DATA", "READ", patient_id)
    fetch = getattr(getattr(services, attribute), method)
    return await fetch(patient_id)
