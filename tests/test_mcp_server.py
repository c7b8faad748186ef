"""Tests for the FastMCP server wiring and its startup path."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from athena_mcp.mcp_server import build_server, main
from athena_mcp.tools import TOOL_FUNCTIONS

EXPECTED_TOOLS = {
    "search_patients",
    "get_patient",
    "create_patient",
    "get_patient_insurance",
    "check_drug_interactions",
    "create_prescription",
    "acknowledge_alert",
    "get_clinical_summary",
    "list_departments",
    "list_providers",
    "check_appointment_availability",
    "create_appointment",
    "get_patient_appointments",
    "get_patient_encounters",
    "get_encounter",
    "create_encounter",
    "update_encounter",
}


@pytest.mark.asyncio
async def test_every_tool_is_registered() -> None:
    tools = await build_server().list_tools()

    assert {tool.name for tool in tools} == EXPECTED_TOOLS
    assert len(TOOL_FUNCTIONS) == len(EXPECTED_TOOLS)


@pytest.mark.asyncio
async def test_required_fields_follow_signatures() -> None:
    tools = {tool.name: tool for tool in await build_server().list_tools()}

    create_patient = tools["create_patient"].inputSchema
    assert set(create_patient["required"]) == {
        "firstname",
        "lastname",
        "dob",
        "sex",
        "department_id",
    }
    assert "mobile_phone" in create_patient["properties"]

    interactions = tools["check_drug_interactions"].inputSchema
    assert set(interactions["required"]) == {"patient_id", "medications"}
    assert not tools["search_patients"].inputSchema.get("required")


@pytest.mark.asyncio
async def test_resources_and_templates_are_registered() -> None:
    server = build_server()

    static = {str(resource.uri).rstrip("/") for resource in await server.list_resources()}
    templates = {t.uriTemplate for t in await server.list_resource_templates()}

    assert static == {"athena://patients", "athena://providers", "athena://departments"}
    assert templates == {
        "athena://patient/{patient_id}",
        "athena://patient/{patient_id}/{section}",
        "athena://provider/{provider_id}",
    }


@pytest.mark.asyncio
async def test_prompts_are_registered() -> None:
    prompts = {prompt.name: prompt for prompt in await build_server().list_prompts()}

    assert set(prompts) == {"clinical_assessment", "medication_review", "care_plan"}
    arguments = {arg.name: arg.required for arg in prompts["clinical_assessment"].arguments or []}
    assert arguments == {"patient_id": True, "chief_complaint": False}


def test_main_exits_on_missing_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ATHENA_CLIENT_ID", "ATHENA_CLIENT_SECRET", "ATHENA_PRACTICE_ID"):
        monkeypatch.delenv(name, raising=False)

    with patch("athena_mcp.mcp_server.build_server") as mock_build:
        with pytest.raises(SystemExit) as excinfo:
            main()

    assert excinfo.value.code == 1
    mock_build.assert_not_called()
