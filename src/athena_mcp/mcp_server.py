"""MCP server: the tool/resource/prompt front end.

This module wires the tool functions, resources and prompt templates into
a FastMCP server and runs it over stdio.

stdout carries the MCP protocol, so every log line goes to stderr or to
the log files (see logging_setup.py).

Run locally with:
    athena-mcp
"""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from athena_mcp import prompts
from athena_mcp.config import load_settings
from athena_mcp.errors import ConfigurationError
from athena_mcp.logging_setup import setup_logging
from athena_mcp.resources import read_resource
from athena_mcp.services import build_services, set_services
from athena_mcp.tools import TOOL_FUNCTIONS

logger = logging.getLogger(__name__)

SERVER_NAME = "athenahealth"


def build_server() -> FastMCP:
    """Create the FastMCP server with every tool, resource and prompt."""
    mcp = FastMCP(SERVER_NAME)

    # --- Tools ---
    for fn in TOOL_FUNCTIONS:
        mcp.add_tool(fn, name=fn.__name__, description=fn.__doc__ or fn.__name__)

    # --- Resources ---
    @mcp.resource("athena://patients", mime_type="application/json")
    async def patients() -> str:
        """How to find patients (use the search_patients tool)."""
        return await read_resource("athena://patients")

    @mcp.resource("athena://patient/{patient_id}", mime_type="application/json")
    async def patient(patient_id: str) -> str:
        """Patient demographics."""
        return await read_resource(f"athena://patient/{patient_id}")

    @mcp.resource("athena://patient/{patient_id}/{section}", mime_type="application/json")
    async def patient_section(patient_id: str, section: str) -> str:
        """One section of a patient's record: details, allergies, problems,
        prescriptions, vitals, labs or alerts."""
        return await read_resource(f"athena://patient/{patient_id}/{section}")

    @mcp.resource("athena://providers", mime_type="application/json")
    async def providers() -> str:
        """Healthcare providers in the practice."""
        return await read_resource("athena://providers")

    @mcp.resource("athena://provider/{provider_id}", mime_type="application/json")
    async def provider(provider_id: str) -> str:
        """Provider detail."""
        return await read_resource(f"athena://provider/{provider_id}")

    @mcp.resource("athena://departments", mime_type="application/json")
    async def departments() -> str:
        """Departments in the practice."""
        return await read_resource("athena://departments")

    # --- Prompts ---
    mcp.prompt(name="clinical_assessment", description="Structured clinical assessment")(
        prompts.clinical_assessment
    )
    mcp.prompt(name="medication_review", description="Comprehensive medication review")(
        prompts.medication_review
    )
    mcp.prompt(name="care_plan", description="Care plan for a diagnosis")(prompts.care_plan)

    return mcp


def main() -> None:
    """Entry point for the athena-mcp console script."""
    try:
        settings = load_settings()
    except ConfigurationError as e:
        logging.basicConfig(stream=sys.stderr)
        for problem in e.problems:
            logger.error("Configuration error: %s", problem)
        logger.error("%s", e)
        sys.exit(1)

    audit = setup_logging(settings)
    set_services(build_services(settings, audit=audit))
    logger.info(
        "Starting athenahealth MCP server (practice %s, %s)",
        settings.practice_id,
        "preview" if settings.is_preview else "production",
    )
    build_server().run()


if __name__ == "__main__":
    main()
