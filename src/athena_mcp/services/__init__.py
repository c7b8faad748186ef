"""Domain services over the athenahealth API, plus a facade that holds them.

Each module is one capability:
- patient.py:    Search, details, registration, insurance
- clinical.py:   Allergies, problems, prescriptions, vitals, labs, alerts
- scheduling.py: Providers, departments, availability, appointments
- encounter.py:  Encounter list, details, create, update

All four share one AthenaClient, so they share one token. AthenaServices
bundles them for callers that want a single handle, and owns the one
operation that spans domains: the clinical summary.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from athena_mcp.athena_client import AthenaClient
from athena_mcp.audit import AuditLogger
from athena_mcp.config import Settings, load_settings
from athena_mcp.errors import AthenaError
from athena_mcp.services.clinical import ClinicalService
from athena_mcp.services.encounter import EncounterService
from athena_mcp.services.patient import PatientService
from athena_mcp.services.scheduling import SchedulingService

logger = logging.getLogger(__name__)

SANDBOX_NOTE = (
    "Preview/Sandbox environment: some clinical endpoints are unavailable. "
    "Only patient demographics may be accessible."
)

# Clinical summary sections: (include flag, result key, ClinicalService method)
SUMMARY_SECTIONS = (
    ("include_allergies", "allergies", "get_allergies"),
    ("include_problems", "problems", "get_problems"),
    ("include_prescriptions", "prescriptions", "get_prescriptions"),
    ("include_vitals", "vitals", "get_vitals"),
    ("include_labs", "labs", "get_labs"),
    ("include_alerts", "alerts", "get_alerts"),
)


class AthenaServices:
    """Facade over the four domain services.

    Attributes:
        client: The shared request executor.
        audit: Audit logger shared with the client.
        patients, clinical, scheduling, encounters: The domain services.
    """

    def __init__(self, client: AthenaClient) -> None:
        self.client = client
        self.audit: AuditLogger = client.audit
        self.patients = PatientService(client)
        self.clinical = ClinicalService(client)
        self.scheduling = SchedulingService(client)
        self.encounters = EncounterService(client)

    async def close(self) -> None:
        await self.client.close()

    async def health_check(self) -> dict[str, str]:
        return await self.client.health_check()

    async def clinical_summary(self, patient_id: str, **include: bool) -> dict[str, Any]:
        """Gather demographics and clinical data for one patient.

        Every section is fetched independently. A failed section becomes
        an empty list plus an entry in ``_warnings``; a failed patient fetch
        is recorded under ``_errors.patient``. Nothing here raises for an
        upstream failure.

        Args:
            patient_id: athenahealth patient id.
            **include: ``include_allergies=False`` etc. to skip sections.
                Every section is included by default.

        Returns:
            {"patient": {...}, "allergies": [...], ..., "_warnings": [...]}
        """
        sections = [
            (key, getattr(self.clinical, method))
            for flag, key, method in SUMMARY_SECTIONS
            if include.get(flag) is not False
        ]
        results = await asyncio.gather(
            self.patients.get_patient(patient_id),
            *(fetch(patient_id) for _, fetch in sections),
            return_exceptions=True,
        )

        summary: dict[str, Any] = {}
        errors: dict[str, str] = {}
        warnings: list[str] = []

        patient, *section_results = results
        if isinstance(patient, AthenaError):
            errors["patient"] = str(patient) or "Failed to fetch patient data"
        elif isinstance(patient, BaseException):
            raise patient
        else:
            summary["patient"] = patient

        for (key, _), result in zip(sections, section_results):
            if isinstance(result, AthenaError):
                logger.warning("Clinical summary: %s unavailable (%s)", key, result)
                warnings.append(f"{key.capitalize()} unavailable: {result}")
                summary[key] = []
            elif isinstance(result, BaseException):
                raise result
            else:
                summary[key] = result

        if warnings:
            summary["_warnings"] = warnings
            if self.client.is_preview:
                summary["_note"] = SANDBOX_NOTE
        if errors:
            summary["_errors"] = errors

        self.audit.data_access("CLINICAL_SUMMARY", "READ", patient_id)
        return summary


def build_services(settings: Settings, audit: AuditLogger | None = None) -> AthenaServices:
    """Wire a client and the domain services from validated settings."""
    return AthenaServices(AthenaClient(settings, audit=audit))


# --- Module-level singleton ---
# Both front ends share one AthenaServices (and so one token) per process.
# Each tool function calls get_services() to reach it.

_services: AthenaServices | None = None


async def get_services() -> AthenaServices:
    """Get or create the shared AthenaServices singleton.

    The first call loads settings from the environment unless set_services()
    installed an instance at startup.

    Raises:
        ConfigurationError: If the environment is incomplete.
    """
    global _services  # noqa: PLW0603
    if _services is None:
        _services = build_services(load_settings())
    return _services


def set_services(services: AthenaServices | None) -> None:
    """Install (or clear, with None) the shared instance."""
    global _services  # noqa: PLW0603
    _services = services


async def close_services() -> None:
    """Close the shared instance's HTTP client, if one was created."""
    global _services  # noqa: PLW0603
    if _services is not None:
        await _services.close()
        _services = None


__all__ = [
    "AthenaServices",
    "ClinicalService",
    "EncounterService",
    "PatientService",
    "SchedulingService",
    "build_services",
    "close_services",
    "get_services",
    "set_services",
]
