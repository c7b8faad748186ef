"""Redaction and audit logging.

Everything that leaves this process through a log file passes through
redact() first. Two mechanisms apply:

1. Key-based: any mapping key containing a sensitive term (case-insensitive
   substring match) has its whole value replaced with REDACTED, at any
   nesting depth.
2. Pattern-based: string values are scanned for identifier-like sequences
   (SSNs, card numbers, long digit runs, phone numbers, email addresses,
   dates, record ids inside resource URLs) and the matching substrings are
   replaced, even under keys that are not themselves sensitive.

AuditLogger.record() never raises. If redaction fails for any reason only
the event name is written.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

REDACTED = "[REDACTED]"

SENSITIVE_KEYS = (
    "ssn",
    "social_security",
    "tax_id",
    "password",
    "passwd",
    "pwd",
    "token",
    "secret",
    "api_key",
    "authorization",
    "dob",
    "date_of_birth",
    "birthdate",
    "phone",
    "mobile",
    "telephone",
    "email",
    "address",
    "street",
    "credit_card",
    "card_number",
    "account_number",
    "bank_account",
    "routing_number",
    "patient_id",
    "patientid",
    "medical_record_number",
    "mrn",
    "firstname",
    "lastname",
)

# Order matters: the SSN and card patterns must run before the generic
# digit-run pattern swallows them.
SENSITIVE_PATTERNS = (
    re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),
    re.compile(r"\b\d{3}[.\-\s]\d{3}[.\-]\d{4}\b"),
    re.compile(r"\b\d{10,}\b"),
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
)

# Record ids embedded in resource paths, e.g. the 8675309 in
# ".../patients/8675309/allergies". The collection name is kept.
RESOURCE_ID_PATTERN = re.compile(
    r"(?:(?<=/patients/)|(?<=/encounters/)|(?<=/clinicalalerts/))[^/?#\s\"']+"
)


def is_sensitive_key(key: str) -> bool:
    lowered = key.lower()
    return any(term in lowered for term in SENSITIVE_KEYS)


def redact_text(text: str) -> str:
    """Replace every sensitive-looking substring of *text* with REDACTED."""
    for pattern in SENSITIVE_PATTERNS:
        text = pattern.sub(REDACTED, text)
    return redact_url(text)


def redact_url(url: str) -> str:
    """Mask the patient, encounter and alert ids in a resource URL."""
    return RESOURCE_ID_PATTERN.sub(REDACTED, url)


def redact(value: Any) -> Any:
    """Return a redacted deep copy of *value*.

    Mappings, lists and tuples are walked recursively. Other scalars
    (numbers, booleans, None) pass through unchanged.
    """
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {
            key: REDACTED if is_sensitive_key(str(key)) else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class RedactionFilter(logging.Filter):
    """Logging filter that scrubs the rendered message of every record.

    The message is rendered once, redacted, and stored back on the record
    with its args cleared, so handlers further down never see the raw text.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)
        record.msg = redact_text(message)
        record.args = None
        return True


class AuditLogger:
    """Append-only audit trail with redaction applied to every entry.

    Entries go to the ``athena_mcp.audit`` logger as one JSON object per
    line. Rotation is configured on that logger's handler by
    logging_setup.setup_logging().
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("athena_mcp.audit")

    def record(self, event: str, fields: Mapping[str, Any] | None = None) -> None:
        """Write one audit entry. Never raises."""
        try:
            entry = {
                "event": event,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                **redact(dict(fields or {})),
            }
            line = json.dumps(entry, default=str, sort_keys=False)
        except Exception:  # noqa: BLE001 - auditing must never break a request
            self._logger.info("AUDIT %s", json.dumps({"event": event}))
            return
        self._logger.info("AUDIT %s", line)

    def api_access(self, method: str, url: str, status: int | None) -> None:
        """Record an upstream call. Only method, URL and status, never payloads."""
        result = "success" if status is not None and status < 400 else "failure"
        self.record(
            "API_ACCESS",
            {"method": method, "url": redact_url(url), "status": status, "result": result},
        )

    def data_access(self, resource_type: str, action: str, resource_id: str | None = None) -> None:
        self.record(
            "DATA_ACCESS",
            {"resource_type": resource_type, "action": action, "patient_id": resource_id},
        )

    def auth_event(self, event: str, success: bool = True) -> None:
        self.record(
            "AUTHENTICATION",
            {"auth_event": event, "result": "success" if success else "failure"},
        )
