"""Rendering helpers shared by the tool modules.

Tools always hand back JSON text. Upstream failures become a JSON object
with the normalized error fields, so no exception ever reaches the tool
transport.
"""

from __future__ import annotations

import json
from typing import Any

from athena_mcp.errors import AthenaError, UnavailableEndpointError


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, default=str)


def error_json(title: str, exc: AthenaError, note: str | None = None) -> str:
    """Render a failed tool call.

    Args:
        title: What was being attempted, e.g. "Failed to create prescription".
        exc: The error raised below the tool layer.
        note: Extra guidance. Unavailable-endpoint errors carry their own.

    Returns:
        JSON text: {"error": title, "message": ..., plus the error's fields}.
    """
    details = exc.to_dict()
    payload: dict[str, Any] = {
        "error": title,
        "message": details.pop("message", str(exc)),
        "error_code": details.pop("error", None),
    }
    payload.update({key: value for key, value in details.items() if value is not None})
    if note and not isinstance(exc, UnavailableEndpointError):
        payload["note"] = note
    return to_json(payload)
