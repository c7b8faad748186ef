"""Shared plumbing for the domain services.

Three jobs live here:
- DomainService: the base every domain service composes an AthenaClient into.
- map_fields(): the caller-facing -> upstream field renaming. Each operation
  owns a fixed, exhaustive table; keys outside it and None values are dropped.
- unwrap_list() / unwrap_record(): envelope normalization. athenahealth
  wraps payloads in ``data``, in a resource-named key (``patients``,
  ``departments``, ...) or returns a bare array. All three become a plain
  list; any other shape becomes [] without raising.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from athena_mcp.athena_client import AthenaClient

logger = logging.getLogger(__name__)


def map_fields(args: Mapping[str, Any], table: Mapping[str, str]) -> dict[str, Any]:
    """Rename caller-facing fields to upstream names.

    Args:
        args: Caller arguments keyed by public names (e.g. "department_id").
        table: Public name -> upstream name (e.g. "departmentid").

    Returns:
        Upstream-named fields, in table order, with None values dropped.
    """
    mapped: dict[str, Any] = {}
    for public, upstream in table.items():
        value = args.get(public)
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        mapped[upstream] = value
    unknown = set(args) - set(table)
    if unknown:
        logger.debug("Ignoring unmapped fields: %s", sorted(unknown))
    return mapped


def unwrap_list(body: Any, key: str | None = None) -> list[Any]:
    """Normalize a list response envelope into a list of records.

    Checks, in order: ``body[key]``, a bare list, ``body["data"]``.
    """
    if key and isinstance(body, dict) and isinstance(body.get(key), list):
        return body[key]
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get("data"), list):
        return body["data"]
    logger.warning("Unexpected %s response structure, returning empty list", key or "list")
    return []


def unwrap_record(body: Any) -> dict[str, Any]:
    """Normalize a detail response into a single record.

    athenahealth detail endpoints answer with ``{"data": {...}}``, a bare
    object, or a one-element array.
    """
    if isinstance(body, dict):
        data = body.get("data")
        if isinstance(data, dict):
            return data
        if isinstance(data, list):
            return data[0] if data and isinstance(data[0], dict) else {}
        return body
    if isinstance(body, list):
        return body[0] if body and isinstance(body[0], dict) else {}
    return {}


class DomainService:
    """Base for the capability-scoped services.

    Attributes:
        client: The request executor shared by every service.
    """

    def __init__(self, client: AthenaClient) -> None:
        self.client = client

    def path(self, *parts: str) -> str:
        """Build a practice-scoped endpoint, e.g. path("patients", "1")."""
        return "/".join([self.client.practice_id, *parts])
