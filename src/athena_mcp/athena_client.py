"""HTTP request executor for the athenahealth REST API.

This module provides the AthenaClient class, which wraps every upstream
call with:
1. A guaranteed-live token from the TokenManager
2. The ``Authorization: Bearer`` header
3. Sanitized request/response logging (method, URL, status; never payloads)
4. Uniform error normalization into UpstreamError

It never retries. On a 401 it tells the TokenManager to drop the token
before raising, so the *next* call re-authenticates instead of replaying
a dead token.

Usage:
    client = AthenaClient(settings)
    body = await client.get(f"{client.practice_id}/departments")
    await client.close()
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import httpx

from athena_mcp.audit import AuditLogger, redact_url
from athena_mcp.auth import TokenManager
from athena_mcp.config import Settings
from athena_mcp.errors import AuthenticationError, UnavailableEndpointError, UpstreamError

logger = logging.getLogger(__name__)

# Every upstream call is bounded by this many seconds
REQUEST_TIMEOUT_SECONDS = 60.0

USER_AGENT = "athena-mcp/0.1.0"


class AthenaClient:
    """Async executor for athenahealth API calls.

    Attributes:
        settings: The validated process settings.
        practice_id: Practice (tenant) id that prefixes every resource path.
        api_base: ``{base_url}/{version}/``, the root for relative endpoints.
        tokens: The TokenManager guarding token state.
    """

    def __init__(
        self,
        settings: Settings,
        http: httpx.AsyncClient | None = None,
        tokens: TokenManager | None = None,
        audit: AuditLogger | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.settings = settings
        self.practice_id = settings.practice_id
        self.api_base = settings.api_base
        self.audit = audit or AuditLogger()
        self._log = log or logger

        self._http = http or httpx.AsyncClient(
            timeout=httpx.Timeout(REQUEST_TIMEOUT_SECONDS),
            headers={"User-Agent": USER_AGENT},
        )
        self.tokens = tokens or TokenManager(settings, self._http, audit=self.audit)

    @property
    def is_preview(self) -> bool:
        return self.settings.is_preview

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    # --- Request methods ---

    async def get(self, endpoint: str, params: Mapping[str, Any] | None = None) -> Any:
        """Authenticated GET with query parameters."""
        return await self.request("GET", endpoint, params=params)

    async def post(self, endpoint: str, data: Mapping[str, Any] | None = None) -> Any:
        """Authenticated POST with a form-url-encoded body."""
        return await self.request("POST", endpoint, data=data)

    async def put(self, endpoint: str, data: Mapping[str, Any] | None = None) -> Any:
        """Authenticated PUT with a form-url-encoded body."""
        return await self.request("PUT", endpoint, data=data)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        data: Mapping[str, Any] | None = None,
    ) -> Any:
        """Send one authenticated request and return the parsed body.

        Args:
            method: HTTP method.
            endpoint: Path relative to api_base (e.g. "195900/departments").
            params: Query parameters, for reads.
            data: Form fields, for writes. athenahealth expects
                application/x-www-form-urlencoded, not JSON.

        Returns:
            The parsed JSON body, or {} for an empty 2xx body.

        Raises:
            AuthenticationError: If no token could be obtained.
            UpstreamError: For transport failures and non-2xx responses.
        """
        token = await self.tokens.ensure_valid_token()

        url = f"{self.api_base}{endpoint.lstrip('/')}"
        headers = {"Authorization": f"Bearer {token}", "Accept": "application/json"}
        safe_url = redact_url(url)

        self._log.info("API Request %s %s", method, safe_url)
        try:
            response = await self._http.request(
                method,
                url,
                headers=headers,
                params=dict(params) if params else None,
                data=dict(data) if data is not None else None,
            )
        except httpx.HTTPError as exc:
            self._log.error("API Error %s %s: %s", method, safe_url, type(exc).__name__)
            self.audit.api_access(method, url, None)
            raise UpstreamError(
                f"Request to {safe_url} failed: {exc}",
                error="transport_error",
            ) from exc

        self._log.info("API Response %d %s", response.status_code, safe_url)
        self.audit.api_access(method, url, response.status_code)

        if response.status_code == 401:
            self.tokens.invalidate()

        if response.status_code >= 400:
            raise self._normalize_error(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Upstream returned a non-JSON body",
                error="invalid_response",
                response=response.text,
                status=response.status_code,
            ) from exc

    def _normalize_error(self, response: httpx.Response) -> UpstreamError:
        """Build the one normalized error for a failed response."""
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text or None

        fields = body if isinstance(body, dict) else {}
        error = fields.get("error") or "Unknown error"
        message = fields.get("message") or (
            body if isinstance(body, str) and body else response.reason_phrase or "Request failed"
        )
        self._log.error(
            "API Error %d %s: %s",
            response.status_code,
            redact_url(str(response.request.url)),
            error,
        )

        error_cls = UpstreamError
        if self.is_preview and response.status_code in (403, 404):
            error_cls = UnavailableEndpointError

        return error_cls(
            str(message),
            error=str(error),
            detailcode=fields.get("detailcode"),
            details=fields.get("details"),
            response=body,
            status=response.status_code,
        )

    async def health_check(self) -> dict[str, str]:
        """Ping the practice endpoint.

        Returns:
            {"status": "healthy" | "unhealthy", "timestamp": ISO-8601}.
        """
        status = "healthy"
        try:
            await self.get(f"{self.practice_id}/ping")
        except (UpstreamError, AuthenticationError) as exc:
            self._log.warning("Health check failed: %s", exc)
            status = "unhealthy"
        return {"status": status, "timestamp": datetime.now(timezone.utc).isoformat()}

