"""OAuth2 client-credentials token management for the athenahealth API.

This module provides the TokenManager class, which owns the only piece of
shared mutable state in the adapter: the access token, the optional refresh
token, and the absolute expiry time.

Concept — Client Credentials Grant:
    The service authenticates *itself* (not an end user). It POSTs
    ``grant_type=client_credentials`` and a fixed scope to the token
    endpoint, using HTTP Basic auth built from the client id and secret.
    The server responds with:
    - access_token: Sent as ``Authorization: Bearer ...`` on every call
    - expires_in: Seconds until the access token expires
    - refresh_token: Optional; when present we try it before a full exchange

Lifecycle:
    absent at startup -> populated on first authentication -> refreshed or
    re-authenticated as it nears expiry -> cleared on any upstream 401.

Concurrency:
    Token acquisition is single-flight. Concurrent callers that all see an
    expiring token queue on an asyncio.Lock; the first one exchanges
    credentials and the rest re-check and reuse its token.

Usage:
    tokens = TokenManager(settings, http)
    token = await tokens.ensure_valid_token()
"""

from __future__ import annotations

import asyncio
import logging
import time

import httpx

from athena_mcp.audit import AuditLogger
from athena_mcp.config import Settings
from athena_mcp.errors import AuthenticationError

logger = logging.getLogger(__name__)

PRODUCTION_TOKEN_URL = "https://api.platform.athenahealth.com/oauth2/v1/token"
PREVIEW_TOKEN_URL = "https://api.preview.platform.athenahealth.com/oauth2/v1/token"

# The scope requested on every exchange. Grants the service access to the
# practice-management (MDP) APIs.
DEFAULT_SCOPE = "athena/service/Athenanet.MDP.*"

# Renew the token when it has less than this many seconds left
REFRESH_WINDOW_SECONDS = 5 * 60


class TokenManager:
    """Holds athenahealth token state and decides when to renew it.

    No other component reads or writes the token fields. Callers get a
    live token from ensure_valid_token() and report a dead one with
    invalidate().

    Attributes:
        token_url: OAuth endpoint, chosen from the base URL's tier.
        scope: Scope string sent with every exchange.
    """

    def __init__(
        self,
        settings: Settings,
        http: httpx.AsyncClient,
        audit: AuditLogger | None = None,
        scope: str = DEFAULT_SCOPE,
        log: logging.Logger | None = None,
    ) -> None:
        self._client_id = settings.client_id
        self._client_secret = settings.client_secret
        self._http = http
        self._audit = audit or AuditLogger()
        self._log = log or logger
        self.scope = scope
        self.token_url = PREVIEW_TOKEN_URL if settings.is_preview else PRODUCTION_TOKEN_URL

        # Token state — starts empty, populated by authenticate()
        self._access_token: str | None = None
        self._refresh_token: str | None = None
        self._expires_at: float | None = None  # Unix timestamp

        self._lock = asyncio.Lock()

    @property
    def has_token(self) -> bool:
        return self._access_token is not None

    def _needs_renewal(self) -> bool:
        if not self._access_token or self._expires_at is None:
            return True
        return self._expires_at - time.time() < REFRESH_WINDOW_SECONDS

    async def ensure_valid_token(self) -> str:
        """Return an access token that is not inside the refresh window.

        If no token is held, or its expiry is unknown, performs a full
        authentication. If the token expires within 5 minutes, tries the
        refresh grant when a refresh token exists and otherwise
        re-authenticates.

        Returns:
            The current access token.

        Raises:
            AuthenticationError: If no valid token could be obtained.
        """
        if not self._needs_renewal():
            return self._access_token  # type: ignore[return-value]

        async with self._lock:
            # Another task may have renewed the token while we waited
            if self._needs_renewal():
                if not self._access_token or self._expires_at is None:
                    self._log.info("No token — authenticating")
                    await self.authenticate()
                elif self._refresh_token:
                    self._log.info("Access token expiring — refreshing")
                    await self._refresh()
                else:
                    self._log.info("Access token expiring — re-authenticating")
                    await self.authenticate()
            return self._access_token  # type: ignore[return-value]

    async def authenticate(self) -> None:
        """Exchange client credentials for a new token.

        Raises:
            AuthenticationError: If the exchange fails. Existing token
                state is left untouched in that case.
        """
        payload = {"grant_type": "client_credentials", "scope": self.scope}
        try:
            await self._token_request(payload)
        except AuthenticationError:
            self._audit.auth_event("client_credentials", success=False)
            raise
        self._audit.auth_event("client_credentials")

    async def _refresh(self) -> None:
        """Use the refresh token; fall back to a full exchange on failure."""
        payload = {"grant_type": "refresh_token", "refresh_token": self._refresh_token or ""}
        try:
            await self._token_request(payload)
        except AuthenticationError:
            self._log.warning("Token refresh failed — falling back to client credentials")
            await self.authenticate()
            return
        self._audit.auth_event("refresh_token")

    async def _token_request(self, payload: dict[str, str]) -> None:
        """Send a token request and store the response.

        The token endpoint expects form-encoded data, NOT JSON, and Basic
        auth built from the client id and secret.

        Raises:
            AuthenticationError: If the request fails or the body is unusable.
        """
        try:
            response = await self._http.post(
                self.token_url,
                data=payload,
                auth=httpx.BasicAuth(self._client_id, self._client_secret),
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._log.error(
                "Authentication failed (HTTP %d) against %s",
                exc.response.status_code,
                self.token_url,
            )
            raise AuthenticationError(
                f"Token request failed (HTTP {exc.response.status_code}): {exc.response.text}",
                status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            self._log.error("Authentication request to %s failed: %s", self.token_url, exc)
            raise AuthenticationError(f"Token request failed: {exc}") from exc

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = float(data.get("expires_in", 3600))
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthenticationError(f"Malformed token response: {exc}") from exc
        if expires_in <= 0:
            raise AuthenticationError(f"Token response has non-positive expires_in: {expires_in}")

        # Only mutate state once the whole response has been validated
        self._access_token = access_token
        self._refresh_token = data.get("refresh_token") or None
        self._expires_at = time.time() + expires_in
        self._log.info("Authentication successful, token expires in %d seconds", expires_in)

    def invalidate(self) -> None:
        """Forget the current token so the next call re-authenticates.

        Called by the request executor whenever an upstream call returns 401.
        """
        self._access_token = None
        self._refresh_token = None
        self._expires_at = None
        self._log.warning("Token invalidated after 401 response")
