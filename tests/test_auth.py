"""Tests for the OAuth2 TokenManager.

These tests use httpx's MockTransport to simulate the athenahealth token
endpoint. No real server connection is needed — everything is faked.
"""

import asyncio
import base64
import time
from urllib.parse import parse_qs

import httpx
import pytest

from athena_mcp.auth import (
    DEFAULT_SCOPE,
    PREVIEW_TOKEN_URL,
    PRODUCTION_TOKEN_URL,
    TokenManager,
)
from athena_mcp.config import Settings
from athena_mcp.errors import AuthenticationError

# --- Test helpers ---


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "client_id": "test-client-id",
        "client_secret": "test-client-secret",
        "practice_id": "195900",
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


def _token_response(
    access_token: str = "test-access-token",
    refresh_token: str | None = None,
    expires_in: int = 3600,
) -> dict[str, object]:
    """Build a fake token endpoint response."""
    body: dict[str, object] = {
        "access_token": access_token,
        "token_type": "Bearer",
        "expires_in": expires_in,
        "scope": DEFAULT_SCOPE,
    }
    if refresh_token:
        body["refresh_token"] = refresh_token
    return body


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def _manager(handler, **settings: object) -> TokenManager:  # type: ignore[no-untyped-def]
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TokenManager(_settings(**settings), http)


# --- Authentication ---


class TestAuthenticate:
    """Client-credentials exchange against the token endpoint."""

    @pytest.mark.asyncio
    async def test_sends_basic_auth_and_form_body(self) -> None:
        """The exchange is Basic-authenticated and form-encoded, not JSON."""
        captured: list[httpx.Request] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler)
        await tokens.authenticate()

        request = captured[0]
        expected = base64.b64encode(b"test-client-id:test-client-secret").decode()
        assert request.headers["authorization"] == f"Basic {expected}"
        assert request.headers["content-type"] == "application/x-www-form-urlencoded"
        assert _form(request) == {"grant_type": "client_credentials", "scope": DEFAULT_SCOPE}
        assert str(request.url) == PREVIEW_TOKEN_URL

    @pytest.mark.asyncio
    async def test_production_base_url_uses_production_endpoint(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler, base_url="https://api.platform.athenahealth.com")
        assert tokens.token_url == PRODUCTION_TOKEN_URL

    @pytest.mark.asyncio
    async def test_stores_token_and_absolute_expiry(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=_token_response(refresh_token="test-refresh-token", expires_in=3600)
            )

        tokens = _manager(handler)
        before = time.time()
        await tokens.authenticate()

        assert tokens._access_token == "test-access-token"
        assert tokens._refresh_token == "test-refresh-token"
        assert tokens._expires_at is not None
        assert before + 3600 <= tokens._expires_at <= time.time() + 3600

    @pytest.mark.asyncio
    async def test_failure_raises_and_keeps_existing_state(self) -> None:
        """A failed exchange must not clobber the token already held."""

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": "invalid_client"})

        tokens = _manager(handler)
        tokens._access_token = "old-token"
        tokens._expires_at = time.time() + 120

        with pytest.raises(AuthenticationError, match="401") as excinfo:
            await tokens.authenticate()

        assert excinfo.value.status == 401
        assert tokens._access_token == "old-token"

    @pytest.mark.asyncio
    async def test_malformed_body_raises(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"token_type": "Bearer"})

        tokens = _manager(handler)
        with pytest.raises(AuthenticationError, match="Malformed"):
            await tokens.authenticate()
        assert not tokens.has_token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", [0, -30])
    async def test_non_positive_expiry_is_rejected(self, expires_in: int) -> None:
        """A token that is already expired is never stored or handed out."""
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_token_response("t1", expires_in=expires_in))

        tokens = _manager(handler)
        with pytest.raises(AuthenticationError, match="expires_in"):
            await tokens.ensure_valid_token()
        assert not tokens.has_token

    @pytest.mark.asyncio
    async def test_transport_error_raises_auth_error(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        tokens = _manager(handler)
        with pytest.raises(AuthenticationError, match="connection refused"):
            await tokens.authenticate()


# --- Renewal policy ---


class TestEnsureValidToken:
    """Freshness, the 5-minute refresh window and refresh fallback."""

    @pytest.mark.asyncio
    async def test_first_call_authenticates(self) -> None:
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(_form(request)["grant_type"])
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler)
        assert await tokens.ensure_valid_token() == "test-access-token"
        assert calls == ["client_credentials"]

    @pytest.mark.asyncio
    async def test_fresh_token_is_reused(self) -> None:
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append("token")
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        await tokens.ensure_valid_token()
        assert calls == ["token"]

    @pytest.mark.asyncio
    async def test_expired_token_reauthenticates(self) -> None:
        issued = iter(["first-token", "second-token"])

        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=_token_response(access_token=next(issued)))

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens._expires_at = time.time() - 1

        assert await tokens.ensure_valid_token() == "second-token"

    @pytest.mark.asyncio
    async def test_token_inside_refresh_window_is_renewed(self) -> None:
        """Two minutes left is inside the 5-minute window."""
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(_form(request)["grant_type"])
            return httpx.Response(200, json=_token_response(access_token=f"token-{len(calls)}"))

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens._expires_at = time.time() + 120

        assert await tokens.ensure_valid_token() == "token-2"
        assert calls == ["client_credentials", "client_credentials"]

    @pytest.mark.asyncio
    async def test_token_outside_refresh_window_is_kept(self) -> None:
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append("token")
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens._expires_at = time.time() + 600

        await tokens.ensure_valid_token()
        assert calls == ["token"]

    @pytest.mark.asyncio
    async def test_refresh_token_is_tried_first(self) -> None:
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            form = _form(request)
            calls.append(form["grant_type"])
            if form["grant_type"] == "refresh_token":
                assert form["refresh_token"] == "test-refresh-token"
                return httpx.Response(200, json=_token_response(access_token="refreshed-token"))
            return httpx.Response(
                200, json=_token_response(refresh_token="test-refresh-token")
            )

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens._expires_at = time.time() - 1

        assert await tokens.ensure_valid_token() == "refreshed-token"
        assert calls == ["client_credentials", "refresh_token"]

    @pytest.mark.asyncio
    async def test_refresh_failure_falls_back_to_client_credentials(self) -> None:
        calls = {"client_credentials": 0, "refresh_token": 0}

        async def handler(request: httpx.Request) -> httpx.Response:
            grant = _form(request)["grant_type"]
            calls[grant] += 1
            if grant == "refresh_token":
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(
                200, json=_token_response(refresh_token="test-refresh-token")
            )

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens._expires_at = time.time() - 1

        await tokens.ensure_valid_token()
        assert calls == {"client_credentials": 2, "refresh_token": 1}

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_exchange(self) -> None:
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append("token")
            await asyncio.sleep(0.01)
            return httpx.Response(200, json=_token_response())

        tokens = _manager(handler)
        results = await asyncio.gather(*(tokens.ensure_valid_token() for _ in range(5)))

        assert results == ["test-access-token"] * 5
        assert calls == ["token"]


class TestInvalidate:
    @pytest.mark.asyncio
    async def test_clears_all_token_fields(self) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json=_token_response(refresh_token="test-refresh-token")
            )

        tokens = _manager(handler)
        await tokens.ensure_valid_token()
        tokens.invalidate()

        assert tokens._access_token is None
        assert tokens._refresh_token is None
        assert tokens._expires_at is None
        assert not tokens.has_token
