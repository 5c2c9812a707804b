"""Tests for the Auth0 identity wrapper."""

import httpx
import pytest

from transcribe_usage.errors import ExternalServiceError
from transcribe_usage.identity import IdentityProvider


def make_provider(delete_status: int = 204, token_status: int = 200, calls=None):
    calls = calls if calls is not None else []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        if request.url.path == "/oauth/token":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "access_denied"})
            return httpx.Response(200, json={"access_token": "tok-1", "expires_in": 86400})
        assert request.headers["Authorization"] == "Bearer tok-1"
        return httpx.Response(delete_status)

    provider = IdentityProvider(
        domain="tenant.example.com",
        client_id="client",
        client_secret="secret",
        transport=httpx.MockTransport(handler),
    )
    return provider, calls


# =============================================================================
# delete_user
# =============================================================================


class TestDeleteUser:
    """Tests for IdentityProvider.delete_user."""

    @pytest.mark.asyncio
    async def test_deletes_account(self):
        provider, calls = make_provider()

        assert await provider.delete_user("auth0|abc") is True
        assert calls == [
            ("POST", "/oauth/token"),
            ("DELETE", "/api/v2/users/auth0|abc"),
        ]

    @pytest.mark.asyncio
    async def test_absent_account(self):
        provider, _ = make_provider(delete_status=404)
        assert await provider.delete_user("auth0|gone") is False

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        provider, _ = make_provider(delete_status=500)
        with pytest.raises(ExternalServiceError) as exc_info:
            await provider.delete_user("auth0|abc")
        assert exc_info.value.service == "auth0"

    @pytest.mark.asyncio
    async def test_token_failure_raises(self):
        provider, calls = make_provider(token_status=401)
        with pytest.raises(ExternalServiceError):
            await provider.delete_user("auth0|abc")
        assert calls == [("POST", "/oauth/token")]

    @pytest.mark.asyncio
    async def test_token_is_cached(self):
        """A second deletion reuses the management token."""
        provider, calls = make_provider()

        await provider.delete_user("auth0|one")
        await provider.delete_user("auth0|two")

        assert [c for c in calls if c[1] == "/oauth/token"] == [("POST", "/oauth/token")]

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        provider = IdentityProvider(
            domain="tenant.example.com",
            client_id="client",
            client_secret="secret",
            transport=httpx.MockTransport(handler),
        )
        with pytest.raises(ExternalServiceError):
            await provider.delete_user("auth0|abc")
