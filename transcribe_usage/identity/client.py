"""Auth0 Management API wrapper for removing identity accounts."""

import time
from typing import Any
from urllib.parse import quote

import httpx

from ..errors import ExternalServiceError
from ..logging import get_logger

logger = get_logger(__name__)

SERVICE_NAME = "auth0"

# Refresh the management token this many seconds before Auth0 expires it
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class IdentityProvider:
    """Deletes users from the Auth0 tenant using client credentials."""

    def __init__(
        self,
        domain: str,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the provider.

        Args:
            domain: Auth0 tenant domain.
            client_id: Machine-to-machine application client ID.
            client_secret: Machine-to-machine application secret.
            timeout: HTTP timeout in seconds.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self._domain = domain
        self._client_id = client_id
        self._client_secret = client_secret
        self._timeout = timeout
        self._transport = transport
        self._token: str | None = None
        self._token_expires_at = 0.0

    @property
    def base_url(self) -> str:
        return f"https://{self._domain}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _get_management_token(self, client: httpx.AsyncClient) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token

        payload = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "audience": f"{self.base_url}/api/v2/",
        }
        response = await client.post("/oauth/token", data=payload)
        if response.status_code != httpx.codes.OK:
            logger.error(
                "Auth0 management token request failed",
                status_code=response.status_code,
            )
            raise ExternalServiceError(
                SERVICE_NAME, f"token request failed with status {response.status_code}"
            )

        data: dict[str, Any] = response.json()
        self._token = data["access_token"]
        expires_in = float(data.get("expires_in", 86400))
        self._token_expires_at = (
            time.monotonic() + max(expires_in - TOKEN_EXPIRY_MARGIN_SECONDS, 0)
        )
        return self._token

    async def delete_user(self, user_id: str) -> bool:
        """Delete an identity account.

        Returns:
            True if the account was deleted, False if it did not exist.

        Raises:
            ExternalServiceError: On transport errors or unexpected responses.
        """
        try:
            async with self._client() as client:
                token = await self._get_management_token(client)
                response = await client.delete(
                    f"/api/v2/users/{quote(user_id, safe='')}",
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, str(e)) from e

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Identity account already absent", user_id=user_id)
            return False
        if response.status_code not in (httpx.codes.OK, httpx.codes.NO_CONTENT):
            logger.error(
                "Identity account deletion failed",
                user_id=user_id,
                status_code=response.status_code,
            )
            raise ExternalServiceError(
                SERVICE_NAME, f"user deletion failed with status {response.status_code}"
            )

        logger.info("Identity account deleted", user_id=user_id)
        return True
