"""IBM Cloud IAM token exchange.

Both the Cloudant store and the watsonx renderer authenticate with an
API key exchanged for a short-lived bearer token. Tokens are cached until
shortly before they expire.
"""

import asyncio
import logging
import time

import httpx

from ..errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

# Refresh this many seconds before the token's stated expiry
EXPIRY_MARGIN_SECONDS = 60


class IAMTokenProvider:
    """Exchanges an IBM Cloud API key for cached bearer tokens."""

    def __init__(self, api_key: str, token_url: str, client: httpx.AsyncClient):
        self.api_key = api_key
        self.token_url = token_url
        self._client = client
        self._token: str | None = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get_token(self) -> str:
        """Return a valid access token, fetching a new one if needed.

        Raises:
            CollaboratorUnavailable: If the IAM endpoint fails.
        """
        async with self._lock:
            if self._token and time.monotonic() < self._expires_at:
                return self._token

            try:
                response = await self._client.post(
                    self.token_url,
                    data={
                        "grant_type": "urn:ibm:params:oauth:grant-type:apikey",
                        "apikey": self.api_key,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                response.raise_for_status()
                payload = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to get IAM token: {e}")
                raise CollaboratorUnavailable("iam_token", "Failed to authenticate with IBM Cloud IAM") from e

            self._token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
            self._expires_at = time.monotonic() + max(expires_in - EXPIRY_MARGIN_SECONDS, 0)
            return self._token

    async def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {await self.get_token()}"}
