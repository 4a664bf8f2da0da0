"""
Push provider - delivers one composed message to one device token
through the Expo Push API.
"""

import logging
from typing import Optional, Protocol

import httpx

from app.core.exceptions import UpstreamDeliveryError
from app.notifications.schemas import PushMessage

logger = logging.getLogger(__name__)

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# Expo error code for tokens that will never accept a push again
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"


class PushProvider(Protocol):
    """Opaque deliver(token, message) service."""

    async def deliver(self, token: str, message: PushMessage) -> str:
        """Send `message` to `token`; return a provider receipt id or raise UpstreamDeliveryError."""
        ...


class ExpoPushProvider:
    """Sends push notifications via the Expo Push API."""

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        access_token: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.access_token = access_token
        self.timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def deliver(self, token: str, message: PushMessage) -> str:
        """
        Send one notification to one Expo push token.

        Returns the Expo ticket id.

        Raises:
            UpstreamDeliveryError: On HTTP errors, non-200 responses or error tickets
        """
        payload = [
            {
                "to": token,
                "sound": "default",
                "title": message.title,
                "body": message.body,
                **({"data": message.data} if message.data else {}),
            }
        ]

        try:
            response = await self._get_client().post(
                self.url, json=payload, headers=self._headers()
            )
        except httpx.TimeoutException as e:
            raise UpstreamDeliveryError(f"Expo API request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise UpstreamDeliveryError(f"Expo API HTTP error: {e}") from e

        if response.status_code != 200:
            raise UpstreamDeliveryError(
                f"Expo API error: {response.status_code} - {response.text}"
            )

        try:
            tickets = response.json().get("data", [])
        except (ValueError, AttributeError) as e:
            raise UpstreamDeliveryError("Expo API returned malformed response") from e
        if isinstance(tickets, dict):
            tickets = [tickets]
        if not tickets:
            raise UpstreamDeliveryError("Expo API returned no ticket")

        ticket = tickets[0]
        if not isinstance(ticket, dict):
            raise UpstreamDeliveryError("Expo API returned malformed response")
        if ticket.get("status") != "ok":
            error_code = (ticket.get("details") or {}).get("error", "unknown")
            raise UpstreamDeliveryError(
                f"Expo rejected push: {error_code} - {ticket.get('message', '')}",
                unregistered=error_code == DEVICE_NOT_REGISTERED,
            )

        return ticket.get("id", "")

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
