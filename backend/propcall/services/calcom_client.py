import httpx
from typing import Any, Dict, List, Optional, Union
import logging

from ..errors import UpstreamError

# Set up logger
logger = logging.getLogger(__name__)


class CalComConfigError(RuntimeError):
    """Raised when the server-held Cal.com API key is missing."""


class CalComClient:
    """Thin async wrapper over the Cal.com v1 REST API.

    Every call carries the server-held API key. Remote failures are raised as
    UpstreamError with the remote status code when there is one, else 502.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.cal.com/v1",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key or not self.api_key.strip():
            logger.error("Cal.com API key is missing in server configuration")
            raise CalComConfigError("Server Cal.com client configuration error.")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        path: str,
        failure_message: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = self._headers()
        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self.transport) as client:
                response = await client.request(method, path, headers=headers, params=params, json=json, timeout=20.0)
                logger.info(f"Cal.com {method} {path} response: {response.status_code}")
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Cal.com API HTTP error: {e.response.status_code} - {e.response.text}")
            raise UpstreamError(_remote_message(e.response) or failure_message, status_code=e.response.status_code)
        except httpx.RequestError as e:
            logger.error(f"Cal.com API request error: {str(e)}")
            raise UpstreamError("Failed to connect to Cal.com API")
        if not response.content:
            return None
        return response.json()

    async def get_availability(self, params: Dict[str, Any]) -> Any:
        return await self._request("GET", "/availability", "Failed to fetch availability from Cal.com", params=params)

    async def list_bookings(self, params: Dict[str, Any]) -> Any:
        return await self._request("GET", "/bookings", "Failed to fetch bookings from Cal.com", params=params)

    async def list_event_types(self, user_id: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {"userId": user_id} if user_id else None
        data = await self._request("GET", "/event-types", "Failed to fetch event types from Cal.com", params=params)
        return (data or {}).get("event_types", [])

    async def create_booking(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.info(f"Creating Cal.com booking for event type {payload.get('eventTypeId')}")
        return await self._request("POST", "/bookings", "Failed to create booking via Cal.com", json=payload)

    async def delete_booking(self, booking_id: Union[str, int], reason: Optional[str] = None) -> None:
        logger.info(f"Attempting to delete Cal.com booking with ID: {booking_id}")
        body = {"cancellationReason": reason} if reason else None
        await self._request("DELETE", f"/bookings/{booking_id}", "Failed to delete booking via Cal.com", json=body)
        logger.info(f"Cal.com booking {booking_id} deleted successfully.")


def _remote_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        return data.get("message") or data.get("error")
    return None
