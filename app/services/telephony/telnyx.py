"""Telnyx call-control gateway."""
import logging
from typing import Any, Dict, Optional
import httpx

from app.core.config import Settings
from app.core.errors import ProviderError
from app.services.telephony.base import PlaceCallRequest, PlacedCall, TelephonyGateway, unwrap_data

logger = logging.getLogger(__name__)


def extract_error_detail(response: httpx.Response) -> str:
    """Pull the most useful diagnostic out of a Telnyx error response."""
    text = response.text
    try:
        body = response.json()
    except ValueError:
        return text

    if isinstance(body, dict):
        errors = body.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            detail = errors[0].get("detail") or errors[0].get("title")
            if detail:
                return str(detail)
        if body.get("message"):
            return str(body["message"])
    return text


class TelnyxGateway(TelephonyGateway):
    """TelephonyGateway backed by the Telnyx v2 REST API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.base_url = settings.telnyx_api_base_url.rstrip("/")
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.settings.telnyx_timeout_seconds,
            transport=self.transport,
            headers={
                "Authorization": f"Bearer {self.settings.telnyx_api_key}",
                "Accept": "application/json",
            },
        )

    def build_call_payload(self, request: PlaceCallRequest) -> Dict[str, Any]:
        """Build the body of POST /calls."""
        return {
            "connection_id": self.settings.telnyx_connection_id,
            "to": request.to,
            "from": request.from_number,
            "webhook_url": request.webhook_url,
            "webhook_url_method": "POST",
            "record": self.settings.telnyx_record_mode,
            "answering_machine_detection": self.settings.telnyx_answering_machine_detection,
            "client_state": request.client_state,
            "ai": {"assistant_id": request.assistant_id},
        }

    async def _post(self, path: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            async with self._client() as client:
                return await client.post(path, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[TELNYX] Transport error on POST {path}: {type(e).__name__}: {e}")
            raise ProviderError(f"Telnyx API unreachable: {type(e).__name__}: {e}") from e

    async def place_call(self, request: PlaceCallRequest) -> PlacedCall:
        """Place an outbound call through Telnyx call control."""
        payload = self.build_call_payload(request)
        logger.info(
            f"[TELNYX] Placing call - to: {request.to}, "
            f"connection: {self.settings.telnyx_connection_id}, assistant: {request.assistant_id}"
        )

        response = await self._post("/calls", payload)
        if not response.is_success:
            detail = extract_error_detail(response)
            logger.error(f"[TELNYX] Call rejected ({response.status_code}): {detail}")
            raise ProviderError(
                f"Telnyx API error ({response.status_code}): {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        try:
            body = response.json()
        except ValueError:
            body = {}
        call = unwrap_data(body)

        placed = PlacedCall(
            provider_call_id=call.get("id") or call.get("call_session_id"),
            provider_control_id=call.get("call_control_id"),
            raw_response=call,
        )
        logger.info(
            f"[TELNYX] Call accepted - call id: {placed.provider_call_id}, "
            f"control id: {placed.provider_control_id}"
        )
        return placed

    async def start_assistant(self, control_id: str, assistant_id: str) -> None:
        """Start an AI assistant on a live call."""
        response = await self._post(
            f"/calls/{control_id}/actions/ai_assistant_start",
            {"assistant": {"id": assistant_id}},
        )
        if not response.is_success:
            detail = extract_error_detail(response)
            logger.error(f"[TELNYX] Failed to start assistant ({response.status_code}): {detail}")
            raise ProviderError(
                f"Telnyx API error ({response.status_code}): {detail}",
                status_code=response.status_code,
                detail=detail,
            )
        logger.info(f"[TELNYX] Assistant {assistant_id} started on {control_id}")
