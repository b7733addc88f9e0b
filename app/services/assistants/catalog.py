"""Read-through catalog of the provider's AI assistants."""
import logging
from typing import Any, Dict, List, Optional
import httpx
from pydantic import BaseModel

from app.core.config import Settings
from app.core.errors import ProviderError
from app.services.telephony.base import unwrap_data

logger = logging.getLogger(__name__)


class Assistant(BaseModel):
    """AI assistant as exposed by this API."""

    id: str
    name: str
    description: str = ""
    model: Optional[str] = None
    instructions: Optional[str] = None
    voice: str = "default"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


def to_assistant(raw: Dict[str, Any]) -> Assistant:
    """Map a Telnyx assistant object to our shape."""
    voice = raw.get("voice")
    voice_name = voice.get("voice") if isinstance(voice, dict) else None
    return Assistant(
        id=str(raw.get("id", "")),
        name=raw.get("name") or "",
        description=raw.get("description") or "",
        model=raw.get("model"),
        instructions=raw.get("instructions"),
        voice=voice_name or "default",
        created_at=raw.get("created_at"),
        updated_at=raw.get("updated_at"),
    )


class AssistantCatalog:
    """Lists and fetches assistants from Telnyx."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.transport = transport

    async def _get(self, path: str) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.settings.telnyx_api_base_url.rstrip("/"),
                timeout=self.settings.telnyx_timeout_seconds,
                transport=self.transport,
                headers={
                    "Authorization": f"Bearer {self.settings.telnyx_api_key}",
                    "Accept": "application/json",
                },
            ) as client:
                return await client.get(path)
        except httpx.HTTPError as e:
            raise ProviderError(f"Telnyx API unreachable: {type(e).__name__}: {e}") from e

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                f"[ASSISTANTS] Non-JSON response from Telnyx ({response.status_code}): {response.text[:200]}"
            )
            raise ProviderError(
                "Telnyx returned an unreadable assistant response",
                status_code=response.status_code,
                detail=response.text,
            ) from e

    async def list_assistants(self) -> List[Assistant]:
        """List every assistant on the account."""
        response = await self._get("/ai/assistants")
        if not response.is_success:
            logger.error(f"[ASSISTANTS] Failed to list assistants ({response.status_code}): {response.text}")
            raise ProviderError(
                "Failed to fetch AI assistants",
                status_code=response.status_code,
                detail=response.text,
            )

        body = self._json(response)
        items = body.get("data") if isinstance(body, dict) else None
        return [to_assistant(item) for item in items or [] if isinstance(item, dict)]

    async def get_assistant(self, assistant_id: str) -> Optional[Assistant]:
        """Fetch one assistant; None if the provider does not know it."""
        response = await self._get(f"/ai/assistants/{assistant_id}")
        if response.status_code == 404:
            return None
        if not response.is_success:
            logger.error(
                f"[ASSISTANTS] Failed to fetch assistant {assistant_id} ({response.status_code}): {response.text}"
            )
            raise ProviderError(
                "Failed to fetch AI assistant",
                status_code=response.status_code,
                detail=response.text,
            )
        return to_assistant(unwrap_data(self._json(response)))
