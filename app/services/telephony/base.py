"""Telephony gateway interface."""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PlaceCallRequest:
    """Outbound call request handed to the gateway."""

    to: str
    from_number: str
    webhook_url: str
    client_state: str
    assistant_id: str


@dataclass(frozen=True)
class PlacedCall:
    """Identifiers the provider assigned to an accepted call."""

    provider_call_id: Optional[str]
    provider_control_id: Optional[str]
    raw_response: Dict[str, Any] = field(default_factory=dict)


def unwrap_data(body: Any) -> Dict[str, Any]:
    """
    Normalize a provider response body.

    Telnyx answers either `{"data": {...}}` or the object itself; callers
    only ever see the inner object.
    """
    if isinstance(body, dict) and isinstance(body.get("data"), dict):
        return body["data"]
    if isinstance(body, dict):
        return body
    return {}


class TelephonyGateway(ABC):
    """Abstract base class for call-control providers."""

    @abstractmethod
    async def place_call(self, request: PlaceCallRequest) -> PlacedCall:
        """
        Place an outbound call.

        Raises:
            ProviderError: the provider rejected the call or was unreachable
        """
        pass

    @abstractmethod
    async def start_assistant(self, control_id: str, assistant_id: str) -> None:
        """
        Attach an AI assistant to a live call.

        Raises:
            ProviderError: the provider rejected the request or was unreachable
        """
        pass
