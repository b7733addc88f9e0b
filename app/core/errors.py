"""Error taxonomy for the call session lifecycle."""
from typing import Any, Dict, List, Optional


class CallServiceError(Exception):
    """Base class for call session errors."""


class InvalidRequest(CallServiceError):
    """Caller input failed validation. Nothing was persisted or dialed."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class ProviderError(CallServiceError):
    """The telephony provider rejected the request or could not be reached."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail

    @property
    def rejected(self) -> bool:
        """True when the provider answered with an error response."""
        return self.status_code is not None


class StorageError(CallServiceError):
    """The session store is unavailable or a write failed."""


class PartialInitiationError(StorageError):
    """The provider accepted the call but the session record was not updated."""

    def __init__(self, message: str, session_id: str, provider_call_id: Optional[str]):
        super().__init__(message)
        self.session_id = session_id
        self.provider_call_id = provider_call_id


class NotFound(CallServiceError):
    """Scoped lookup miss."""


class InvalidPayload(CallServiceError):
    """Webhook body could not be parsed."""


class Unverifiable(CallServiceError):
    """Webhook origin could not be verified."""
