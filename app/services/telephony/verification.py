"""Webhook origin verification."""
from abc import ABC, abstractmethod
from typing import Mapping

SIGNATURE_HEADER = "telnyx-signature-ed25519"
TIMESTAMP_HEADER = "telnyx-timestamp"


class WebhookVerifier(ABC):
    """Decides whether an inbound webhook really came from the provider."""

    @abstractmethod
    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        """Return True if the request is verified."""
        pass


class HeaderPresenceVerifier(WebhookVerifier):
    """
    Checks that the provider's signature headers are present.

    It does not check the Ed25519 signature itself; a verifier that does
    can be swapped in through the get_webhook_verifier dependency.
    """

    def verify(self, body: bytes, headers: Mapping[str, str]) -> bool:
        lowered = {key.lower(): value for key, value in headers.items()}
        return bool(lowered.get(SIGNATURE_HEADER)) and bool(lowered.get(TIMESTAMP_HEADER))
