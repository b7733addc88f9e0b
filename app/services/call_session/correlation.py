"""Correlation token carried through the provider's client_state field."""
import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrelationToken:
    """Identifies the session an inbound provider event belongs to."""

    session_id: str
    assistant_id: Optional[str] = None


def encode_client_state(token: CorrelationToken) -> str:
    """Encode a token as base64 JSON. The provider echoes it back untouched."""
    body = {"sessionId": token.session_id, "assistantId": token.assistant_id}
    raw = json.dumps(body, separators=(",", ":")).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def decode_client_state(value: Optional[str]) -> Optional[CorrelationToken]:
    """
    Decode a client_state value.

    Returns None for anything that is not a token we issued; never raises.
    """
    if not value or not isinstance(value, str):
        return None

    try:
        raw = base64.b64decode(value, validate=True)
        decoded = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        logger.warning(f"[CORRELATION] Could not decode client_state: {type(e).__name__}")
        return None

    if not isinstance(decoded, dict):
        return None

    session_id = decoded.get("sessionId")
    if not isinstance(session_id, str) or not session_id.strip():
        return None

    assistant_id = decoded.get("assistantId")
    if not isinstance(assistant_id, str):
        assistant_id = None

    return CorrelationToken(session_id=session_id, assistant_id=assistant_id)
