"""Provider webhook envelopes and event classification."""
import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from app.core.errors import InvalidPayload


class EventKind(str, Enum):
    """What a provider event means for a call session."""

    CALL_INITIATED = "call_initiated"
    CALL_ANSWERED = "call_answered"
    AI_ENDED = "ai_ended"
    CALL_ENDED = "call_ended"
    RECORDING_AVAILABLE = "recording_available"
    TRANSCRIPT_AVAILABLE = "transcript_available"
    SUMMARY_AVAILABLE = "summary_available"
    UNRECOGNIZED = "unrecognized"


EVENT_TYPE_KINDS: Dict[str, EventKind] = {
    "call.initiated": EventKind.CALL_INITIATED,
    "call.answered": EventKind.CALL_ANSWERED,
    "ai.ended": EventKind.AI_ENDED,
    "call.hangup": EventKind.CALL_ENDED,
    "call.bridged": EventKind.CALL_ENDED,
    "call.machine.detection.ended": EventKind.CALL_ENDED,
    "call.recording.saved": EventKind.RECORDING_AVAILABLE,
    "call.transcription.ready": EventKind.TRANSCRIPT_AVAILABLE,
    "ai.transcript": EventKind.TRANSCRIPT_AVAILABLE,
    "ai.summary": EventKind.SUMMARY_AVAILABLE,
}

# Kinds that only make sense against a known session
CORRELATED_KINDS = frozenset(
    {
        EventKind.CALL_ANSWERED,
        EventKind.AI_ENDED,
        EventKind.CALL_ENDED,
        EventKind.RECORDING_AVAILABLE,
        EventKind.TRANSCRIPT_AVAILABLE,
        EventKind.SUMMARY_AVAILABLE,
    }
)


@dataclass(frozen=True)
class WebhookEnvelope:
    """A provider event, normalized from either the nested or the flat shape."""

    event_type: Optional[str]
    payload: Dict[str, Any] = field(default_factory=dict)
    event_id: Optional[str] = None
    occurred_at: Optional[str] = None

    @property
    def client_state(self) -> Optional[str]:
        return self.payload.get("client_state")

    @property
    def provider_call_id(self) -> Optional[str]:
        return self.payload.get("call_session_id")

    @property
    def provider_control_id(self) -> Optional[str]:
        return self.payload.get("call_control_id")


def parse_envelope(body: bytes) -> WebhookEnvelope:
    """
    Parse a raw webhook body.

    Accepts `{"data": {"event_type", "payload", ...}}` as well as a flat
    `{"event_type", "payload"}` object.

    Raises:
        InvalidPayload: body is not a JSON object
    """
    try:
        event = json.loads(body)
    except (ValueError, TypeError) as e:
        raise InvalidPayload(f"Webhook body is not valid JSON: {e}") from e

    if not isinstance(event, dict):
        raise InvalidPayload("Webhook body must be a JSON object")

    data = event.get("data") if isinstance(event.get("data"), dict) else {}
    event_type = data.get("event_type") or event.get("event_type")

    payload = data.get("payload")
    if not isinstance(payload, dict):
        payload = event.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    return WebhookEnvelope(
        event_type=event_type if isinstance(event_type, str) else None,
        payload=payload,
        event_id=data.get("id") or event.get("id"),
        occurred_at=data.get("occurred_at") or event.get("occurred_at"),
    )


def classify(envelope: WebhookEnvelope) -> EventKind:
    """Map a provider event type onto an EventKind."""
    if envelope.event_type == "ai.intent":
        # ai.intent carries whichever artifact is ready
        if envelope.payload.get("summary"):
            return EventKind.SUMMARY_AVAILABLE
        if envelope.payload.get("transcript"):
            return EventKind.TRANSCRIPT_AVAILABLE
        return EventKind.UNRECOGNIZED
    return EVENT_TYPE_KINDS.get(envelope.event_type or "", EventKind.UNRECOGNIZED)


def recording_url(payload: Dict[str, Any]) -> Optional[str]:
    urls = payload.get("recording_urls")
    if not isinstance(urls, dict):
        return None
    return urls.get("mp3") or urls.get("wav")


def transcript_text(payload: Dict[str, Any]) -> Optional[str]:
    transcription = payload.get("transcription")
    if isinstance(transcription, dict) and transcription.get("text"):
        return transcription["text"]
    transcript = payload.get("transcript")
    return transcript if isinstance(transcript, str) and transcript else None


def summary_text(payload: Dict[str, Any]) -> Optional[str]:
    summary = payload.get("summary")
    return summary if isinstance(summary, str) and summary else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 provider timestamp into naive UTC."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = (parsed - parsed.utcoffset()).replace(tzinfo=None)
    return parsed


# Largest duration the call_sessions INTEGER column accepts on every backend
MAX_DURATION_SECONDS = 2**31 - 1


def _valid_duration(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and 0 <= value <= MAX_DURATION_SECONDS
    )


def call_duration(payload: Dict[str, Any]) -> int:
    """Duration in seconds: call_duration, else end_time - start_time, else 0."""
    duration = payload.get("call_duration")
    if _valid_duration(duration):
        return int(duration)

    start = parse_timestamp(payload.get("start_time"))
    end = parse_timestamp(payload.get("end_time"))
    if start and end and end >= start:
        elapsed = (end - start).total_seconds()
        if _valid_duration(elapsed):
            return int(elapsed)
    return 0
