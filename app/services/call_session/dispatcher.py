"""Webhook event dispatcher: drives the call session state machine."""
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from app.core.config import Settings
from app.core.errors import StorageError, Unverifiable
from app.db.models import utcnow
from app.services.call_session.correlation import decode_client_state
from app.services.call_session.events import (
    CORRELATED_KINDS,
    EventKind,
    WebhookEnvelope,
    call_duration,
    classify,
    parse_envelope,
    parse_timestamp,
    recording_url,
    summary_text,
    transcript_text,
)
from app.services.call_session.state import CallStatus
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.verification import WebhookVerifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookAck:
    """Acknowledgment returned for every parsed webhook."""

    received: bool
    event_type: Optional[str] = None
    kind: Optional[EventKind] = None
    session_id: Optional[str] = None
    applied: bool = False


class WebhookEventDispatcher:
    """Applies provider events to call sessions."""

    def __init__(self, store: CallSessionStore, verifier: WebhookVerifier, settings: Settings):
        self.store = store
        self.verifier = verifier
        self.settings = settings

    def _verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        policy = self.settings.webhook_verification
        if policy == "ignore":
            return

        if self.verifier.verify(body, headers):
            return

        if policy == "enforce":
            logger.warning("[WEBHOOK] Rejecting unverified webhook")
            raise Unverifiable("Webhook origin could not be verified")

        logger.warning("[WEBHOOK] Webhook origin not verified - processing anyway")

    async def handle(self, body: bytes, headers: Mapping[str, str]) -> WebhookAck:
        """
        Handle one inbound provider webhook.

        Every event that parses is acknowledged; failures past that point
        are logged so the provider does not redeliver indefinitely.

        Raises:
            Unverifiable: verification failed under the enforce policy
            InvalidPayload: body is not a JSON object
        """
        self._verify(body, headers)
        envelope = parse_envelope(body)
        kind = classify(envelope)

        token = decode_client_state(envelope.client_state)
        session_id = token.session_id if token else None

        logger.info(
            f"[WEBHOOK] Event received - type: {envelope.event_type}, kind: {kind.value}, "
            f"session: {session_id}, provider call: {envelope.provider_call_id}"
        )

        if kind == EventKind.UNRECOGNIZED:
            logger.info(f"[WEBHOOK] Unhandled event type: {envelope.event_type}")
            return WebhookAck(received=True, event_type=envelope.event_type, kind=kind, session_id=session_id)

        if session_id is None:
            if kind in CORRELATED_KINDS:
                logger.warning(
                    f"[WEBHOOK] Uncorrelated {envelope.event_type} event skipped - "
                    f"provider call: {envelope.provider_call_id}"
                )
            return WebhookAck(received=True, event_type=envelope.event_type, kind=kind)

        try:
            applied = await self._apply(session_id, kind, envelope)
        except StorageError:
            logger.error(
                f"[WEBHOOK] Failed to apply {envelope.event_type} to session {session_id}",
                exc_info=True,
            )
            applied = False
        except Exception:
            # Driver errors outside SQLAlchemy's hierarchy still must not fail the ack
            logger.error(
                f"[WEBHOOK] Unexpected error applying {envelope.event_type} to session {session_id}",
                exc_info=True,
            )
            applied = False

        return WebhookAck(
            received=True,
            event_type=envelope.event_type,
            kind=kind,
            session_id=session_id,
            applied=applied,
        )

    async def _apply(self, session_id: str, kind: EventKind, envelope: WebhookEnvelope) -> bool:
        """Translate an event into a single store update."""
        payload = envelope.payload
        update = {
            "provider_call_id": envelope.provider_call_id,
            "provider_control_id": envelope.provider_control_id,
        }

        if kind == EventKind.CALL_INITIATED:
            pass
        elif kind == EventKind.CALL_ANSWERED:
            update["status"] = CallStatus.IN_PROGRESS
        elif kind == EventKind.AI_ENDED:
            update["status"] = CallStatus.AI_COMPLETED
        elif kind == EventKind.CALL_ENDED:
            update["status"] = CallStatus.COMPLETED
            update["ended_at"] = parse_timestamp(payload.get("end_time")) or utcnow()
            update["duration_seconds"] = call_duration(payload)
        elif kind == EventKind.RECORDING_AVAILABLE:
            update["recording_ref"] = recording_url(payload)
        elif kind == EventKind.TRANSCRIPT_AVAILABLE:
            update["transcript"] = transcript_text(payload)
        elif kind == EventKind.SUMMARY_AVAILABLE:
            update["insights"] = summary_text(payload)

        artifact_fields = ("recording_ref", "transcript", "insights")
        if any(name in update and update[name] is None for name in artifact_fields):
            logger.info(f"[WEBHOOK] {envelope.event_type} carried no usable artifact - session: {session_id}")

        update = {name: value for name, value in update.items() if value is not None}
        if not update:
            logger.info(f"[WEBHOOK] {envelope.event_type} has nothing to record - session: {session_id}")
            return False

        session = await self.store.apply_update(session_id, **update)
        if session is None:
            logger.warning(f"[WEBHOOK] Session not found: {session_id} ({envelope.event_type})")
            return False

        logger.info(
            f"[WEBHOOK] Applied {kind.value} - session: {session_id}, status: {session.status}"
        )
        return True
