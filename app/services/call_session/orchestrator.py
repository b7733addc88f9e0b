"""Call initiation orchestrator."""
import logging
import uuid
from typing import Optional
from pydantic import ValidationError

from app.core.config import Settings
from app.core.errors import InvalidRequest, PartialInitiationError, ProviderError, StorageError
from app.db.models import CallSession
from app.services.call_session.correlation import CorrelationToken, encode_client_state
from app.services.call_session.models import InitiateCallRequest, InitiationResult
from app.services.call_session.state import CallStatus
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.base import PlaceCallRequest, TelephonyGateway

logger = logging.getLogger(__name__)


def validation_details(error: ValidationError) -> list:
    """Flatten a pydantic ValidationError into field-level messages."""
    return [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())),
            "message": err.get("msg", ""),
        }
        for err in error.errors()
    ]


class CallInitiationOrchestrator:
    """Creates a session record, dials through the gateway and reconciles the result."""

    def __init__(
        self,
        store: CallSessionStore,
        gateway: TelephonyGateway,
        settings: Settings,
        webhook_url: str,
    ):
        self.store = store
        self.gateway = gateway
        self.settings = settings
        self.webhook_url = webhook_url

    async def initiate(
        self,
        owner_id: str,
        phone_number: Optional[str],
        assistant_id: Optional[str],
        assistant_name: Optional[str] = None,
    ) -> InitiationResult:
        """
        Start an outbound AI call.

        The session id is generated and persisted before the provider is
        contacted, so an accepted call is always tied to exactly one record.

        Raises:
            InvalidRequest: input failed validation; nothing was persisted
            StorageError: the session could not be created; nothing was dialed
            ProviderError: the provider rejected the call or was unreachable
            PartialInitiationError: the call was placed but the record was not updated
        """
        try:
            request = InitiateCallRequest(
                phone_number=phone_number,
                assistant_id=assistant_id,
                assistant_name=assistant_name,
            )
        except ValidationError as e:
            details = validation_details(e)
            logger.info(f"[INITIATE] Rejected invalid request - {details}")
            raise InvalidRequest("Invalid input", details=details) from e

        session = await self.store.create_session(
            CallSession(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                phone_number=request.phone_number,
                assistant_id=request.assistant_id,
                assistant_name=request.assistant_name,
                status=CallStatus.INITIATING.value,
            )
        )
        session_id = session.id
        logger.info(
            f"[INITIATE] Session created - session: {session_id}, owner: {owner_id}, "
            f"assistant: {request.assistant_id}"
        )

        client_state = encode_client_state(
            CorrelationToken(session_id=session_id, assistant_id=request.assistant_id)
        )

        try:
            placed = await self.gateway.place_call(
                PlaceCallRequest(
                    to=request.phone_number,
                    from_number=self.settings.telnyx_from_number,
                    webhook_url=self.webhook_url,
                    client_state=client_state,
                    assistant_id=request.assistant_id,
                )
            )
        except ProviderError as e:
            await self._record_provider_failure(session_id, e)
            raise

        if not placed.provider_call_id:
            logger.warning(f"[INITIATE] Provider accepted call without a call id - session: {session_id}")

        try:
            updated = await self.store.apply_update(
                session_id,
                status=CallStatus.IN_PROGRESS,
                provider_call_id=placed.provider_call_id,
                provider_control_id=placed.provider_control_id,
            )
        except StorageError as e:
            logger.error(
                f"[INITIATE] Call placed but session not updated - session: {session_id}, "
                f"provider call: {placed.provider_call_id}"
            )
            raise PartialInitiationError(
                f"Call was placed but the session record could not be updated: {e}",
                session_id=session_id,
                provider_call_id=placed.provider_call_id,
            ) from e

        if updated is None:
            raise PartialInitiationError(
                "Call was placed but the session record disappeared",
                session_id=session_id,
                provider_call_id=placed.provider_call_id,
            )

        logger.info(
            f"[INITIATE] Call in progress - session: {session_id}, "
            f"provider call: {placed.provider_call_id}, status: {updated.status}"
        )
        return InitiationResult(session_id=session_id, provider_call_id=placed.provider_call_id)

    async def _record_provider_failure(self, session_id: str, error: ProviderError) -> None:
        """Mark the session failed if the provider explicitly rejected the call."""
        if not error.rejected:
            # Outcome unknown: the call may still have been placed.
            logger.warning(
                f"[INITIATE] Provider unreachable, session left initiating - session: {session_id}"
            )
            return

        try:
            await self.store.apply_update(session_id, status=CallStatus.FAILED, duration_seconds=0)
            logger.info(f"[INITIATE] Provider rejected call, session failed - session: {session_id}")
        except StorageError:
            logger.error(
                f"[INITIATE] Could not mark rejected session as failed - session: {session_id}",
                exc_info=True,
            )
