"""Unit tests for the call initiation orchestrator."""
import pytest

from app.core.errors import (
    InvalidRequest,
    PartialInitiationError,
    ProviderError,
    StorageError,
)
from app.services.call_session.correlation import decode_client_state
from app.services.call_session.orchestrator import CallInitiationOrchestrator
from app.services.persistence.calls import CallSessionStore

WEBHOOK_URL = "https://calls.example.com/webhooks/provider"


class FailingCreateStore(CallSessionStore):
    async def create_session(self, session):
        raise StorageError("database is down")


class FailingUpdateStore(CallSessionStore):
    async def apply_update(self, session_id, **kwargs):
        raise StorageError("database is down")


@pytest.fixture
def orchestrator(store, fake_gateway, test_settings):
    return CallInitiationOrchestrator(store, fake_gateway, test_settings, webhook_url=WEBHOOK_URL)


class TestInitiate:
    """Test the happy path."""

    @pytest.mark.asyncio
    async def test_initiate_success(self, orchestrator, store, fake_gateway):
        """Test that an accepted call moves the session to in_progress."""
        result = await orchestrator.initiate("owner-1", "+15551234567", "asst_1", "Sales bot")

        assert result.provider_call_id == "call_abc"
        session = await store.get_session(result.session_id)
        assert session.status == "in_progress"
        assert session.owner_id == "owner-1"
        assert session.phone_number == "+15551234567"
        assert session.assistant_id == "asst_1"
        assert session.assistant_name == "Sales bot"
        assert session.provider_call_id == "call_abc"
        assert session.provider_control_id == "ctrl_abc"
        assert await store.count_sessions_for_owner("owner-1") == 1

    @pytest.mark.asyncio
    async def test_provider_request(self, orchestrator, fake_gateway, test_settings):
        """Test what the gateway is asked to dial."""
        result = await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert len(fake_gateway.requests) == 1
        request = fake_gateway.requests[0]
        assert request.to == "+15551234567"
        assert request.from_number == test_settings.telnyx_from_number
        assert request.webhook_url == WEBHOOK_URL
        assert request.assistant_id == "asst_1"

        token = decode_client_state(request.client_state)
        assert token.session_id == result.session_id
        assert token.assistant_id == "asst_1"

    @pytest.mark.asyncio
    async def test_session_persisted_before_provider_call(self, orchestrator, store, fake_gateway):
        """Test that the record exists in initiating before dialing."""
        seen = {}

        async def check_record(request):
            token = decode_client_state(request.client_state)
            session = await store.get_session(token.session_id)
            seen["status"] = session.status if session else None

        fake_gateway.on_place_call = check_record

        await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert seen["status"] == "initiating"

    @pytest.mark.asyncio
    async def test_each_initiation_gets_fresh_id(self, orchestrator):
        first = await orchestrator.initiate("owner-1", "+15551234567", "asst_1")
        second = await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert first.session_id != second.session_id


class TestValidation:
    """Test input validation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "phone_number",
        ["abc", "0123", "", None, "+0123456", "1", "+1234567890123456", "+1٥٥٥١٢٣٤٥٦٧", "+１５５５１２３４５６７"],
    )
    async def test_invalid_phone_number(self, orchestrator, store, fake_gateway, phone_number):
        """Test that malformed numbers fail and create nothing."""
        with pytest.raises(InvalidRequest) as exc_info:
            await orchestrator.initiate("owner-1", phone_number, "asst_1")

        assert any(d["field"] == "phone_number" for d in exc_info.value.details)
        assert await store.count_sessions_for_owner("owner-1") == 0
        assert fake_gateway.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("assistant_id", ["", "   ", None])
    async def test_invalid_assistant_id(self, orchestrator, store, assistant_id):
        with pytest.raises(InvalidRequest) as exc_info:
            await orchestrator.initiate("owner-1", "+15551234567", assistant_id)

        assert any(d["field"] == "assistant_id" for d in exc_info.value.details)
        assert await store.count_sessions_for_owner("owner-1") == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("phone_number", ["15551234567", "+44", "+447911123456"])
    async def test_valid_phone_numbers(self, orchestrator, phone_number):
        result = await orchestrator.initiate("owner-1", phone_number, "asst_not_a_uuid")
        assert result.session_id


class TestFailures:
    """Test provider and storage failures."""

    @pytest.mark.asyncio
    async def test_provider_rejection_marks_failed(self, orchestrator, store, fake_gateway):
        """Test that an explicit rejection fails the session and propagates."""
        fake_gateway.error = ProviderError(
            "Telnyx API error (422): Invalid destination", status_code=422, detail="Invalid destination"
        )

        with pytest.raises(ProviderError) as exc_info:
            await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert exc_info.value.detail == "Invalid destination"
        sessions = await store.list_sessions_for_owner("owner-1", limit=10, offset=0)
        assert len(sessions) == 1
        assert sessions[0].status == "failed"
        assert sessions[0].ended_at is not None
        assert sessions[0].duration_seconds == 0
        assert sessions[0].provider_call_id is None

    @pytest.mark.asyncio
    async def test_provider_unreachable_leaves_initiating(self, orchestrator, store, fake_gateway):
        """Test that an unknown outcome leaves the session initiating."""
        fake_gateway.error = ProviderError("Telnyx API unreachable: ConnectTimeout")

        with pytest.raises(ProviderError):
            await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        sessions = await store.list_sessions_for_owner("owner-1", limit=10, offset=0)
        assert len(sessions) == 1
        assert sessions[0].status == "initiating"
        assert sessions[0].ended_at is None

    @pytest.mark.asyncio
    async def test_create_failure_places_no_call(self, test_db, fake_gateway, test_settings):
        """Test that a storage failure on create never reaches the provider."""
        orchestrator = CallInitiationOrchestrator(
            FailingCreateStore(test_db), fake_gateway, test_settings, webhook_url=WEBHOOK_URL
        )

        with pytest.raises(StorageError):
            await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert fake_gateway.requests == []

    @pytest.mark.asyncio
    async def test_update_failure_reports_partial_initiation(self, test_db, store, fake_gateway, test_settings):
        """Test the placed-but-not-recorded window is reported, not hidden."""
        orchestrator = CallInitiationOrchestrator(
            FailingUpdateStore(test_db), fake_gateway, test_settings, webhook_url=WEBHOOK_URL
        )

        with pytest.raises(PartialInitiationError) as exc_info:
            await orchestrator.initiate("owner-1", "+15551234567", "asst_1")

        assert exc_info.value.provider_call_id == "call_abc"
        session = await store.get_session(exc_info.value.session_id)
        assert session.status == "initiating"
        assert len(fake_gateway.requests) == 1
