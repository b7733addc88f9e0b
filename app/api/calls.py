"""Call session API endpoints."""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from app.api.auth import require_owner
from app.core.config import Settings
from app.core.dependencies import get_call_session_store, get_settings, get_telephony_gateway
from app.core.errors import (
    InvalidRequest,
    NotFound,
    PartialInitiationError,
    ProviderError,
    StorageError,
)
from app.services.call_session.orchestrator import CallInitiationOrchestrator
from app.services.call_session.queries import CallSessionQueries
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.base import TelephonyGateway

router = APIRouter()
logger = logging.getLogger(__name__)


class InitiateCallBody(BaseModel):
    """POST /calls request body. Field rules are enforced by the orchestrator."""
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    assistant_id: Optional[str] = Field(default=None, alias="assistantId")
    assistant_name: Optional[str] = Field(default=None, alias="assistantName")

    class Config:
        populate_by_name = True


class InitiateCallResponse(BaseModel):
    """POST /calls response."""
    session_id: str
    provider_call_id: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CallSessionResponse(BaseModel):
    """Call session response model."""
    id: str
    owner_id: str
    phone_number: str
    assistant_id: str
    assistant_name: Optional[str] = None
    status: str
    provider_call_id: Optional[str] = None
    provider_control_id: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    recording_ref: Optional[str] = None
    transcript: Optional[str] = None
    insights: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class CallSessionListResponse(BaseModel):
    """GET /calls response."""
    items: List[CallSessionResponse] = []
    total: int
    limit: int
    offset: int


def get_base_url(request: Request, settings: Settings) -> str:
    """
    Get the base URL for constructing absolute URLs.

    Uses BASE_URL if set (e.g. behind a tunnel or proxy), otherwise
    constructs it from the request.
    """
    if settings.base_url:
        return settings.base_url.rstrip("/")
    return str(request.base_url).rstrip("/")


def get_orchestrator(
    request: Request,
    store: CallSessionStore = Depends(get_call_session_store),
    gateway: TelephonyGateway = Depends(get_telephony_gateway),
    settings: Settings = Depends(get_settings),
) -> CallInitiationOrchestrator:
    """Get call initiation orchestrator."""
    webhook_url = f"{get_base_url(request, settings)}{settings.webhook_path}"
    return CallInitiationOrchestrator(store, gateway, settings, webhook_url=webhook_url)


def get_queries(store: CallSessionStore = Depends(get_call_session_store)) -> CallSessionQueries:
    """Get call session queries."""
    return CallSessionQueries(store)


@router.post("/calls", response_model=InitiateCallResponse)
async def initiate_call(
    body: InitiateCallBody,
    owner_id: str = Depends(require_owner),
    orchestrator: CallInitiationOrchestrator = Depends(get_orchestrator),
):
    """Start an outbound AI call."""
    logger.info(
        f"[CALLS] Initiation requested - owner: {owner_id}, "
        f"to: {body.phone_number}, assistant: {body.assistant_id}"
    )

    try:
        result = await orchestrator.initiate(
            owner_id,
            body.phone_number,
            body.assistant_id,
            body.assistant_name,
        )
    except InvalidRequest as e:
        raise HTTPException(status_code=400, detail={"error": "Invalid input", "details": e.details})
    except PartialInitiationError as e:
        logger.error(f"[CALLS] Partial initiation - session: {e.session_id}, error: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "detail": {
                    "error": str(e),
                    "sessionId": e.session_id,
                    "providerCallId": e.provider_call_id,
                }
            },
        )
    except ProviderError as e:
        raise HTTPException(status_code=500, detail={"error": str(e)})
    except StorageError as e:
        raise HTTPException(status_code=500, detail={"error": str(e)})

    return InitiateCallResponse(session_id=result.session_id, provider_call_id=result.provider_call_id)


@router.get("/calls", response_model=CallSessionListResponse)
async def list_calls(
    limit: Optional[str] = None,
    offset: Optional[str] = None,
    owner_id: str = Depends(require_owner),
    queries: CallSessionQueries = Depends(get_queries),
):
    """List the caller's call sessions, newest first."""
    try:
        page = await queries.list(owner_id, limit=limit, offset=offset)
    except StorageError as e:
        logger.error(f"[CALLS] Error listing sessions - owner: {owner_id}, Error: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": str(e)})

    logger.info(f"[CALLS] Listed {len(page.items)} of {page.total} sessions - owner: {owner_id}")
    return CallSessionListResponse(
        items=[CallSessionResponse.model_validate(item) for item in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.get("/calls/{session_id}", response_model=CallSessionResponse)
async def get_call(
    session_id: str,
    owner_id: str = Depends(require_owner),
    queries: CallSessionQueries = Depends(get_queries),
):
    """Get one call session."""
    try:
        session = await queries.get(owner_id, session_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Call session not found")
    except StorageError as e:
        logger.error(f"[CALLS] Error fetching session {session_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail={"error": str(e)})

    return CallSessionResponse.model_validate(session)
