"""Telephony provider webhook endpoint."""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from app.core.config import Settings
from app.core.dependencies import get_call_session_store, get_settings, get_webhook_verifier
from app.core.errors import InvalidPayload, Unverifiable
from app.services.call_session.dispatcher import WebhookEventDispatcher
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.verification import WebhookVerifier

router = APIRouter()
logger = logging.getLogger(__name__)


def get_dispatcher(
    store: CallSessionStore = Depends(get_call_session_store),
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    settings: Settings = Depends(get_settings),
) -> WebhookEventDispatcher:
    """Get webhook event dispatcher."""
    return WebhookEventDispatcher(store, verifier, settings)


@router.post("/provider")
async def handle_provider_webhook(
    request: Request,
    dispatcher: WebhookEventDispatcher = Depends(get_dispatcher),
):
    """
    Receive call-control events from the telephony provider.

    No caller auth; origin verification happens inside the dispatcher.
    Anything that parses is acknowledged so the provider stops retrying.
    """
    body = await request.body()
    logger.info(
        f"[WEBHOOK] Received webhook - {len(body)} bytes, "
        f"Client: {request.client.host if request.client else 'unknown'}"
    )

    try:
        await dispatcher.handle(body, request.headers)
    except InvalidPayload as e:
        logger.error(f"[WEBHOOK] Invalid payload: {e}")
        raise HTTPException(status_code=400, detail="Invalid webhook payload")
    except Unverifiable as e:
        raise HTTPException(status_code=401, detail=str(e))

    return {"received": True}
