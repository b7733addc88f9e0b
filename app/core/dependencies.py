"""FastAPI dependencies."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.config import Settings
from app.db.database import get_db
from app.services.assistants.catalog import AssistantCatalog
from app.services.persistence.calls import CallSessionStore
from app.services.telephony.base import TelephonyGateway
from app.services.telephony.telnyx import TelnyxGateway
from app.services.telephony.verification import HeaderPresenceVerifier, WebhookVerifier


def get_settings() -> Settings:
    """Get the process-wide settings object."""
    return config.settings


def get_call_session_store(db: AsyncSession = Depends(get_db)) -> CallSessionStore:
    """Get call session store bound to the request's database session."""
    return CallSessionStore(db)


def get_telephony_gateway(settings: Settings = Depends(get_settings)) -> TelephonyGateway:
    """Get telephony gateway instance."""
    return TelnyxGateway(settings)


def get_webhook_verifier() -> WebhookVerifier:
    """Get webhook origin verifier."""
    return HeaderPresenceVerifier()


def get_assistant_catalog(settings: Settings = Depends(get_settings)) -> AssistantCatalog:
    """Get assistant catalog instance."""
    return AssistantCatalog(settings)
