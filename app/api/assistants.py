"""AI assistant catalog endpoints."""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from app.api.auth import require_owner
from app.core.dependencies import get_assistant_catalog
from app.core.errors import ProviderError
from app.services.assistants.catalog import AssistantCatalog

router = APIRouter()
logger = logging.getLogger(__name__)


class AssistantResponse(BaseModel):
    """Assistant response model."""
    id: str
    name: str
    description: str = ""
    model: Optional[str] = None
    instructions: Optional[str] = None
    voice: str = "default"
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class AssistantListResponse(BaseModel):
    """Assistant list response model."""
    assistants: List[AssistantResponse] = []
    total: int


@router.get("/assistants", response_model=AssistantListResponse)
async def list_assistants(
    owner_id: str = Depends(require_owner),
    catalog: AssistantCatalog = Depends(get_assistant_catalog),
):
    """List AI assistants available on the provider account."""
    try:
        assistants = await catalog.list_assistants()
    except ProviderError as e:
        logger.error(f"[ASSISTANTS] Error listing assistants: {e}")
        raise HTTPException(status_code=500, detail="Failed to list AI assistants")

    return AssistantListResponse(
        assistants=[AssistantResponse.model_validate(a) for a in assistants],
        total=len(assistants),
    )


@router.get("/assistants/{assistant_id}", response_model=AssistantResponse)
async def get_assistant(
    assistant_id: str,
    owner_id: str = Depends(require_owner),
    catalog: AssistantCatalog = Depends(get_assistant_catalog),
):
    """Get one AI assistant."""
    try:
        assistant = await catalog.get_assistant(assistant_id)
    except ProviderError as e:
        logger.error(f"[ASSISTANTS] Error fetching assistant {assistant_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch AI assistant")

    if assistant is None:
        raise HTTPException(status_code=404, detail="Assistant not found")
    return AssistantResponse.model_validate(assistant)
