"""Call session service models."""
from dataclasses import dataclass
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from app.db.models import CallSession

# Optional leading +, 2-15 ASCII digits, first digit non-zero
PHONE_NUMBER_PATTERN = r"^\+?[1-9][0-9]{1,14}$"


class InitiateCallRequest(BaseModel):
    """Validated input for starting an outbound call."""

    phone_number: str = Field(pattern=PHONE_NUMBER_PATTERN)
    assistant_id: str = Field(min_length=1)
    assistant_name: Optional[str] = None

    @field_validator("assistant_id")
    @classmethod
    def assistant_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("assistant_id must not be blank")
        return value


@dataclass(frozen=True)
class InitiationResult:
    """Outcome of a successful call initiation."""

    session_id: str
    provider_call_id: Optional[str]


@dataclass(frozen=True)
class SessionPage:
    """One page of an owner's call sessions."""

    items: List[CallSession]
    total: int
    limit: int
    offset: int
