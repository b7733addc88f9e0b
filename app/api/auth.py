"""Bearer token authentication."""
import secrets
from typing import Optional
from fastapi import Depends, HTTPException, Request

from app.core.config import Settings
from app.core.dependencies import get_settings


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header."""
    header = request.headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    return token or None


def verify_token(token: Optional[str], settings: Settings) -> bool:
    """Compare a token against the configured secret in constant time."""
    if not token:
        return False
    return secrets.compare_digest(token.encode(), settings.auth_secret.encode())


async def require_owner(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> str:
    """Dependency that authenticates the caller and returns their owner id."""
    token = get_bearer_token(request)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    if not verify_token(token, settings):
        raise HTTPException(status_code=401, detail="Invalid token")
    return settings.auth_owner_id
