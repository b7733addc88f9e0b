"""Main FastAPI application."""
import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from app.core.config import settings
from app.core.logging import setup_logging
from app.db.database import init_db
from app.api import health, calls, assistants
from app.api.webhooks import provider

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    logger.info(
        f"AI call service started - environment: {settings.environment}, "
        f"webhook verification: {settings.webhook_verification}"
    )
    yield


app = FastAPI(
    title="AI Call Service",
    description="Outbound AI-assisted phone calls and their lifecycle",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed request bodies as 400 with field-level detail."""
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=jsonable_encoder({"detail": {"error": "Invalid input", "details": details}}),
    )


app.include_router(health.router, tags=["health"])
app.include_router(calls.router, tags=["calls"])
app.include_router(assistants.router, tags=["assistants"])
app.include_router(provider.router, prefix="/webhooks", tags=["webhooks"])
