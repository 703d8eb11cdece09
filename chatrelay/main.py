"""FastAPI application entry point for the chatrelay API.

Run with:
    uvicorn chatrelay.main:app --reload --port 8000
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatrelay.api.routes.ai import router as ai_router
from chatrelay.api.routes.chat import router as chat_router
from chatrelay.config import check_provider_keys, settings, setup_logging
from chatrelay.core.deps import shutdown_services
from chatrelay.core.errors import ChatRelayError
from chatrelay.database import init_db

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the schema and report missing provider keys on startup."""
    init_db()
    check_provider_keys()
    yield
    shutdown_services()


app = FastAPI(
    title="chatrelay",
    description="Multi-provider LLM chat API with per-user chat history",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["POST", "GET", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "ok"}


app.include_router(ai_router)
app.include_router(chat_router)


@app.exception_handler(ChatRelayError)
async def chatrelay_exception_handler(request: Request, exc: ChatRelayError):
    """Render classified errors with their message and kind."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.kind, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Render malformed request input in the same shape as other classified errors."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return JSONResponse(
        status_code=422,
        content={
            "detail": "; ".join(problems) or "Invalid request",
            "kind": "ValidationError",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions without leaking internal details."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
