"""FastAPI application entry point."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from brokerdoc.api.v1.middleware.auth import JWTAuthenticationMiddleware
from brokerdoc.api.v1.router import api_router
from brokerdoc.core.config import settings
from brokerdoc.core.database import DatabaseClient, async_session_maker, engine, init_database
from brokerdoc.core.exceptions import AppError
from brokerdoc.core.jwks import JWKSService
from brokerdoc.core.jwt import JWTVerifier
from brokerdoc.core.llm_client import create_llm_client
from brokerdoc.repositories.template_repository import TemplateRepository
from brokerdoc.schemas.common import RootResponse
from brokerdoc.services.storage_service import StorageService
from brokerdoc.services.templates.registry import seed_default_templates
from brokerdoc.utils.logging import get_logger
from brokerdoc.utils.responses import app_error_handler, create_error_detail

LOGGER = get_logger(__name__, level=settings.log_level)


def build_service_handles(app: FastAPI) -> None:
    """Attach the long-lived clients used by request handlers to ``app.state``."""
    jwks_service = JWKSService(
        settings.supabase_url,
        cache_ttl=settings.supabase.jwks_cache_ttl,
        timeout=settings.http_timeout,
    )
    app.state.jwt_verifier = JWTVerifier(
        supabase_url=settings.supabase_url,
        jwt_secret=settings.supabase_jwt_secret,
        jwks_service=jwks_service,
    )
    app.state.llm_client = create_llm_client(settings.llm)
    app.state.storage_service = StorageService(
        settings.supabase_url,
        settings.supabase_service_role_key,
        timeout=settings.http_timeout,
    )
    app.state.db_client = DatabaseClient(engine)


async def seed_templates() -> None:
    async with async_session_maker() as session:
        created = await seed_default_templates(
            TemplateRepository(session), settings.ontario_template_pdf_url
        )
    LOGGER.info(f"Template seeding finished, {len(created)} created")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    LOGGER.info("Validating configuration...")
    if not settings.supabase_url:
        LOGGER.error("SUPABASE_URL is missing")
    if settings.llm.provider == "openai" and not settings.llm.openai_api_key:
        LOGGER.error("OPENAI_API_KEY is missing")
    if settings.llm.provider == "gemini" and not settings.llm.gemini_api_key:
        LOGGER.error("GEMINI_API_KEY is missing")

    LOGGER.info(
        "Starting application",
        extra={
            "app_name": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    build_service_handles(app)

    LOGGER.info("Starting database initialization...")
    try:
        await asyncio.wait_for(
            init_database(app.state.db_client, create_tables=True),
            timeout=settings.db_init_timeout,
        )
        LOGGER.info("Database initialized successfully")

        if settings.seed_templates_on_startup:
            await seed_templates()
    except asyncio.TimeoutError:
        LOGGER.error(f"Database initialization timed out after {settings.db_init_timeout}s")
    except Exception as e:
        LOGGER.error(f"Database initialization failed: {e}", exc_info=True)

    yield

    # Shutdown
    LOGGER.info("Shutting down application")
    await app.state.db_client.disconnect()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="AI assistant for real estate brokers that drafts and fills transaction documents",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_exception_handler(AppError, app_error_handler)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body and parameter errors as 400 problem details."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))

    error_detail = create_error_detail(
        title="Validation Failed",
        status=status.HTTP_400_BAD_REQUEST,
        detail="; ".join(messages) or "Invalid request",
        request=request,
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_detail.model_dump(mode="json"),
        media_type="application/problem+json",
    )


# Correlation ID middleware - before JWT auth
@app.middleware("http")
async def add_correlation_id(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id
    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


# JWT authentication middleware
app.add_middleware(JWTAuthenticationMiddleware)

# CORS middleware - added last to ensure it wraps all other middleware/responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

# Include routers
app.include_router(api_router, prefix=settings.api_v1_prefix)


# Root endpoint
@app.get(
    "/",
    response_model=RootResponse,
    tags=["Root"],
    summary="Root endpoint",
    description="Get basic information about the API",
    operation_id="get_public_root_metadata",
)
async def root() -> RootResponse:
    """Root endpoint.

    Returns:
        RootResponse: Basic API information
    """
    return RootResponse(
        message="Server is running",
        version=settings.app_version,
        docs="/docs",
        health=f"{settings.api_v1_prefix}/health",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "brokerdoc.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
