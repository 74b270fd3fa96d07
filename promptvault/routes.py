import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .api.api_key_routes import router as api_key_router
from .api.crud_routes import router as crud_router
from .api.provider_routes import router as provider_router
from .api.proxy_routes import router as proxy_router
from .db import SessionLocal, init_db
from .errors import GatewayError
from .log_sanitizer import sanitize_headers_for_log
from .logging_config import logger
from .provider.registry import ProviderModelRegistry
from .services.api_key_service import load_provider_credentials
from .settings import settings


class HealthResponse(BaseModel):
    status: str = "ok"


def load_stored_credentials() -> list[tuple[str, str]]:
    """Decrypted provider keys of every user, for the model registry."""
    session = SessionLocal()
    try:
        return load_provider_credentials(session)
    finally:
        session.close()


async def handle_gateway_error(request: Request, exc: GatewayError):
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed with %s: %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    return JSONResponse(status_code=400, content={"error": message})


async def handle_unexpected_error(request: Request, exc: Exception):
    """
    Log unexpected exceptions with an id the caller can quote; never echo
    the exception text.
    """
    error_id = uuid.uuid4().hex
    logger.exception(
        "Unhandled error %s %s (error_id=%s)",
        request.method,
        request.url.path,
        error_id,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "error_id": error_id},
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - startup: create missing tables, start the model catalogue refresh
    - shutdown: stop the refresh task and close its HTTP client
    """
    init_db()
    registry: ProviderModelRegistry = app.state.model_registry
    if settings.enable_models_refresh:
        registry.start()
    else:
        logger.info("Background model refresh disabled (ENABLE_MODELS_REFRESH=false)")

    yield

    await registry.aclose()


def create_app(registry: ProviderModelRegistry | None = None) -> FastAPI:
    app = FastAPI(title="PromptVault Gateway", version="0.1.0", lifespan=lifespan)
    app.state.model_registry = registry or ProviderModelRegistry(
        credential_loader=load_stored_credentials
    )

    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    app.include_router(proxy_router)
    app.include_router(provider_router)
    app.include_router(api_key_router)
    app.include_router(crud_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """
        Basic request/response logging; credential headers are masked.
        """
        client_host = request.client.host if request.client else "-"
        logger.info(
            "HTTP %s %s from %s, headers=%s",
            request.method,
            request.url.path,
            client_host,
            sanitize_headers_for_log(request.headers),
        )
        response = await call_next(request)
        logger.info(
            "HTTP %s %s -> %s", request.method, request.url.path, response.status_code
        )
        return response

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    return app


__all__ = ["create_app", "load_stored_credentials"]
