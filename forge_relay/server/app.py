from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from forge_relay.core.errors import ConfigurationError, RelayError
from forge_relay.core.gemini import GeminiClient
from forge_relay.models.config import AppConfig
from forge_relay.server.protocol import error_response
from forge_relay.utils.config import get_api_key, get_config
from forge_relay.utils.logging import get_logger, setup_logging


logger = get_logger("app")


# Global state
_gemini_client: GeminiClient | None = None
# Clients replaced after a key change; in-flight streams may still use them
_retired_clients: list[GeminiClient] = []


def get_app_config() -> AppConfig:
    """Get application config."""
    return get_config()


def get_gemini_client() -> GeminiClient:
    """Get Gemini client instance, rebuilding it whenever the API key changes."""
    global _gemini_client
    api_key = get_api_key()
    if _gemini_client is not None and _gemini_client.api_key != api_key:
        logger.info("API key changed, rebuilding Gemini client")
        _retired_clients.append(_gemini_client)
        _gemini_client = None
    if _gemini_client is None:
        _gemini_client = GeminiClient(api_key=api_key, config=get_config().gemini)
    return _gemini_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _gemini_client

    # Startup
    setup_logging()
    logger.info("Starting Forge Relay server...")

    config = get_config()
    try:
        client = get_gemini_client()
        await client._get_client()  # Initialize client
    except ConfigurationError as e:
        # Requests are answered with the configuration error until the key is set
        logger.warning(str(e))

    logger.info(f"Server configured on {config.server.host}:{config.server.port}, model={config.gemini.model}")

    yield

    # Shutdown
    logger.info("Shutting down Forge Relay server...")
    for retired in _retired_clients:
        await retired.close()
    _retired_clients.clear()
    if _gemini_client:
        await _gemini_client.close()
        _gemini_client = None
    logger.info("Server stopped")


async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Answer any relay error raised before streaming with its error envelope."""
    if isinstance(exc, ConfigurationError):
        logger.error(f"Configuration error: {exc}")
    return error_response(exc)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="Forge Relay",
        description="Streams Website Blueprints generated by Gemini to the browser",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_exception_handler(RelayError, relay_error_handler)

    # Import and include routers
    from forge_relay.api.routes import generate, health, settings

    config = get_config()

    app.include_router(generate.router, prefix=config.server.api_prefix)
    app.include_router(health.router, prefix=config.server.api_prefix)
    app.include_router(settings.router, prefix=config.server.api_prefix)

    return app
