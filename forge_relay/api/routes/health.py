from fastapi import APIRouter

from forge_relay.core.errors import ConfigurationError
from forge_relay.models.responses import HealthResponse
from forge_relay.utils.config import get_api_key, get_config


router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness probe; also reports whether generation can be served."""
    try:
        get_api_key()
        configured = True
    except ConfigurationError:
        configured = False

    return HealthResponse(api_key_configured=configured, model=get_config().gemini.model)
