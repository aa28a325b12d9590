from fastapi import APIRouter

from forge_relay.core.errors import ConfigurationError
from forge_relay.models.config import AppConfig
from forge_relay.models.responses import ApiKeyStatus
from forge_relay.utils.config import get_api_key, get_config, mask_api_key


router = APIRouter(tags=["settings"])


@router.get("/config", response_model=AppConfig)
async def get_configuration() -> AppConfig:
    """Get current configuration."""
    return get_config()


@router.get("/config/apikey", response_model=ApiKeyStatus)
async def get_api_key_status() -> ApiKeyStatus:
    """Get API key status (masked)."""
    try:
        key = get_api_key()
        return ApiKeyStatus(is_set=True, masked=mask_api_key(key))
    except ConfigurationError:
        return ApiKeyStatus(is_set=False, masked="")
