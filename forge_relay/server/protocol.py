import json

from fastapi.responses import JSONResponse
from pydantic import ValidationError

from forge_relay.core.errors import RelayError, RequestValidationError
from forge_relay.models.requests import GenerationRequest
from forge_relay.models.responses import ErrorResponse
from forge_relay.utils.logging import get_logger


logger = get_logger("protocol")


def parse_generation_request(data: bytes | str) -> GenerationRequest:
    """
    Deserialize an inbound request body to GenerationRequest.

    Args:
        data: Raw JSON body

    Returns:
        Parsed GenerationRequest

    Raises:
        RequestValidationError: If the body is not JSON or not the expected shape
    """
    try:
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        parsed = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Malformed request body: {e}")
        raise RequestValidationError("Request body must be valid JSON.") from e

    if not isinstance(parsed, dict):
        raise RequestValidationError("Request body must be a JSON object.")

    try:
        return GenerationRequest.model_validate(parsed)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        logger.warning(f"Invalid request fields: {fields}")
        raise RequestValidationError(f"Invalid request fields: {fields}") from e


def create_error(message: str, status_code: int = 500) -> JSONResponse:
    """Create error envelope response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
    )


def error_response(error: RelayError) -> JSONResponse:
    """Map a relay error to its consumer-facing envelope."""
    return create_error(error.public_message, error.status_code)
