from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Error envelope returned before any streamed byte is sent."""

    error: str


class HealthResponse(BaseModel):
    status: str = "ok"
    api_key_configured: bool
    model: str


class ApiKeyStatus(BaseModel):
    is_set: bool
    masked: str
