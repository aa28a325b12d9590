from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=1, le=65535)
    api_prefix: str = "/api"


class GeminiConfig(BaseModel):
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    timeout_sec: int = Field(default=600, ge=30)
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_output_tokens: int | None = Field(default=None, ge=1)


class RelayConfig(BaseModel):
    idle_timeout_sec: float = Field(default=60.0, gt=0)
    disconnect_poll_interval_sec: float = Field(default=0.5, gt=0)


class AppConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
