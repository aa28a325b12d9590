import json
from collections.abc import AsyncIterator

import httpx
from pydantic import ValidationError

from forge_relay.core.cancellation import CancellationToken
from forge_relay.core.errors import UpstreamError
from forge_relay.core.prompt_builder import build_generate_request
from forge_relay.models.config import GeminiConfig
from forge_relay.models.gemini import StreamChunk
from forge_relay.utils.logging import get_logger


logger = get_logger("gemini")


class GeminiError(UpstreamError):
    """Gemini API error."""

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class GeminiClient:
    """Async client for the Gemini generateContent API."""

    def __init__(self, api_key: str, config: GeminiConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers={
                    "x-goog-api-key": self.api_key,
                    "Content-Type": "application/json",
                },
                timeout=httpx.Timeout(self.config.timeout_sec),
                limits=httpx.Limits(
                    max_connections=50,
                    max_keepalive_connections=20,
                    keepalive_expiry=30,
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def stream_generate(
        self,
        system_instruction: str,
        prompt: str,
        token: CancellationToken | None = None,
    ) -> AsyncIterator[str]:
        """
        Stream a generation, yielding non-empty text fragments in order.

        Stops reading and releases the connection as soon as `token` is cancelled.

        Raises:
            GeminiError: On HTTP, transport or blocked-prompt failures
        """
        client = await self._get_client()
        request = build_generate_request(system_instruction, prompt, self.config)

        try:
            async with client.stream(
                "POST",
                f"/models/{self.config.model}:streamGenerateContent",
                params={"alt": "sse"},
                json=request.model_dump(by_alias=True, exclude_none=True),
            ) as response:
                if response.is_error:
                    await response.aread()
                response.raise_for_status()

                async for line in response.aiter_lines():
                    if token is not None and token.cancelled:
                        logger.debug("Stream cancelled, releasing connection")
                        return

                    # SSE format: "data: {...}"
                    if not line.startswith("data: "):
                        continue

                    try:
                        chunk = StreamChunk.model_validate(json.loads(line[6:]))
                    except (json.JSONDecodeError, ValidationError) as e:
                        logger.warning(f"Failed to parse SSE chunk: {e}")
                        continue

                    if chunk.prompt_feedback and chunk.prompt_feedback.block_reason:
                        raise GeminiError(f"Prompt blocked: {chunk.prompt_feedback.block_reason}")

                    text = chunk.text
                    if text:
                        yield text

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error {e.response.status_code}: {e.response.text}")
            raise GeminiError(
                f"Gemini API error: {e.response.text}",
                upstream_status=e.response.status_code,
            ) from e

        except httpx.RequestError as e:
            logger.error(f"Request error: {e}")
            raise GeminiError(f"Request failed: {e}") from e

    async def __aenter__(self) -> "GeminiClient":
        await self._get_client()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()
