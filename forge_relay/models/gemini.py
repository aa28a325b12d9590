from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GeminiModel(BaseModel):
    """Base for Gemini REST payloads (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Part(GeminiModel):
    text: str | None = None


class Content(GeminiModel):
    """Single turn in a generateContent request or response."""

    role: Literal["user", "model"] | None = None
    parts: list[Part] = Field(default_factory=list)


class GenerationConfig(GeminiModel):
    temperature: float | None = None
    max_output_tokens: int | None = None


class GenerateContentRequest(GeminiModel):
    """Request to the Gemini :streamGenerateContent endpoint."""

    system_instruction: Content | None = None
    contents: list[Content]
    generation_config: GenerationConfig | None = None


class UsageMetadata(GeminiModel):
    """Token usage, present on the last streamed chunk."""

    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0


class PromptFeedback(GeminiModel):
    block_reason: str | None = None


class Candidate(GeminiModel):
    index: int = 0
    content: Content = Field(default_factory=Content)
    finish_reason: str | None = None


class StreamChunk(GeminiModel):
    """Single SSE chunk of a streamed generateContent response."""

    candidates: list[Candidate] = Field(default_factory=list)
    prompt_feedback: PromptFeedback | None = None
    usage_metadata: UsageMetadata | None = None
    model_version: str | None = None

    @property
    def text(self) -> str:
        """Concatenated text of the first candidate's parts."""
        if not self.candidates:
            return ""
        return "".join(part.text or "" for part in self.candidates[0].content.parts)
