from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Product idea submitted by the blueprint form."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore", strict=True)

    brand_name: str = Field(default="", alias="brandName", description="Name of the brand or project")
    core_concept: str = Field(default="", alias="coreConcept", description="Core idea or vision")
    target_audience: str = Field(default="", alias="targetAudience", description="Who the product is for")
    brand_vibe: str = Field(default="", alias="brandVibe", description="Desired aesthetic or emotional tone")
    notes: str = Field(default="", description="Additional context, features or constraints")
