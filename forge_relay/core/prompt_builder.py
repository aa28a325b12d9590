import json

from forge_relay.models.config import GeminiConfig
from forge_relay.models.gemini import Content, GenerateContentRequest, GenerationConfig, Part
from forge_relay.models.requests import GenerationRequest


SYSTEM_PROMPT = """You are a Senior Product Architect & UX Strategist. Your task is to transform raw project ideas into comprehensive, professional Website Blueprints (Software Requirements Specifications).

When given a JSON input containing:
- brandName: The name of the brand/project
- coreConcept: The core idea or vision
- targetAudience: Who the product is for
- brandVibe: The desired aesthetic/emotional tone
- notes: Additional context, features, or constraints

You must generate a detailed Website Blueprint in Markdown format with the following sections:

# 🚀 Website Blueprint: [Brand Name]

## 1. Executive Summary & Market Positioning
- Brief overview of the project
- Unique value proposition
- Market opportunity analysis
- Competitive positioning strategy

## 2. Information Architecture (Sitemap)
Create a detailed sitemap table:
| Page | Purpose | Priority | Key Components |
|------|---------|----------|----------------|

Include all essential pages: Home, About, Services/Products, Contact, etc.

## 3. Visual Identity Guidelines
### Color Palette
| Name | Hex Code | Usage |
|------|----------|-------|

### Typography
- Primary Font: [Recommendation with Google Fonts link]
- Secondary Font: [Recommendation]
- Use cases for each

### Visual Style Notes
- Design principles aligned with brand vibe
- Imagery guidelines
- Iconography style

## 4. Core User Stories
Format each as: "As a [user type], I want to [action] so that [benefit]."
Group by user type or feature area. Include at least 8-10 user stories.

## 5. Recommended Tech Stack

| Layer | Technology | Rationale |
|-------|------------|-----------|

Include recommendations for:
- Frontend Framework
- Styling Solution
- Backend/API
- Database (if applicable)
- Hosting/Deployment
- Analytics & SEO

## 6. Implementation Roadmap
Suggest a phased approach with MVP features first.

---

Format everything beautifully with proper Markdown. Use tables, bullet points, and clear headings. Be specific and actionable. Ensure all recommendations align with the brand vibe and target audience."""


def build_user_prompt(request: GenerationRequest) -> str:
    """
    Build the user prompt for a blueprint generation.

    The request is embedded as an indented JSON block using the form's
    field names, followed by the generation instructions.
    """
    payload = json.dumps(request.model_dump(by_alias=True), indent=2, ensure_ascii=False)

    return (
        "Generate a comprehensive Website Blueprint for the following project:\n"
        "\n"
        "```json\n"
        f"{payload}\n"
        "```\n"
        "\n"
        "Please provide a detailed, professional, and actionable blueprint that aligns "
        "with the brand's vision and target audience."
    )


def build_generate_request(
    system_instruction: str,
    prompt: str,
    config: GeminiConfig,
) -> GenerateContentRequest:
    """
    Build Gemini GenerateContentRequest from a system instruction and user prompt.

    Args:
        system_instruction: Instruction sent as the model's system prompt
        prompt: Single combined user prompt
        config: Gemini configuration (sampling defaults)

    Returns:
        GenerateContentRequest ready to send to the Gemini API
    """
    system_content = None
    if system_instruction:
        system_content = Content(parts=[Part(text=system_instruction)])

    generation_config = None
    if config.temperature is not None or config.max_output_tokens is not None:
        generation_config = GenerationConfig(
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )

    return GenerateContentRequest(
        system_instruction=system_content,
        contents=[Content(role="user", parts=[Part(text=prompt)])],
        generation_config=generation_config,
    )
