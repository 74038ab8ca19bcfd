"""Models offered through the OpenRouter gateway and per-request model config."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LLMModel(BaseModel):
    id: str
    name: str
    provider: str
    provider_id: str


class ModelConfig(BaseModel):
    """Sampling parameters a caller may override.

    Accepts both snake_case and camelCase keys (``max_tokens`` / ``maxTokens``).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    top_k: int | None = Field(default=None, gt=0)
    max_tokens: int | None = Field(default=None, gt=0)
    frequency_penalty: float | None = None
    presence_penalty: float | None = None


MODELS: list[LLMModel] = [
    LLMModel(
        id="anthropic/claude-sonnet-4.5",
        name="Claude Sonnet 4.5",
        provider="Anthropic",
        provider_id="anthropic",
    ),
    LLMModel(
        id="anthropic/claude-opus-4.1",
        name="Claude Opus 4.1",
        provider="Anthropic",
        provider_id="anthropic",
    ),
    LLMModel(id="openai/gpt-5", name="GPT-5", provider="OpenAI", provider_id="openai"),
    LLMModel(id="openai/gpt-5-mini", name="GPT-5 mini", provider="OpenAI", provider_id="openai"),
    LLMModel(
        id="google/gemini-2.5-pro",
        name="Gemini 2.5 Pro",
        provider="Google",
        provider_id="google",
    ),
    LLMModel(
        id="google/gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        provider="Google",
        provider_id="google",
    ),
    LLMModel(
        id="google/gemini-3-pro-preview",
        name="Gemini 3 Pro Preview",
        provider="Google",
        provider_id="google",
    ),
    LLMModel(id="x-ai/grok-4", name="Grok 4", provider="xAI", provider_id="x-ai"),
    LLMModel(
        id="moonshotai/kimi-k2",
        name="Kimi K2",
        provider="Moonshot AI",
        provider_id="moonshotai",
    ),
]

_MODELS_BY_ID = {m.id: m for m in MODELS}


def get_model_by_id(model_id: str) -> LLMModel | None:
    return _MODELS_BY_ID.get(model_id)


def get_default_model(default_model_id: str) -> LLMModel:
    """Configured default, else the first catalog entry."""
    return _MODELS_BY_ID.get(default_model_id, MODELS[0])


def available_models() -> list[LLMModel]:
    return list(MODELS)
