"""Model specification system for provider adapters.

Provides a registry of supported models with their output limits and
provider information. The registry feeds model pickers, error
suggestions and output-token caps; adapters still accept model names
that are not listed here.
"""

from dataclasses import dataclass
from enum import Enum


class LLMProviderType(Enum):
    """Available AI providers."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    DEEPSEEK = "deepseek"


# Provider id -> display name shown in settings
PROVIDER_DISPLAY_NAMES: dict[LLMProviderType, str] = {
    LLMProviderType.OPENAI: "OpenAI",
    LLMProviderType.ANTHROPIC: "Anthropic",
    LLMProviderType.GEMINI: "Google Gemini",
    LLMProviderType.DEEPSEEK: "DeepSeek",
}


@dataclass(frozen=True)
class LLMSpec:
    """Specification for a model.

    Attributes:
        name: Model identifier (e.g., 'gpt-4o', 'gemini-2.5-flash').
        provider: Provider type.
        max_output_tokens: Maximum generation tokens.
        description: Human-readable description.
    """

    name: str
    provider: LLMProviderType
    max_output_tokens: int
    description: str = ""


class LLMModel(Enum):
    """Registry of available models."""

    # === OpenAI Models ===
    GPT_4O = LLMSpec(
        name="gpt-4o",
        provider=LLMProviderType.OPENAI,
        max_output_tokens=16384,
        description="OpenAI flagship multimodal model",
    )

    GPT_4O_MINI = LLMSpec(
        name="gpt-4o-mini",
        provider=LLMProviderType.OPENAI,
        max_output_tokens=16384,
        description="OpenAI fast and inexpensive small model",
    )

    GPT_4_TURBO = LLMSpec(
        name="gpt-4-turbo",
        provider=LLMProviderType.OPENAI,
        max_output_tokens=4096,
        description="OpenAI GPT-4 Turbo",
    )

    GPT_3_5_TURBO = LLMSpec(
        name="gpt-3.5-turbo",
        provider=LLMProviderType.OPENAI,
        max_output_tokens=4096,
        description="OpenAI legacy chat model",
    )

    # === Anthropic Claude Models ===
    CLAUDE_SONNET_4 = LLMSpec(
        name="claude-sonnet-4-20250514",
        provider=LLMProviderType.ANTHROPIC,
        max_output_tokens=64000,
        description="Anthropic Claude Sonnet 4",
    )

    CLAUDE_3_5_SONNET = LLMSpec(
        name="claude-3-5-sonnet-20241022",
        provider=LLMProviderType.ANTHROPIC,
        max_output_tokens=8192,
        description="Anthropic Claude 3.5 Sonnet",
    )

    CLAUDE_3_HAIKU = LLMSpec(
        name="claude-3-haiku-20240307",
        provider=LLMProviderType.ANTHROPIC,
        max_output_tokens=4096,
        description="Anthropic fastest legacy model",
    )

    # === Google Gemini Models ===
    GEMINI_2_5_FLASH = LLMSpec(
        name="gemini-2.5-flash",
        provider=LLMProviderType.GEMINI,
        max_output_tokens=65536,
        description="Gemini fast hybrid reasoning model",
    )

    GEMINI_2_5_PRO = LLMSpec(
        name="gemini-2.5-pro",
        provider=LLMProviderType.GEMINI,
        max_output_tokens=65536,
        description="Gemini most capable model",
    )

    GEMINI_2_0_FLASH_EXP = LLMSpec(
        name="gemini-2.0-flash-exp",
        provider=LLMProviderType.GEMINI,
        max_output_tokens=8192,
        description="Gemini 2.0 Flash experimental",
    )

    GEMINI_1_5_FLASH = LLMSpec(
        name="gemini-1.5-flash",
        provider=LLMProviderType.GEMINI,
        max_output_tokens=8192,
        description="Gemini 1.5 Flash",
    )

    GEMINI_1_5_PRO = LLMSpec(
        name="gemini-1.5-pro",
        provider=LLMProviderType.GEMINI,
        max_output_tokens=8192,
        description="Gemini 1.5 Pro",
    )

    # === DeepSeek Models ===
    DEEPSEEK_CHAT = LLMSpec(
        name="deepseek-chat",
        provider=LLMProviderType.DEEPSEEK,
        max_output_tokens=8192,
        description="DeepSeek V3 chat model",
    )

    DEEPSEEK_REASONER = LLMSpec(
        name="deepseek-reasoner",
        provider=LLMProviderType.DEEPSEEK,
        max_output_tokens=8192,
        description="DeepSeek R1 reasoning model",
    )

    @property
    def spec(self) -> LLMSpec:
        """Get the LLMSpec for this model."""
        return self.value

    @classmethod
    def by_name(cls, name: str) -> "LLMModel | None":
        """Look up model by name string.

        Args:
            name: Model name to find.

        Returns:
            LLMModel if found, None otherwise.
        """
        for model in cls:
            if model.spec.name == name:
                return model
        return None

    @classmethod
    def list_by_provider(cls, provider: LLMProviderType) -> list["LLMModel"]:
        """Get all models for a specific provider.

        Args:
            provider: Provider to filter by.

        Returns:
            List of LLMModel values for that provider.
        """
        return [m for m in cls if m.spec.provider == provider]


# Default models for each provider
DEFAULT_OPENAI_MODEL = LLMModel.GPT_4O
DEFAULT_ANTHROPIC_MODEL = LLMModel.CLAUDE_SONNET_4
DEFAULT_GEMINI_MODEL = LLMModel.GEMINI_2_5_FLASH
DEFAULT_DEEPSEEK_MODEL = LLMModel.DEEPSEEK_CHAT

# Overall default
DEFAULT_MODEL = DEFAULT_OPENAI_MODEL

DEFAULT_MODELS: dict[LLMProviderType, LLMModel] = {
    LLMProviderType.OPENAI: DEFAULT_OPENAI_MODEL,
    LLMProviderType.ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
    LLMProviderType.GEMINI: DEFAULT_GEMINI_MODEL,
    LLMProviderType.DEEPSEEK: DEFAULT_DEEPSEEK_MODEL,
}


def suggest_alternative_model(provider: LLMProviderType, model: str) -> str | None:
    """Pick a registered model to suggest when ``model`` is unavailable.

    Returns the provider default unless that is the failing model, in which
    case the next registered model of the provider is suggested.
    """
    default = DEFAULT_MODELS[provider].spec.name
    if default != model:
        return default
    for candidate in LLMModel.list_by_provider(provider):
        if candidate.spec.name != model:
            return candidate.spec.name
    return None


__all__ = [
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "PROVIDER_DISPLAY_NAMES",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_DEEPSEEK_MODEL",
    "DEFAULT_MODEL",
    "DEFAULT_MODELS",
    "suggest_alternative_model",
]
