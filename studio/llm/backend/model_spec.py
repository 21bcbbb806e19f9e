"""Model specification system for synthesis backends.

Provides a registry of supported models with their capabilities, output
limits, and provider information.
"""

from dataclasses import dataclass, field
from enum import Enum


class LLMCapability(Enum):
    """Capabilities that a model may support."""

    VISION = "vision"  # Image input support
    DOCUMENT = "document"  # PDF input support
    SYSTEM_PROMPT = "system_prompt"  # Dedicated system role


class LLMProviderType(Enum):
    """Available backend providers."""

    GEMINI = "gemini"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class LLMSpec:
    """Specification for a model.

    Attributes:
        name: Model identifier (e.g., 'gemini-2.5-pro').
        provider: Backend provider type.
        context_window: Maximum context size in tokens.
        max_output_tokens: Maximum generation tokens.
        capabilities: Set of supported capabilities.
        description: Human-readable description.
        api_key_env_var: Environment variable name for API key.
    """

    name: str
    provider: LLMProviderType
    context_window: int
    max_output_tokens: int
    capabilities: frozenset[LLMCapability] = field(default_factory=frozenset)
    description: str = ""
    api_key_env_var: str = ""

    def supports(self, capability: LLMCapability) -> bool:
        """Check if model supports a capability."""
        return capability in self.capabilities


_GEMINI_FULL = frozenset(
    {LLMCapability.VISION, LLMCapability.DOCUMENT, LLMCapability.SYSTEM_PROMPT}
)
_OPENAI_FULL = frozenset({LLMCapability.VISION, LLMCapability.SYSTEM_PROMPT})
_ANTHROPIC_FULL = frozenset(
    {LLMCapability.VISION, LLMCapability.DOCUMENT, LLMCapability.SYSTEM_PROMPT}
)


class LLMModel(Enum):
    """Registry of available models."""

    # === Google Gemini ===
    GEMINI_3_PRO = LLMSpec(
        name="gemini-3-pro-preview",
        provider=LLMProviderType.GEMINI,
        context_window=1_048_576,
        max_output_tokens=65536,
        capabilities=_GEMINI_FULL,
        description="Gemini flagship for complex coding tasks",
        api_key_env_var="GEMINI_API_KEY",
    )
    GEMINI_2_5_PRO = LLMSpec(
        name="gemini-2.5-pro",
        provider=LLMProviderType.GEMINI,
        context_window=1_048_576,
        max_output_tokens=65536,
        capabilities=_GEMINI_FULL,
        description="Gemini 2.5 reasoning model",
        api_key_env_var="GEMINI_API_KEY",
    )
    GEMINI_2_5_FLASH = LLMSpec(
        name="gemini-2.5-flash",
        provider=LLMProviderType.GEMINI,
        context_window=1_048_576,
        max_output_tokens=65536,
        capabilities=_GEMINI_FULL,
        description="Gemini fast multimodal model",
        api_key_env_var="GEMINI_API_KEY",
    )

    # === OpenAI ===
    GPT_4_1 = LLMSpec(
        name="gpt-4.1",
        provider=LLMProviderType.OPENAI,
        context_window=128000,
        max_output_tokens=32768,
        capabilities=_OPENAI_FULL,
        description="OpenAI developer favorite for coding",
        api_key_env_var="OPENAI_API_KEY",
    )
    GPT_4_1_MINI = LLMSpec(
        name="gpt-4.1-mini",
        provider=LLMProviderType.OPENAI,
        context_window=128000,
        max_output_tokens=32768,
        capabilities=_OPENAI_FULL,
        description="OpenAI fast and efficient small model",
        api_key_env_var="OPENAI_API_KEY",
    )

    # === Anthropic ===
    CLAUDE_SONNET_4_5 = LLMSpec(
        name="claude-sonnet-4-5",
        provider=LLMProviderType.ANTHROPIC,
        context_window=200000,
        max_output_tokens=64000,
        capabilities=_ANTHROPIC_FULL,
        description="Anthropic best balanced for coding and agents",
        api_key_env_var="ANTHROPIC_API_KEY",
    )
    CLAUDE_HAIKU_4_5 = LLMSpec(
        name="claude-haiku-4-5",
        provider=LLMProviderType.ANTHROPIC,
        context_window=200000,
        max_output_tokens=64000,
        capabilities=_ANTHROPIC_FULL,
        description="Anthropic fastest model",
        api_key_env_var="ANTHROPIC_API_KEY",
    )

    @property
    def spec(self) -> LLMSpec:
        """Get the model specification."""
        return self.value

    @classmethod
    def by_name(cls, name: str) -> "LLMModel | None":
        """Look up a model by its identifier."""
        for model in cls:
            if model.spec.name == name:
                return model
        return None

    @classmethod
    def list_by_provider(cls, provider: LLMProviderType) -> list["LLMModel"]:
        """List all models served by a provider."""
        return [model for model in cls if model.spec.provider == provider]


DEFAULT_MODEL = LLMModel.GEMINI_3_PRO
DEFAULT_GEMINI_MODEL = LLMModel.GEMINI_3_PRO
DEFAULT_OPENAI_MODEL = LLMModel.GPT_4_1
DEFAULT_ANTHROPIC_MODEL = LLMModel.CLAUDE_SONNET_4_5

DEFAULT_BY_PROVIDER: dict[LLMProviderType, LLMModel] = {
    LLMProviderType.GEMINI: DEFAULT_GEMINI_MODEL,
    LLMProviderType.OPENAI: DEFAULT_OPENAI_MODEL,
    LLMProviderType.ANTHROPIC: DEFAULT_ANTHROPIC_MODEL,
}


def get_llm_spec(model: str | LLMModel | LLMSpec) -> LLMSpec:
    """Resolve a model reference to its specification.

    Args:
        model: Model name, LLMModel member, or LLMSpec.

    Returns:
        The matching LLMSpec.

    Raises:
        ValueError: If the model name is unknown.
    """
    if isinstance(model, LLMSpec):
        return model
    if isinstance(model, LLMModel):
        return model.spec

    found = LLMModel.by_name(model)
    if found is None:
        available = ", ".join(m.spec.name for m in LLMModel)
        raise ValueError(f"Unknown model: {model}. Available: {available}")
    return found.spec


__all__ = [
    "LLMCapability",
    "LLMProviderType",
    "LLMSpec",
    "LLMModel",
    "DEFAULT_MODEL",
    "DEFAULT_GEMINI_MODEL",
    "DEFAULT_OPENAI_MODEL",
    "DEFAULT_ANTHROPIC_MODEL",
    "DEFAULT_BY_PROVIDER",
    "get_llm_spec",
]
