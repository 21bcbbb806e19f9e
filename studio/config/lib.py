"""Environment settings for artifact-studio.

Every knob the studio reads (provider keys, retry backoff, where history
lives and how large it may grow, MCP bind address) is a member of `EnvVar`.
`get_environment()` resolves a member as override, then process environment,
then the registered default, converting to the member's declared type.

Example:
    >>> from studio.config import EnvVar, get_environment
    >>>
    >>> attempts = get_environment(EnvVar.RETRY_MAX_ATTEMPTS)  # Returns int
    >>> api_key = get_environment(EnvVar.GEMINI_API_KEY)  # Returns str | None
    >>>
    >>> # Override at runtime
    >>> quota = get_environment(EnvVar.HISTORY_QUOTA_BYTES, override=1024)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, overload

# =============================================================================
# Environment Variable Configuration
# =============================================================================


@dataclass(frozen=True)
class EnvConfig:
    """Metadata for an environment variable.

    Attributes:
        name: Environment variable name (e.g., "HISTORY_SLOT").
        default: Default value if not set in environment.
        var_type: Python type for value conversion (str, int, bool, Path).
        description: Human-readable description.
        category: Grouping category for documentation.
    """

    name: str
    default: Any
    var_type: type
    description: str = ""
    category: str = "general"


class EnvVar(Enum):
    """All environment variables used by artifact-studio.

    Each member contains an EnvConfig with name, default, type, and description.
    Use with `get_environment()` for type-safe access.

    Categories:
        - llm: Synthesis provider keys and model selection
        - retry: Backoff behaviour for synthesis calls
        - storage: History slot location and capacity
        - preview: Browser that renders artifacts for the overlay
        - service: MCP server bind settings
    """

    # -------------------------------------------------------------------------
    # Synthesis Providers
    # -------------------------------------------------------------------------
    GEMINI_API_KEY = EnvConfig(
        name="GEMINI_API_KEY",
        default=None,
        var_type=str,
        description="Google Gemini API key",
        category="llm",
    )
    OPENAI_API_KEY = EnvConfig(
        name="OPENAI_API_KEY",
        default=None,
        var_type=str,
        description="OpenAI API key for GPT models",
        category="llm",
    )
    ANTHROPIC_API_KEY = EnvConfig(
        name="ANTHROPIC_API_KEY",
        default=None,
        var_type=str,
        description="Anthropic API key for Claude models",
        category="llm",
    )
    LLM_PROVIDER = EnvConfig(
        name="LLM_PROVIDER",
        default=None,
        var_type=str,
        description="Preferred provider (gemini, openai, anthropic)",
        category="llm",
    )
    SYNTHESIS_MODEL = EnvConfig(
        name="SYNTHESIS_MODEL",
        default=None,
        var_type=str,
        description="Model used for generation and refinement",
        category="llm",
    )
    GEMINI_BASE_URL = EnvConfig(
        name="GEMINI_BASE_URL",
        default="https://generativelanguage.googleapis.com",
        var_type=str,
        description="Gemini REST endpoint",
        category="llm",
    )

    # -------------------------------------------------------------------------
    # Retry Behaviour
    # -------------------------------------------------------------------------
    RETRY_MAX_ATTEMPTS = EnvConfig(
        name="RETRY_MAX_ATTEMPTS",
        default=3,
        var_type=int,
        description="Total attempts per synthesis call (first try included)",
        category="retry",
    )
    RETRY_BASE_DELAY_MS = EnvConfig(
        name="RETRY_BASE_DELAY_MS",
        default=1000,
        var_type=int,
        description="Initial backoff delay in milliseconds, doubled per retry",
        category="retry",
    )

    # -------------------------------------------------------------------------
    # History Storage
    # -------------------------------------------------------------------------
    STUDIO_DATA_DIR = EnvConfig(
        name="STUDIO_DATA_DIR",
        default=None,  # Falls back to ./data
        var_type=Path,
        description="Directory holding the history database",
        category="storage",
    )
    HISTORY_SLOT = EnvConfig(
        name="HISTORY_SLOT",
        default="artifact_history",
        var_type=str,
        description="Key of the slot holding the serialized history",
        category="storage",
    )
    HISTORY_QUOTA_BYTES = EnvConfig(
        name="HISTORY_QUOTA_BYTES",
        default=5 * 1024 * 1024,
        var_type=int,
        description="Maximum size of a single slot value in bytes",
        category="storage",
    )

    # -------------------------------------------------------------------------
    # Preview Browser
    # -------------------------------------------------------------------------
    PREVIEW_TIMEOUT_MS = EnvConfig(
        name="PREVIEW_TIMEOUT_MS",
        default=15000,
        var_type=int,
        description="Load and pointer action timeout for the preview page",
        category="preview",
    )
    PREVIEW_HEADLESS = EnvConfig(
        name="PREVIEW_HEADLESS",
        default=True,
        var_type=bool,
        description="Run the preview browser without a window",
        category="preview",
    )

    # -------------------------------------------------------------------------
    # MCP Service
    # -------------------------------------------------------------------------
    MCP_HOST = EnvConfig(
        name="MCP_HOST",
        default="0.0.0.0",
        var_type=str,
        description="MCP server bind address",
        category="service",
    )
    MCP_PORT = EnvConfig(
        name="MCP_PORT",
        default=18080,
        var_type=int,
        description="MCP server port (avoids 8080)",
        category="service",
    )


# =============================================================================
# Type Conversion Helpers
# =============================================================================


def _parse_bool(value: str) -> bool | None:
    """Parse string to boolean.

    Recognizes: true/false, 1/0, yes/no (case-insensitive).
    Returns None for unrecognized values.
    """
    normalized = value.lower().strip()
    if normalized in ("true", "1", "yes"):
        return True
    if normalized in ("false", "0", "no"):
        return False
    return None


def _convert_value(value: str | None, var_type: type, default: Any) -> Any:
    """Convert string value to target type.

    Args:
        value: Raw string value from environment (or None).
        var_type: Target Python type.
        default: Default value if conversion fails or value is None.

    Returns:
        Converted value or default.
    """
    if value is None:
        return default

    if var_type is str:
        return value

    if var_type is int:
        try:
            return int(value)
        except ValueError:
            return default

    if var_type is bool:
        result = _parse_bool(value)
        return result if result is not None else default

    if var_type is Path:
        return Path(value)

    return value


# =============================================================================
# Main Interface
# =============================================================================


@overload
def get_environment(env_var: EnvVar, override: int) -> int: ...
@overload
def get_environment(env_var: EnvVar, override: str) -> str: ...
@overload
def get_environment(env_var: EnvVar, override: bool) -> bool: ...
@overload
def get_environment(env_var: EnvVar, override: Path) -> Path: ...
@overload
def get_environment(env_var: EnvVar, override: None = None) -> Any: ...


def get_environment(env_var: EnvVar, override: Any = None) -> Any:
    """Get environment variable value with type conversion.

    Resolution priority:
        1. Explicit override parameter (highest)
        2. Environment variable value
        3. Default from EnvConfig (lowest)

    Args:
        env_var: Environment variable enum member.
        override: Optional override value (bypasses env lookup).

    Returns:
        Value converted to the appropriate type (str, int, bool, or Path).
    """
    config: EnvConfig = env_var.value

    if override is not None:
        return override

    raw_value = os.environ.get(config.name)
    return _convert_value(raw_value, config.var_type, config.default)


def get_environment_info(env_var: EnvVar) -> EnvConfig:
    """Get metadata for an environment variable."""
    return env_var.value


# =============================================================================
# Convenience Functions
# =============================================================================


def get_data_dir(override: Path | str | None = None) -> Path:
    """Get the directory holding persistent studio data.

    Resolution: override > STUDIO_DATA_DIR > ./data
    """
    if override is not None:
        return Path(override)

    env_path = get_environment(EnvVar.STUDIO_DATA_DIR)
    if env_path:
        return env_path

    return Path("data")


def get_history_db_path(override: Path | str | None = None) -> Path:
    """Get the SQLite file backing the history slot."""
    return get_data_dir(override) / "history.db"


def get_preview_settings() -> tuple[int, bool]:
    """Get (timeout_ms, headless) for the preview browser."""
    return (
        max(1, get_environment(EnvVar.PREVIEW_TIMEOUT_MS)),
        get_environment(EnvVar.PREVIEW_HEADLESS),
    )


def get_retry_settings() -> tuple[int, float]:
    """Get (max_attempts, base_delay_seconds) for synthesis calls."""
    attempts = get_environment(EnvVar.RETRY_MAX_ATTEMPTS)
    delay_ms = get_environment(EnvVar.RETRY_BASE_DELAY_MS)
    return max(1, attempts), max(0, delay_ms) / 1000.0


def get_available_llm_providers() -> list[str]:
    """Get providers that have an API key configured.

    Returns:
        List of provider names (e.g., ["gemini", "openai"]).
    """
    providers = []
    if get_environment(EnvVar.GEMINI_API_KEY):
        providers.append("gemini")
    if get_environment(EnvVar.OPENAI_API_KEY):
        providers.append("openai")
    if get_environment(EnvVar.ANTHROPIC_API_KEY):
        providers.append("anthropic")
    return providers


def list_environment_variables(category: str | None = None) -> list[EnvVar]:
    """List all environment variables, optionally filtered by category.

    Args:
        category: Filter by category (llm, retry, storage, preview, service).
                 None returns all variables.

    Returns:
        List of EnvVar enum members.
    """
    if category is None:
        return list(EnvVar)

    return [var for var in EnvVar if var.value.category == category]


__all__ = [
    "EnvConfig",
    "EnvVar",
    "get_environment",
    "get_environment_info",
    "get_data_dir",
    "get_history_db_path",
    "get_retry_settings",
    "get_preview_settings",
    "get_available_llm_providers",
    "list_environment_variables",
]
