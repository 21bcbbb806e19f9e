"""Centralized configuration management for artifact-studio.

Provides unified access to all configuration via the `get_environment()` function.

Example:
    >>> from studio.config import EnvVar, get_environment
    >>>
    >>> quota = get_environment(EnvVar.HISTORY_QUOTA_BYTES)  # Returns int
    >>> api_key = get_environment(EnvVar.GEMINI_API_KEY)  # Returns str | None

Environment Variable Categories:
    llm: API keys and model selection for the synthesis service
    retry: Attempts and backoff for synthesis calls
    storage: History slot name, quota and data directory
    preview: Timeout and window mode of the preview browser
    service: MCP server host and port
"""

from .lib import (
    EnvConfig,
    EnvVar,
    get_available_llm_providers,
    get_data_dir,
    get_environment,
    get_environment_info,
    get_history_db_path,
    get_preview_settings,
    get_retry_settings,
    list_environment_variables,
)

__all__ = [
    # Core types
    "EnvConfig",
    "EnvVar",
    # Main interface
    "get_environment",
    "get_environment_info",
    # Convenience functions
    "get_data_dir",
    "get_history_db_path",
    "get_retry_settings",
    "get_preview_settings",
    "get_available_llm_providers",
    # Introspection
    "list_environment_variables",
]
