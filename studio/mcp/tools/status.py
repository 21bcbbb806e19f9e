"""Server status tool."""

import logging
from typing import Any

from ...config import get_available_llm_providers
from ...llm.backend import LLMModel, resolve_default_model
from ..lib import SERVER_NAME, get_server_version
from .session import artifact_summary, peek_workbench

logger = logging.getLogger(__name__)


def _model_name() -> str | None:
    try:
        model = resolve_default_model()
    except ValueError as e:
        logger.warning(f"Model resolution failed: {e}")
        return None
    return model.spec.name if isinstance(model, LLMModel) else model


def status() -> dict[str, Any]:
    """Report readiness without contacting the synthesis service.

    Returns:
        Dictionary with:
        - server: name and version
        - ready: whether a provider key is configured
        - providers: providers with a configured key
        - model: model used for generation
        - session: active artifact, history size, overlay mode and busy
          flag, or None before the first tool call
    """
    providers = get_available_llm_providers()
    bench = peek_workbench()

    session = None
    if bench is not None:
        active = bench.active
        session = {
            "active": artifact_summary(active, active.id) if active else None,
            "history_count": len(bench.history),
            "mode": bench.overlay.mode.value,
            "busy": bench.busy,
            "can_undo": bench.versions.can_undo,
            "can_redo": bench.versions.can_redo,
        }

    return {
        "server": {"name": SERVER_NAME, "version": get_server_version()},
        "ready": bool(providers),
        "providers": providers,
        "model": _model_name(),
        "session": session,
    }


__all__ = ["status"]
