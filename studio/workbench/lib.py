"""Orchestration boundary for an artifact editing session.

The Workbench ties the synthesis gateway, the artifact store, the version
controller and the interaction overlay together. It is the one place where
remote failures are caught and turned into user-facing notices.
"""

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..history import (
    Artifact,
    ArtifactStore,
    ImportRejectedError,
    PersistResult,
    SourceImage,
    UnsupportedSourceError,
    import_snapshot,
    load_source_image,
    parse_data_uri,
    read_import_file,
    save_export,
)
from ..llm.backend import ErrorStatus, classify_error
from ..llm.synthesis import DEFAULT_STYLE, SynthesisGateway
from ..overlay import (
    EditAction,
    InspectedElementReport,
    InteractionMode,
    InteractionOverlay,
    PreviewBrowser,
    Prompter,
    RenderedDocument,
    StaticPrompter,
    render_preview_frame,
)
from ..versioning import VersionController

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_NAME = "New Creation"
NAME_PREFIX_LENGTH = 20

# Oldest notices are dropped past this many
NOTICE_LIMIT = 50

BUSY_MESSAGE = "A request is already in progress. Please wait for it to finish."
STORAGE_FULL_MESSAGE = "Storage full. History not saved."
FALLBACK_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

ERROR_MESSAGES = {
    ErrorStatus.RATE_LIMITED: (
        "You're sending requests too quickly. Please wait a moment before trying again."
    ),
    ErrorStatus.SERVER_ERROR: (
        "The AI service is currently unavailable. Please try again later."
    ),
    ErrorStatus.CLIENT_ERROR: (
        "The AI couldn't process this specific input. Try a different image or prompt."
    ),
    ErrorStatus.CONTENT_SAFETY: (
        "The content was flagged by safety filters. Please try a different input."
    ),
}


def describe_error(error: BaseException) -> str:
    """Map a failure to one of the fixed user-facing messages."""
    status = classify_error(error)
    return ERROR_MESSAGES.get(status, FALLBACK_ERROR_MESSAGE)


def artifact_name(prompt_text: str, source: SourceImage | None = None) -> str:
    """Name a new artifact after its source file or prompt."""
    if source is not None:
        return source.file_name
    return prompt_text[:NAME_PREFIX_LENGTH] or DEFAULT_ARTIFACT_NAME


@dataclass(frozen=True)
class Notice:
    """A message for the user.

    Attributes:
        message: Human-readable text.
        level: "error", "warning" or "info".
    """

    message: str
    level: str = "error"


_NOTICE_LOG_LEVELS = {
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
}


class Workbench:
    """One editing session over an artifact history.

    Args:
        gateway: Synthesis gateway used for generate and refine.
        store: Artifact history.
        versions: Undo/redo controller. Created over ``store`` if None.
        prompter: Answers edit prompts raised by the overlay.
        notify: Called with each Notice as it is emitted.
        preview: Browser the preview document renders in. The process-wide
            preview browser is used when None.

    Example:
        >>> bench = Workbench(SynthesisGateway(), get_artifact_store())
        >>> artifact = await bench.generate("a pomodoro timer")
        >>> await bench.refine("make it dark")
        >>> bench.undo()
        >>> await bench.close()
    """

    def __init__(
        self,
        gateway: SynthesisGateway,
        store: ArtifactStore,
        *,
        versions: VersionController | None = None,
        prompter: Prompter | None = None,
        notify: Callable[[Notice], None] | None = None,
        preview: PreviewBrowser | None = None,
    ):
        self.gateway = gateway
        self.store = store
        self.versions = versions or VersionController(store)
        self.notices: deque[Notice] = deque(maxlen=NOTICE_LIMIT)
        self._notify = notify
        self._busy = False

        if store.active is not None:
            self.versions.activate(store.active)
        self.document = RenderedDocument(preview)
        self.overlay = InteractionOverlay(self.refine, prompter)
        self._preview_stale = True

    # =========================================================================
    # State
    # =========================================================================

    @property
    def busy(self) -> bool:
        """True while a generate or refine call is in flight."""
        return self._busy

    @property
    def active(self) -> Artifact | None:
        return self.store.active

    @property
    def history(self) -> list[Artifact]:
        return self.store.history

    def drain_notices(self) -> list[Notice]:
        """Return pending notices, oldest first, and forget them."""
        notices = list(self.notices)
        self.notices.clear()
        return notices

    def _emit(self, message: str, level: str = "error") -> None:
        notice = Notice(message, level)
        self.notices.append(notice)
        logger.log(_NOTICE_LOG_LEVELS.get(level, logging.ERROR), f"Notice: {message}")
        if self._notify is not None:
            self._notify(notice)

    def _check_persist(self, result: PersistResult | None) -> None:
        if result is not None and not result.saved:
            self._emit(STORAGE_FULL_MESSAGE)

    def _render(self) -> None:
        """Mark the preview out of date with the active artifact."""
        self._preview_stale = True
        self.overlay.dismiss()

    async def render_preview(self) -> RenderedDocument:
        """The preview document, reloaded if the active artifact changed."""
        if self.overlay.document is None:
            await self.overlay.mount(self.document)
        if self._preview_stale:
            active = self.store.active
            await self.document.load(active.body if active else "")
            self._preview_stale = False
        return self.document

    async def close(self) -> None:
        """Release the preview page."""
        await self.overlay.unmount()
        await self.document.close()
        self._preview_stale = True

    def preview_frame(self) -> str | None:
        """Sandboxed frame markup for the active artifact."""
        active = self.store.active
        if active is None:
            return None
        return render_preview_frame(active.body, title=active.name)

    # =========================================================================
    # Synthesis
    # =========================================================================

    async def generate(
        self,
        prompt_text: str = "",
        source: SourceImage | None = None,
        style_preset: str = DEFAULT_STYLE,
        custom_css: str = "",
    ) -> Artifact | None:
        """Create a new artifact and make it active.

        Returns:
            The new artifact, or None when refused or failed (a notice is
            emitted in both cases).
        """
        if self._busy:
            self._emit(BUSY_MESSAGE, "warning")
            return None

        self._busy = True
        self.store.clear_active()
        self.versions.deactivate()
        self._render()
        try:
            body = await self.gateway.generate(
                prompt_text,
                source.data if source else None,
                source.mime_type if source else None,
                style_preset=style_preset,
                custom_css=custom_css,
            )
        except Exception as e:
            logger.error(f"Generation failed: {e}")
            self._emit(describe_error(e))
            return None
        finally:
            self._busy = False

        artifact = Artifact.create(
            name=artifact_name(prompt_text, source),
            body=body,
            source_image=source.data_uri if source else None,
        )
        self._check_persist(self.store.add(artifact))
        self.versions.activate(artifact)
        self._render()
        return artifact

    async def refine(self, instruction: str) -> str | None:
        """Apply a change request to the active artifact.

        The result is written to the artifact the request was made for. If
        a different artifact became active meanwhile, no undo entry is
        recorded and the preview is left alone.

        Returns:
            The new body, or None when refused, failed or nothing is active.
        """
        artifact = self.store.active
        if artifact is None:
            return None
        if self._busy:
            self._emit(BUSY_MESSAGE, "warning")
            return None

        mime_type, image_data = parse_data_uri(artifact.source_image) or (None, None)
        self._busy = True
        try:
            new_body = await self.gateway.refine(
                artifact.body, instruction, image_data, mime_type
            )
        except Exception as e:
            logger.error(f"Refinement failed: {e}")
            self._emit(describe_error(e))
            return None
        finally:
            self._busy = False

        still_active = (
            self.store.active is not None
            and self.store.active.id == artifact.id
            and self.versions.session.artifact_id == artifact.id
        )
        if still_active:
            self.versions.record_change(self.store.active.body)

        if not self.store.update_body(artifact.id, new_body):
            logger.warning(f"Refinement of {artifact.id} discarded: artifact no longer available")
            return None
        self._check_persist(self.store.last_result)

        if still_active:
            self._render()
        return new_body

    # =========================================================================
    # Versions
    # =========================================================================

    def undo(self) -> str | None:
        body = self.versions.undo()
        if body is not None:
            self._check_persist(self.store.last_result)
            self._render()
        return body

    def redo(self) -> str | None:
        body = self.versions.redo()
        if body is not None:
            self._check_persist(self.store.last_result)
            self._render()
        return body

    # =========================================================================
    # History
    # =========================================================================

    def select(self, artifact_id: str) -> Artifact | None:
        """Make a history entry active with a fresh edit session."""
        artifact = self.store.set_active(artifact_id)
        if artifact is None:
            return None
        self.versions.activate(artifact)
        self._render()
        return artifact

    def reset(self) -> None:
        """Deselect the active artifact."""
        self.store.clear_active()
        self.versions.deactivate()
        self._render()

    def remove(self, artifact_id: str) -> bool:
        was_active = self.active is not None and self.active.id == artifact_id
        removed = self.store.remove(artifact_id)
        if removed:
            self._check_persist(self.store.last_result)
        if removed and was_active:
            self.versions.deactivate()
            self._render()
        return removed

    def import_artifact(self, source: str | bytes | Path) -> Artifact | None:
        """Import an exported artifact file or its contents.

        An artifact whose id is already in history is activated instead of
        added. Rejected input emits a notice and leaves state unchanged.
        """
        try:
            if isinstance(source, Path):
                artifact = read_import_file(source)
            else:
                artifact = import_snapshot(source)
        except ImportRejectedError as e:
            self._emit(str(e))
            return None

        if artifact.id in self.store:
            logger.info(f"Artifact {artifact.id} already in history, activating")
            return self.select(artifact.id)

        self._check_persist(self.store.add(artifact))
        self.versions.activate(artifact)
        self._render()
        return artifact

    def export_artifact(self, directory: Path | str, *, document: bool = False) -> Path | None:
        """Write the active artifact to ``directory``."""
        if self.active is None:
            return None
        return save_export(self.active, directory, document=document)

    def load_source(self, path: Path | str) -> SourceImage | None:
        """Load a source image, emitting a notice when it is rejected."""
        try:
            return load_source_image(path)
        except UnsupportedSourceError as e:
            self._emit(str(e))
            return None

    # =========================================================================
    # Overlay
    # =========================================================================

    async def set_interaction_mode(self, mode: InteractionMode | str) -> None:
        await self.overlay.set_mode(InteractionMode(mode))

    async def inspect(self, selector: str) -> InspectedElementReport | None:
        """Inspect the first element matching ``selector``.

        Raises:
            ValueError: If the selector is unsupported.
            PreviewError: If the preview cannot be loaded or clicked.
        """
        document = await self.render_preview()
        if not await document.exists(selector):
            return None
        await self.overlay.set_mode(InteractionMode.INSPECT)
        await document.click(selector)
        return self.overlay.report

    async def edit(
        self,
        selector: str,
        action: EditAction | str,
        value: str | None = None,
        *,
        confirmed: bool = True,
    ) -> str | None:
        """Run an edit action on the first element matching ``selector``.

        Returns:
            The instruction sent for refinement, or None when nothing matched
            or the action was cancelled.
        """
        document = await self.render_preview()
        if not await document.exists(selector):
            return None
        await self.overlay.set_mode(InteractionMode.EDIT)
        await document.click(selector)

        prompter = self.overlay.prompter
        self.overlay.prompter = StaticPrompter(value, confirmed)
        try:
            return await self.overlay.choose_action(EditAction(action))
        finally:
            self.overlay.prompter = prompter


__all__ = [
    "Workbench",
    "Notice",
    "describe_error",
    "artifact_name",
    "ERROR_MESSAGES",
    "BUSY_MESSAGE",
    "STORAGE_FULL_MESSAGE",
    "FALLBACK_ERROR_MESSAGE",
    "DEFAULT_ARTIFACT_NAME",
    "NOTICE_LIMIT",
]
