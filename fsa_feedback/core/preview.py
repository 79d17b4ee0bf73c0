"""
Preview Orchestrator
Decides after every edit whether the user sees the local validator output
or the remote evaluator's output.

Remote calls are debounced: only the call scheduled by the most recent
edit may write the feedback slot. Each edit bumps an integer generation;
pending work is cancelled and any result whose generation is no longer
current is dropped, whatever order responses arrive in.
"""

import asyncio
from enum import Enum
from typing import Callable, Optional

import structlog

from .config import ServiceSettings
from .models import Automaton, EvaluationConfig
from .remote import PreviewParams, PreviewRequest, RemoteEvaluator, decode_preview_payload
from .schemas import FeedbackReport
from .validator import validate

log = structlog.get_logger(__name__)

DEBOUNCE_SECONDS = 0.5

FeedbackListener = Callable[[Optional[FeedbackReport], Optional[str]], None]


class PreviewState(str, Enum):
    IDLE = "idle"
    LOCAL_PREVIEW_READY = "local_preview_ready"
    AWAITING_REMOTE = "awaiting_remote"
    REMOTE_APPLIED = "remote_applied"
    LOCAL_FALLBACK = "local_fallback"


class PreviewOrchestrator:
    """
    Owns the single "current feedback" slot of one editing surface.

    edit() is synchronous; when a remote preview is due it schedules a task
    on the running event loop. close() must be awaited on teardown.
    """

    def __init__(
        self,
        config: Optional[EvaluationConfig] = None,
        evaluator: Optional[RemoteEvaluator] = None,
        live_preview: bool = False,
        response_area_id: Optional[str] = None,
        universal_response_area_id: Optional[str] = None,
        check_feedback: Optional[FeedbackReport] = None,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        on_change: Optional[FeedbackListener] = None,
    ):
        self.config = config or EvaluationConfig()
        self.evaluator = evaluator
        self.live_preview = live_preview
        self.response_area_id = response_area_id
        self.universal_response_area_id = universal_response_area_id
        self.check_feedback = check_feedback
        self.debounce_seconds = debounce_seconds
        self.on_change = on_change

        self._state = PreviewState.IDLE
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self._automaton: Optional[Automaton] = None
        self._local: Optional[FeedbackReport] = None
        self._current: Optional[FeedbackReport] = None
        self._preview_text: Optional[str] = None
        self._loading = False

    @classmethod
    def from_settings(cls, settings: ServiceSettings, **kwargs) -> "PreviewOrchestrator":
        """Wire the remote evaluator and debounce from service settings."""
        evaluator = RemoteEvaluator(settings.graphql_url) if settings.graphql_url else None
        kwargs.setdefault("debounce_seconds", settings.preview_debounce_ms / 1000)
        return cls(evaluator=evaluator, **kwargs)

    # --- Accessors ---

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def current(self) -> Optional[FeedbackReport]:
        return self._current

    @property
    def local(self) -> Optional[FeedbackReport]:
        return self._local

    @property
    def preview_text(self) -> Optional[str]:
        return self._preview_text

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def remote_enabled(self) -> bool:
        return bool(
            self.live_preview
            and self.evaluator is not None
            and self.response_area_id
            and self.universal_response_area_id
        )

    # --- Events ---

    def edit(self, automaton: Automaton, config: Optional[EvaluationConfig] = None) -> FeedbackReport:
        """Handle one edit and return the fresh local report."""
        self._generation += 1
        self._cancel_pending()

        if config is not None:
            self.config = config
        self._automaton = automaton
        self._local = validate(automaton, self.config)
        self._state = PreviewState.LOCAL_PREVIEW_READY

        if not self.live_preview:
            self._write(self.check_feedback, None)
        elif not self.remote_enabled:
            self._write(self._local, None)
        else:
            self._write(self._local, None)
            self._task = asyncio.get_running_loop().create_task(
                self._debounced_preview(self._generation, automaton, self._local)
            )
        return self._local

    def set_live_preview(self, enabled: bool) -> None:
        if enabled == self.live_preview:
            return
        self.live_preview = enabled
        if enabled and self._automaton is not None:
            self.edit(self._automaton)
            return

        self._generation += 1
        self._cancel_pending()
        self._write(self.check_feedback, None)

    def set_check_feedback(self, feedback: Optional[FeedbackReport]) -> None:
        """Feedback from the last explicit check, shown while live preview is off."""
        self.check_feedback = feedback
        if not self.live_preview:
            self._write(feedback, None)

    def can_submit(self) -> bool:
        """Submission is blocked while the latest local report has errors."""
        return self._local is not None and self._local.is_valid

    async def settle(self) -> None:
        """Wait for the pending preview task, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def close(self) -> None:
        """Cancel any pending timer and in-flight call; nothing fires afterwards."""
        self._generation += 1
        task = self._task
        self._cancel_pending()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = PreviewState.IDLE
        log.debug("preview_closed", generation=self._generation)

    # --- Internals ---

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._loading = False

    def _write(self, report: Optional[FeedbackReport], text: Optional[str]) -> None:
        self._current = report
        self._preview_text = text
        if self.on_change is not None:
            self.on_change(report, text)

    async def _debounced_preview(self, generation: int, automaton: Automaton,
                                 local: FeedbackReport) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if generation != self._generation:
            return

        self._state = PreviewState.AWAITING_REMOTE
        self._loading = True
        request = PreviewRequest(
            submission=automaton,
            additional_params=PreviewParams.for_config(self.config),
            response_area_id=self.response_area_id,
            universal_response_area_id=self.universal_response_area_id,
        )

        try:
            payload = await self.evaluator.preview(request)
            text, report = decode_preview_payload(payload, automaton, local)
        except Exception as e:
            if generation != self._generation:
                log.info("stale_preview_dropped", generation=generation, current=self._generation)
                return
            log.warning("remote_preview_failed", error=str(e), error_type=type(e).__name__)
            self._loading = False
            self._state = PreviewState.LOCAL_FALLBACK
            self._write(local, None)
            return

        if generation != self._generation:
            log.info("stale_preview_dropped", generation=generation, current=self._generation)
            return

        self._loading = False
        self._state = PreviewState.REMOTE_APPLIED
        self._write(report, text)
