"""
Application-state controller that sits between a front end and the orchestrator.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable

from jugaad_engineer.chat import RepairChatSession
from jugaad_engineer.common import CompletionCallable, UserFacingError, describe_error
from jugaad_engineer.imaging import ImageSource
from jugaad_engineer.repair_planning import load_demo_guide

from .pipeline import JugaadOrchestrator, ProgressCallback, RepairPackage

logger = logging.getLogger(__name__)

DEMO_DELAY_SECONDS = 2.5


class AppState(str, Enum):
    IDLE = "IDLE"
    ANALYZING = "ANALYZING"
    GENERATING_IMAGES = "GENERATING_IMAGES"
    READY = "READY"
    ERROR = "ERROR"


class RepairSession:
    """
    Holds one user's photos, the resulting package, and the current app state.

    Nothing is persisted: a manually entered API key lives only on this object.
    """

    def __init__(
        self,
        *,
        orchestrator: JugaadOrchestrator | None = None,
        visualize: bool = True,
        api_key: str | None = None,
        chat_completion_fn: CompletionCallable | None = None,
        demo_delay: float = DEMO_DELAY_SECONDS,
        sleep_fn: Callable[[float], None] = time.sleep,
        state_listener: Callable[[AppState], None] | None = None,
    ) -> None:
        self._orchestrator = orchestrator or JugaadOrchestrator(api_key=api_key)
        if api_key is not None:
            self._orchestrator.set_api_key(api_key)
        self._api_key = api_key
        self._visualize = visualize
        self._chat_completion_fn = chat_completion_fn
        self._demo_delay = demo_delay
        self._sleep = sleep_fn
        self._state_listener = state_listener

        self.state = AppState.IDLE
        self.broken_image: ImageSource | None = None
        self.scrap_image: ImageSource | None = None
        self.package: RepairPackage | None = None
        self.error: UserFacingError | None = None
        self._chat: RepairChatSession | None = None

    @property
    def state(self) -> AppState:
        return self._state

    @state.setter
    def state(self, value: AppState) -> None:
        self._state = value
        if self._state_listener is not None:
            self._state_listener(value)

    @property
    def error_message(self) -> str | None:
        return self.error.message if self.error else None

    @property
    def can_analyze(self) -> bool:
        return self.broken_image is not None and self.scrap_image is not None

    def set_broken_image(self, image: ImageSource | None) -> None:
        self.broken_image = image
        self.error = None

    def set_scrap_image(self, image: ImageSource | None) -> None:
        self.scrap_image = image
        self.error = None

    def set_api_key(self, api_key: str | None) -> None:
        """Use a manually entered key for every subsequent call."""
        self._api_key = api_key
        self._orchestrator.set_api_key(api_key)
        if self._chat is not None:
            self._chat.update_api_key(api_key)

    def start_analysis(
        self, *, progress_callback: ProgressCallback | None = None
    ) -> RepairPackage | None:
        """
        Run the pipeline on the current photos. Returns the package, or None on failure
        (the session is then in ``ERROR`` with a user-facing message).
        """
        if not self.can_analyze:
            raise ValueError("Both the broken-object photo and the scrap-pile photo are required.")

        self.state = AppState.ANALYZING
        self.error = None
        self.package = None
        self._chat = None

        def _track(stage: str, payload: dict[str, Any]) -> None:
            if stage == "visuals:start":
                self.state = AppState.GENERATING_IMAGES
            if progress_callback is not None:
                progress_callback(stage, payload)

        try:
            package = self._orchestrator.run(
                self.broken_image,  # type: ignore[arg-type]
                self.scrap_image,  # type: ignore[arg-type]
                visualize=self._visualize,
                progress_callback=_track,
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Repair analysis failed")
            self.error = describe_error(exc)
            self.state = AppState.ERROR
            return None

        self.package = package
        self.state = AppState.READY
        return package

    def retry(self, *, progress_callback: ProgressCallback | None = None) -> RepairPackage | None:
        return self.start_analysis(progress_callback=progress_callback)

    def run_demo(self) -> RepairPackage:
        """Load the canned guide after a short simulated analysis; no network calls."""
        self.state = AppState.ANALYZING
        self.error = None
        self.package = None
        self._chat = None

        if self._demo_delay > 0:
            self._sleep(self._demo_delay)

        self.package = RepairPackage.from_guide(load_demo_guide(), demo=True)
        self.state = AppState.READY
        return self.package

    def reset(self) -> None:
        self.broken_image = None
        self.scrap_image = None
        self.package = None
        self.error = None
        self._chat = None
        self.state = AppState.IDLE

    def open_chat(self) -> RepairChatSession:
        if self.package is None:
            raise RuntimeError("There is no repair guide to discuss yet.")
        if self._chat is None:
            self._chat = RepairChatSession(
                self.package.guide,
                api_key=self._api_key,
                completion_fn=self._chat_completion_fn,
            )
        return self._chat
