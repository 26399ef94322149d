"""
Per-step illustration fan-out with staggered starts, retries, and fallback chains.
"""

from __future__ import annotations

import logging
import os
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from jugaad_engineer.common import is_rate_limit_error
from jugaad_engineer.repair_planning import RepairGuide, RepairStep

from .prompting import StepImagePrompt, build_fallback_prompt, build_step_image_prompt
from .replicate_service import (
    DEFAULT_FALLBACK_IMAGE_MODEL,
    ReferenceImage,
    ReplicateImageGenerator,
    normalize_image_outputs,
)

PLACEHOLDER_IMAGE_URL = (
    "https://placehold.co/1024x576/334155/94a3b8?text=Image+Generation+Failed"
)

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageAttempt:
    """One link of a step's fallback chain."""

    label: str
    model_identifier: str
    prompt: StepImagePrompt
    use_reference: bool


@dataclass(frozen=True)
class VisualizationResult:
    """Outcome of illustrating a single step."""

    step_index: int
    image_url: str
    model_identifier: str | None
    attempts: int
    is_placeholder: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "step_index": self.step_index,
            "image_url": self.image_url,
            "model_identifier": self.model_identifier,
            "attempts": self.attempts,
            "is_placeholder": self.is_placeholder,
            "error": self.error,
        }


class StepVisualizer:
    """
    Illustrates every step of a guide independently.

    Steps run on a small thread pool. Submissions are spaced ``stagger_seconds`` apart, so
    step ``i`` is queued ``i * stagger_seconds`` after the first. Each step walks its fallback chain
    and ends on the placeholder image, so a failing step never blocks or fails the others.
    """

    def __init__(
        self,
        *,
        image_generator: ReplicateImageGenerator | None = None,
        fallback_model: str | None = None,
        max_workers: int = 3,
        stagger_seconds: float = 1.5,
        max_retries: int = 2,
        retry_delay: float = 4.0,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self._image_generator = image_generator or ReplicateImageGenerator()
        self._fallback_model = (
            fallback_model
            or os.getenv("JUGAAD_IMAGE_FALLBACK_MODEL")
            or DEFAULT_FALLBACK_IMAGE_MODEL
        )
        self._max_workers = max_workers
        self._stagger_seconds = max(0.0, stagger_seconds)
        self._max_retries = max(0, max_retries)
        self._retry_delay = max(0.0, retry_delay)
        self._sleep = sleep_fn

    def build_attempts(self, step: RepairStep) -> list[ImageAttempt]:
        primary_model = self._image_generator.model_identifier
        fallback_prompt = build_fallback_prompt(step)

        if not step.visualization_prompt.strip():
            return [
                ImageAttempt("primary-generic", primary_model, fallback_prompt, True),
                ImageAttempt("fallback-generic", self._fallback_model, fallback_prompt, False),
            ]

        detailed = build_step_image_prompt(step.visualization_prompt, step_title=step.title)
        return [
            ImageAttempt("primary", primary_model, detailed, True),
            ImageAttempt("fallback", self._fallback_model, detailed, False),
            ImageAttempt("fallback-generic", self._fallback_model, fallback_prompt, False),
        ]

    def visualize(
        self,
        guide: RepairGuide,
        *,
        reference_image: ReferenceImage | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> list[VisualizationResult]:
        """
        Illustrate every step and return results in step order.
        """
        steps = list(guide.steps)
        if not steps:
            return []

        results: dict[int, VisualizationResult] = {}
        with ThreadPoolExecutor(
            max_workers=min(self._max_workers, len(steps)),
            thread_name_prefix="step-visualizer",
        ) as executor:
            futures: dict[Future[VisualizationResult], int] = {}
            for index, step in enumerate(steps):
                if index and self._stagger_seconds > 0:
                    self._sleep(self._stagger_seconds)
                future = executor.submit(self._visualize_step, index, step, reference_image)
                futures[future] = index
            for future in as_completed(futures):
                index = futures[future]
                result = future.result()
                results[index] = result
                self._notify(
                    progress_callback,
                    "step:done",
                    step_index=index,
                    total_steps=len(steps),
                    title=steps[index].title,
                    is_placeholder=result.is_placeholder,
                )

        return [results[index] for index in range(len(steps))]

    def visualize_step(
        self,
        step: RepairStep,
        *,
        step_index: int = 0,
        reference_image: ReferenceImage | None = None,
    ) -> VisualizationResult:
        """Illustrate a single step synchronously, without staggering."""
        return self._visualize_step(step_index, step, reference_image)

    def _visualize_step(
        self,
        index: int,
        step: RepairStep,
        reference_image: ReferenceImage | None,
    ) -> VisualizationResult:
        attempts_made = 0
        last_error: str | None = None
        try:
            attempts = self.build_attempts(step)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Could not build image prompts for step %d.", index + 1)
            attempts = []
            last_error = str(exc)

        for attempt in attempts:
            attempts_made += 1
            try:
                url = self._run_attempt(attempt, reference_image)
            except Exception as exc:  # noqa: BLE001
                last_error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "Step %d image attempt '%s' on %s failed: %s",
                    index + 1,
                    attempt.label,
                    attempt.model_identifier,
                    last_error,
                )
                continue

            logger.info(
                "Step %d illustrated by %s (%s)", index + 1, attempt.model_identifier, attempt.label
            )
            return VisualizationResult(
                step_index=index,
                image_url=url,
                model_identifier=attempt.model_identifier,
                attempts=attempts_made,
            )

        logger.warning("Step %d falls back to the placeholder image.", index + 1)
        return VisualizationResult(
            step_index=index,
            image_url=PLACEHOLDER_IMAGE_URL,
            model_identifier=None,
            attempts=attempts_made,
            is_placeholder=True,
            error=last_error,
        )

    def _run_attempt(
        self,
        attempt: ImageAttempt,
        reference_image: ReferenceImage | None,
    ) -> str:
        retrying = Retrying(
            stop=stop_after_attempt(self._max_retries + 1),
            wait=wait_incrementing(start=self._retry_delay, increment=self._retry_delay),
            retry=retry_if_exception(is_rate_limit_error),
            sleep=self._sleep,
            before_sleep=self._log_rate_limit(attempt),
            reraise=True,
        )
        return retrying(self._generate_url, attempt, reference_image)

    def _generate_url(
        self,
        attempt: ImageAttempt,
        reference_image: ReferenceImage | None,
    ) -> str:
        outputs = self._image_generator.generate_image(
            attempt.prompt,
            model_identifier=attempt.model_identifier,
            reference_image=reference_image if attempt.use_reference else None,
        )
        urls = normalize_image_outputs(outputs)
        if not urls:
            raise RuntimeError("No image data found")
        return urls[0]

    def _log_rate_limit(self, attempt: ImageAttempt) -> Callable[[RetryCallState], None]:
        def _log(retry_state: RetryCallState) -> None:
            logger.warning(
                "Rate limited on %s (retry %d/%d), waiting %.1fs",
                attempt.model_identifier,
                retry_state.attempt_number,
                self._max_retries,
                retry_state.next_action.sleep if retry_state.next_action else 0.0,
            )

        return _log

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)


def apply_results(
    guide: RepairGuide, results: Sequence[VisualizationResult]
) -> RepairGuide:
    """Return a copy of the guide with each step's ``image_url`` set from the results."""
    by_index = {result.step_index: result.image_url for result in results}
    steps = [
        step.with_image(by_index.get(index, step.image_url))
        for index, step in enumerate(guide.steps)
    ]
    return guide.with_steps(steps)
