"""
Per-step narration through a hosted text-to-speech model.
"""

from __future__ import annotations

import logging
import os

from jugaad_engineer.common import SpeechCallable, call_speech, resolve_api_key
from jugaad_engineer.repair_planning import RepairStep

from .audio import DEFAULT_SAMPLE_RATE, AudioClip, decode_pcm16

logger = logging.getLogger(__name__)

DEFAULT_TTS_MODEL = "gemini/gemini-2.5-flash-preview-tts"
DEFAULT_TTS_VOICE = "Kore"


def narration_text(step: RepairStep, *, step_number: int | None = None) -> str:
    """Build the script read aloud for a step."""
    parts: list[str] = []
    if step_number is not None:
        parts.append(f"Step {step_number}.")
    parts.append(step.title.strip().rstrip(".") + ".")
    if step.description.strip():
        parts.append(step.description.strip())
    return " ".join(parts)


class StepNarrator:
    """
    Turns step text into an :class:`AudioClip` with one speech call.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        voice: str | None = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        speech_fn: SpeechCallable | None = None,
    ) -> None:
        self._api_key = resolve_api_key(api_key)
        self._model = model or os.getenv("JUGAAD_TTS_MODEL") or DEFAULT_TTS_MODEL
        self._voice = voice or os.getenv("JUGAAD_TTS_VOICE") or DEFAULT_TTS_VOICE
        self._sample_rate = sample_rate
        self._speech_fn: SpeechCallable = speech_fn or call_speech

    @property
    def model(self) -> str:
        return self._model

    @property
    def voice(self) -> str:
        return self._voice

    def narrate(self, text: str) -> AudioClip:
        if not text or not text.strip():
            raise ValueError("Narration text must be a non-empty string.")

        try:
            payload = self._speech_fn(
                model=self._model,
                text=text.strip(),
                voice=self._voice,
                api_key=self._api_key,
                response_format="pcm",
            )
        except Exception:
            logger.exception("Audio generation failed")
            raise

        if not payload:
            raise RuntimeError("No audio generated")

        clip = decode_pcm16(payload, sample_rate=self._sample_rate)
        logger.info("Narrated %d characters into %.1fs of audio", len(text), clip.duration_seconds)
        return clip

    def narrate_step(self, step: RepairStep, *, step_number: int | None = None) -> AudioClip:
        return self.narrate(narration_text(step, step_number=step_number))
