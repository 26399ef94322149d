"""
Service layer that turns the two photos into a structured repair guide.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any

from jugaad_engineer.common import (
    ChatResult,
    CompletionCallable,
    PlanParseError,
    call_chat_completion,
    resolve_api_key,
)
from jugaad_engineer.imaging import ImageSource, PreparedImage, prepare_image

from .models import RepairGuide
from .prompting import AnalysisPrompt, build_analysis_prompt

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_MODEL = "gemini/gemini-2.5-pro"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


class RepairAnalyst:
    """
    Sends the broken object and scrap pile to a multimodal model and parses the plan it returns.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        completion_fn: CompletionCallable | None = None,
        max_image_edge: int | None = None,
        jpeg_quality: int | None = None,
    ) -> None:
        self._api_key = resolve_api_key(api_key)
        self._model = (
            model
            or os.getenv("JUGAAD_ANALYSIS_MODEL")
            or os.getenv("LITELLM_MODEL")
            or DEFAULT_ANALYSIS_MODEL
        )
        self._completion_fn: CompletionCallable = completion_fn or call_chat_completion
        self._max_image_edge = max_image_edge
        self._jpeg_quality = jpeg_quality

    @property
    def model(self) -> str:
        """Return the model identifier in use."""
        return self._model

    @property
    def api_key(self) -> str | None:
        return self._api_key

    @api_key.setter
    def api_key(self, value: str | None) -> None:
        self._api_key = value

    def prepare(self, source: ImageSource | PreparedImage) -> PreparedImage:
        return prepare_image(source, max_edge=self._max_image_edge, quality=self._jpeg_quality)

    def analyze(
        self,
        broken_image: ImageSource | PreparedImage,
        scrap_image: ImageSource | PreparedImage,
        *,
        user_notes: str | None = None,
        temperature: float = 0.4,
        max_output_tokens: int = 8192,
        **response_kwargs: Any,
    ) -> RepairGuide:
        """
        Invoke the analysis model once with both photos and return the parsed guide.
        """
        broken = self.prepare(broken_image)
        scrap = self.prepare(scrap_image)
        prompt: AnalysisPrompt = build_analysis_prompt(user_notes=user_notes)

        messages = [
            {"role": "system", "content": prompt.system},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": broken.to_data_uri()}},
                    {"type": "image_url", "image_url": {"url": scrap.to_data_uri()}},
                    {"type": "text", "text": prompt.user},
                ],
            },
        ]

        response_kwargs.setdefault("response_format", {"type": "json_object"})
        logger.info("Requesting repair analysis from %s", self._model)
        result: ChatResult = self._completion_fn(
            model=self._model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_output_tokens,
            api_key=self._api_key,
            **response_kwargs,
        )

        if not result.text:
            raise RuntimeError("No response from the analysis model.")

        guide = parse_repair_guide(result.text)
        logger.info("Analysis produced '%s' with %d steps", guide.title, len(guide.steps))
        return guide


def parse_repair_guide(text: str) -> RepairGuide:
    """
    Parse the model's JSON text into a guide, tolerating Markdown code fences.
    """
    cleaned = _CODE_FENCE.sub("", text.strip()).strip()
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise PlanParseError("Failed to parse repair analysis response as JSON.") from exc

    if not isinstance(payload, dict):
        raise PlanParseError("Repair analysis JSON must be an object.")

    try:
        guide = RepairGuide.from_dict(payload)
    except ValueError as exc:
        raise PlanParseError(str(exc)) from exc

    if not guide.steps:
        raise PlanParseError("Repair analysis did not contain any steps.")
    return guide
