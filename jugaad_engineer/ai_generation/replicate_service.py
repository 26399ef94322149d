"""
Integration with Replicate for repair-step illustration generation.
"""

from __future__ import annotations

import os
from collections.abc import Iterable as IterableABC
from contextlib import ExitStack
from pathlib import Path
from typing import Any, BinaryIO, Callable, Iterable

import replicate

from jugaad_engineer.imaging import PreparedImage

from .prompting import StepImagePrompt

DEFAULT_IMAGE_MODEL = "black-forest-labs/flux-kontext-pro"
DEFAULT_FALLBACK_IMAGE_MODEL = "black-forest-labs/flux-schnell"

ReferenceImage = str | Path | BinaryIO | PreparedImage


def _build_flux_kontext_input(
    *,
    prompt: StepImagePrompt,
    image_input: str | BinaryIO | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt.text,
        "output_format": "png",
        "safety_tolerance": 2,
        "prompt_upsampling": False,
        "aspect_ratio": "16:9",
    }
    if image_input is not None:
        payload["input_image"] = image_input
        payload["aspect_ratio"] = "match_input_image"
    return payload


def _build_flux_schnell_input(
    *,
    prompt: StepImagePrompt,
    image_input: str | BinaryIO | None,
) -> dict[str, Any]:
    return {
        "prompt": prompt.text,
        "aspect_ratio": "16:9",
        "output_format": "png",
        "num_outputs": 1,
        "go_fast": True,
    }


def _build_flux_dev_input(
    *,
    prompt: StepImagePrompt,
    image_input: str | BinaryIO | None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": prompt.text,
        "aspect_ratio": "16:9",
        "output_format": "png",
        "num_outputs": 1,
        "guidance": 3.5,
    }
    if image_input is not None:
        payload["image"] = image_input
        payload["prompt_strength"] = 0.85
    return payload


_MODEL_INPUT_BUILDERS: dict[str, Callable[..., dict[str, Any]]] = {
    "black-forest-labs/flux-kontext-pro": _build_flux_kontext_input,
    "black-forest-labs/flux-schnell": _build_flux_schnell_input,
    "black-forest-labs/flux-dev": _build_flux_dev_input,
}

REFERENCE_CAPABLE_MODELS = frozenset(
    {"black-forest-labs/flux-kontext-pro", "black-forest-labs/flux-dev"}
)


def _base_identifier(model_identifier: str) -> str:
    normalized = model_identifier.strip().lower()
    if normalized not in _MODEL_INPUT_BUILDERS and ":" in normalized:
        normalized = normalized.split(":", maxsplit=1)[0]
    return normalized


def supports_reference_image(model_identifier: str) -> bool:
    return _base_identifier(model_identifier) in REFERENCE_CAPABLE_MODELS


def _build_replicate_input_payload(
    *,
    model_identifier: str,
    prompt: StepImagePrompt,
    image_input: str | BinaryIO | None,
) -> dict[str, Any]:
    builder = _MODEL_INPUT_BUILDERS.get(_base_identifier(model_identifier))
    if builder is None:
        supported_models = ", ".join(sorted(_MODEL_INPUT_BUILDERS))
        raise ValueError(
            "Model identifier "
            f"'{model_identifier}' is not configured with a default input payload. "
            f"Supported models: {supported_models}."
        )

    return builder(prompt=prompt, image_input=image_input)


class ReplicateImageGenerator:
    """
    Convenience wrapper around the Replicate client for step illustrations.

    Parameters
    ----------
    api_token:
        Replicate API token. Falls back to ``REPLICATE_API_TOKEN`` environment variable.
    model_identifier:
        Default model in the ``owner/model[:version]`` format. Falls back to
        ``JUGAAD_IMAGE_MODEL`` and then to FLUX Kontext Pro.
    client:
        Optional pre-configured :class:`replicate.Client`. Mainly useful for testing.
    """

    def __init__(
        self,
        *,
        api_token: str | None = None,
        model_identifier: str | None = None,
        client: replicate.Client | None = None,
    ) -> None:
        self._api_token = api_token or os.getenv("REPLICATE_API_TOKEN")
        if not self._api_token and not client:
            raise ValueError(
                "Replicate API token is required. Set REPLICATE_API_TOKEN or pass api_token."
            )

        self._model_identifier = (
            model_identifier or os.getenv("JUGAAD_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL
        )
        self._client = client or replicate.Client(api_token=self._api_token)

    @property
    def model_identifier(self) -> str:
        """Return the default model identifier."""
        return self._model_identifier

    def generate_image(
        self,
        prompt: StepImagePrompt | str,
        *,
        model_identifier: str | None = None,
        reference_image: ReferenceImage | None = None,
        **model_kwargs: Any,
    ) -> Iterable[Any]:
        """
        Generate one illustration with the given (or default) model.

        ``reference_image`` is only forwarded to models that accept an input image;
        text-only models ignore it. Extra keyword arguments override the model payload.
        Returns the raw Replicate output, usually a URL or an iterable of file outputs.
        """
        if isinstance(prompt, str):
            prompt = StepImagePrompt(positive=prompt)

        model = model_identifier or self._model_identifier
        with ExitStack() as stack:
            image_input = None
            if reference_image is not None and supports_reference_image(model):
                image_input = _prepare_image_input(reference_image, stack=stack)

            replicate_input = _build_replicate_input_payload(
                model_identifier=model,
                prompt=prompt,
                image_input=image_input,
            )
            replicate_input.update(model_kwargs)

            return self._client.run(model, input=replicate_input)


def _prepare_image_input(
    input_image: ReferenceImage,
    *,
    stack: ExitStack,
) -> str | BinaryIO:
    """
    Normalize the image input so Replicate can consume it, keeping resources open via ExitStack.
    """
    if isinstance(input_image, PreparedImage):
        return stack.enter_context(input_image.open())

    if hasattr(input_image, "read"):
        return input_image  # type: ignore[return-value]

    input_candidate = str(input_image)
    if input_candidate.lower().startswith(("http://", "https://", "data:")):
        return input_candidate

    input_path = Path(input_candidate).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input image not found at '{input_path}'.")

    return stack.enter_context(input_path.open("rb"))


def normalize_image_outputs(raw: Any) -> list[str]:
    """
    Normalize the image outputs returned by Replicate into a list of URL strings.
    """

    if raw is None:
        return []

    if isinstance(raw, str):
        return [raw] if raw else []

    # FileOutput objects iterate over their byte chunks; use the URL instead.
    url = getattr(raw, "url", None)
    if isinstance(url, str) and url:
        return [url]

    if isinstance(raw, bytes):
        return [raw.decode("utf-8", errors="ignore")]

    if isinstance(raw, IterableABC):
        collected = list(raw)
        if not collected:
            return []

        if all(isinstance(item, str) and len(item) == 1 for item in collected):
            return ["".join(collected)]

        normalized: list[str] = []
        for item in collected:
            if isinstance(item, str):
                normalized.append(item)
            elif isinstance(item, bytes):
                normalized.append(item.decode("utf-8", errors="ignore"))
            elif isinstance(getattr(item, "url", None), str):
                normalized.append(item.url)
            elif isinstance(item, IterableABC):
                normalized.extend(normalize_image_outputs(item))
            elif item is not None:
                normalized.append(str(item))
        return normalized

    return [str(raw)]
