"""
AI image generation package for repair-step illustrations.
"""

from .prompting import StepImagePrompt, build_fallback_prompt, build_step_image_prompt
from .replicate_service import (
    ReplicateImageGenerator,
    normalize_image_outputs,
    supports_reference_image,
)
from .safety import scrub_prompt
from .visualizer import (
    PLACEHOLDER_IMAGE_URL,
    StepVisualizer,
    VisualizationResult,
    apply_results,
)

__all__ = [
    "PLACEHOLDER_IMAGE_URL",
    "ReplicateImageGenerator",
    "StepImagePrompt",
    "StepVisualizer",
    "VisualizationResult",
    "apply_results",
    "build_fallback_prompt",
    "build_step_image_prompt",
    "normalize_image_outputs",
    "scrub_prompt",
    "supports_reference_image",
]
