"""
Prompt construction utilities for repair-step illustrations.
"""

from __future__ import annotations

from dataclasses import dataclass

from jugaad_engineer.repair_planning import ActionType, RepairStep

from .safety import scrub_prompt

DEFAULT_STYLE = (
    "Photorealistic macro photography, bright workshop lighting, clear focus on the mechanism."
)

NEGATIVE_PROMPT = (
    "people's faces, text, watermark, logo, blurry, distorted hands, extra fingers, "
    "cluttered background"
)

_ACTION_PHRASES: dict[ActionType, str] = {
    ActionType.CUT: "trimming a piece of scrap material to size",
    ActionType.BEND: "bending a strip of scrap material into shape",
    ActionType.BIND: "wrapping a binding tightly around two parts",
    ActionType.GLUE: "pressing two glued surfaces together",
    ActionType.FASTEN: "tightening a fastener to join two parts",
    ActionType.DRILL: "making a small hole in a piece of material",
    ActionType.MEASURE: "measuring and marking a part with a ruler",
    ActionType.REINFORCE: "placing a rigid splint along a weak joint",
    ActionType.ASSEMBLE: "fitting repaired parts back together",
    ActionType.CLEAN: "cleaning and preparing a surface",
    ActionType.OTHER: "working on a do-it-yourself repair",
}


@dataclass(frozen=True)
class StepImagePrompt:
    """
    Positive and negative prompts for one illustration.

    FLUX models take no negative prompt input, so ``text`` folds the exclusions into the
    prompt itself.
    """

    positive: str
    negative: str = NEGATIVE_PROMPT

    @property
    def text(self) -> str:
        exclusions = self.negative.strip().rstrip(".")
        if not exclusions:
            return self.positive
        return f"{self.positive}\nAvoid: {exclusions}."


def build_step_image_prompt(
    visualization_prompt: str,
    *,
    step_title: str | None = None,
    style: str = DEFAULT_STYLE,
    scrub: bool = True,
) -> StepImagePrompt:
    """
    Wrap the analyst's visualization brief in the technical-illustration framing.
    """
    if not visualization_prompt or not visualization_prompt.strip():
        raise ValueError("visualization_prompt must be a non-empty string.")

    subject = visualization_prompt.strip().rstrip(".")
    positive = f"Technical visualization: {subject}.\nStyle: {style.strip()}"
    if step_title and step_title.strip():
        positive = f"Repair step: {step_title.strip()}.\n{positive}"

    if scrub:
        positive = "\n".join(scrub_prompt(line) for line in positive.splitlines())
    return StepImagePrompt(positive=positive)


def build_fallback_prompt(step: RepairStep, *, style: str = DEFAULT_STYLE) -> StepImagePrompt:
    """
    A generic prompt built only from the step title and action type, used after the detailed
    brief has been rejected.
    """
    action = _ACTION_PHRASES.get(step.action_type, _ACTION_PHRASES[ActionType.OTHER])
    title = scrub_prompt(step.title) or "Repair step"
    positive = (
        f"Clean technical illustration of a pair of hands {action} on a wooden workbench. "
        f"Theme: {title}.\nStyle: {style.strip()}"
    )
    return StepImagePrompt(positive=positive)
