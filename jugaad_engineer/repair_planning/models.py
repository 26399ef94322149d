"""
Structured representations of the repair plan returned by the analysis model.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Sequence

DEFAULT_GUIDE_TITLE = "Improvised Repair"
MAX_STEPS = 8


class ActionType(str, Enum):
    """
    Coarse tag describing what the hands are doing in a step.

    Drives the blueprint icon shown when no illustration is available.
    """

    CUT = "cut"
    BEND = "bend"
    BIND = "bind"
    GLUE = "glue"
    FASTEN = "fasten"
    DRILL = "drill"
    MEASURE = "measure"
    REINFORCE = "reinforce"
    ASSEMBLE = "assemble"
    CLEAN = "clean"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "ActionType":
        if isinstance(value, ActionType):
            return value
        if value is None:
            return cls.OTHER

        text = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        if not text:
            return cls.OTHER
        try:
            return cls(text)
        except ValueError:
            return _ACTION_SYNONYMS.get(text, cls.OTHER)


_ACTION_SYNONYMS: dict[str, ActionType] = {
    "saw": ActionType.CUT,
    "trim": ActionType.CUT,
    "split": ActionType.CUT,
    "slice": ActionType.CUT,
    "fold": ActionType.BEND,
    "shape": ActionType.BEND,
    "tie": ActionType.BIND,
    "wrap": ActionType.BIND,
    "lash": ActionType.BIND,
    "tape": ActionType.BIND,
    "adhesive": ActionType.GLUE,
    "bond": ActionType.GLUE,
    "seal": ActionType.GLUE,
    "screw": ActionType.FASTEN,
    "bolt": ActionType.FASTEN,
    "nail": ActionType.FASTEN,
    "clamp": ActionType.FASTEN,
    "bore": ActionType.DRILL,
    "punch": ActionType.DRILL,
    "mark": ActionType.MEASURE,
    "align": ActionType.MEASURE,
    "splint": ActionType.REINFORCE,
    "brace": ActionType.REINFORCE,
    "support": ActionType.REINFORCE,
    "install": ActionType.ASSEMBLE,
    "fit": ActionType.ASSEMBLE,
    "mount": ActionType.ASSEMBLE,
    "prepare": ActionType.CLEAN,
    "sand": ActionType.CLEAN,
}


def _text(payload: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def _optional_text(payload: Mapping[str, Any], *keys: str) -> str | None:
    return _text(payload, *keys) or None


@dataclass(frozen=True)
class RepairStep:
    """A single instruction in the repair plan, with its illustration brief."""

    title: str
    description: str
    materials: str = ""
    rationale: str = ""
    action_type: ActionType = ActionType.OTHER
    visualization_prompt: str = ""
    image_url: str | None = None

    def with_image(self, image_url: str | None) -> "RepairStep":
        return replace(self, image_url=image_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "materials": self.materials,
            "rationale": self.rationale,
            "action_type": self.action_type.value,
            "visualization_prompt": self.visualization_prompt,
            "image_url": self.image_url,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepairStep":
        if not isinstance(payload, Mapping):
            raise ValueError(f"Invalid step payload: {payload!r}")

        return cls(
            title=_text(payload, "title") or "Untitled step",
            description=_text(payload, "description", "instructions"),
            materials=_text(payload, "materials", "materialUsed", "material_used"),
            rationale=_text(payload, "rationale", "physicsPrinciple", "physics_principle"),
            action_type=ActionType.parse(payload.get("action_type") or payload.get("actionType")),
            visualization_prompt=_text(
                payload, "visualization_prompt", "visualizationPrompt", "image_prompt"
            ),
            image_url=_optional_text(payload, "image_url", "generatedImageUrl"),
        )


@dataclass(frozen=True)
class RepairGuide:
    """The complete plan: diagnosis, inventory, and ordered steps."""

    title: str
    summary: str
    broken_object_analysis: str
    scrap_pile_analysis: str
    steps: tuple[RepairStep, ...] = field(default_factory=tuple)

    def with_steps(self, steps: Sequence[RepairStep]) -> "RepairGuide":
        return replace(self, steps=tuple(steps))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "summary": self.summary,
            "broken_object_analysis": self.broken_object_analysis,
            "scrap_pile_analysis": self.scrap_pile_analysis,
            "steps": [step.to_dict() for step in self.steps],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepairGuide":
        if not isinstance(payload, Mapping):
            raise ValueError("Repair guide payload must be a mapping.")

        raw_steps = payload.get("steps") or []
        if not isinstance(raw_steps, Sequence) or isinstance(raw_steps, (str, bytes)):
            raise ValueError("Repair guide 'steps' must be a list.")

        steps = tuple(RepairStep.from_dict(item) for item in raw_steps[:MAX_STEPS])
        return cls(
            title=_text(payload, "title") or DEFAULT_GUIDE_TITLE,
            summary=_text(payload, "summary"),
            broken_object_analysis=_text(
                payload, "broken_object_analysis", "brokenObjectAnalysis"
            ),
            scrap_pile_analysis=_text(payload, "scrap_pile_analysis", "scrapPileAnalysis"),
            steps=steps,
        )
