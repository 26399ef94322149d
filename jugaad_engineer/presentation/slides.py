"""
Slide model behind the interactive guide and the printable export.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from jugaad_engineer.repair_planning import ActionType, RepairGuide, RepairStep

SlideKind = Literal["intro", "step", "outro"]

OUTRO_TITLE = "Repair Complete"
OUTRO_BODY = "You have successfully engineered a solution."


@dataclass(frozen=True)
class BlueprintIcon:
    label: str
    glyph: str


# Glyphs are limited to the ZapfDingbats repertoire so the PDF export can draw them.
BLUEPRINT_ICONS: dict[ActionType, BlueprintIcon] = {
    ActionType.CUT: BlueprintIcon("Cut", "✂"),
    ActionType.BEND: BlueprintIcon("Bend", "➥"),
    ActionType.BIND: BlueprintIcon("Bind", "❖"),
    ActionType.GLUE: BlueprintIcon("Glue", "●"),
    ActionType.FASTEN: BlueprintIcon("Fasten", "✚"),
    ActionType.DRILL: BlueprintIcon("Drill", "✺"),
    ActionType.MEASURE: BlueprintIcon("Measure", "↔"),
    ActionType.REINFORCE: BlueprintIcon("Reinforce", "❚"),
    ActionType.ASSEMBLE: BlueprintIcon("Assemble", "❒"),
    ActionType.CLEAN: BlueprintIcon("Clean", "✧"),
    ActionType.OTHER: BlueprintIcon("Work", "✎"),
}


def blueprint_icon(action_type: ActionType | str | None) -> BlueprintIcon:
    return BLUEPRINT_ICONS[ActionType.parse(action_type)]


@dataclass(frozen=True)
class Slide:
    kind: SlideKind
    title: str
    body: str = ""
    step: RepairStep | None = None
    step_number: int | None = None
    problem: str = ""
    resources: str = ""


def build_slides(guide: RepairGuide) -> list[Slide]:
    """Intro slide, one slide per step, then the outro."""
    slides = [
        Slide(
            kind="intro",
            title=guide.title,
            body=guide.summary,
            problem=guide.broken_object_analysis,
            resources=guide.scrap_pile_analysis,
        )
    ]
    for number, step in enumerate(guide.steps, start=1):
        slides.append(
            Slide(
                kind="step",
                title=step.title,
                body=step.description,
                step=step,
                step_number=number,
            )
        )
    slides.append(Slide(kind="outro", title=OUTRO_TITLE, body=OUTRO_BODY))
    return slides


class SlideDeck:
    """
    Cursor over a guide's slides; navigation clamps at both ends.
    """

    def __init__(self, slides: Sequence[Slide]) -> None:
        if not slides:
            raise ValueError("A slide deck needs at least one slide.")
        self._slides = list(slides)
        self._index = 0

    @classmethod
    def from_guide(cls, guide: RepairGuide) -> "SlideDeck":
        return cls(build_slides(guide))

    @property
    def slides(self) -> tuple[Slide, ...]:
        return tuple(self._slides)

    @property
    def index(self) -> int:
        return self._index

    @property
    def current(self) -> Slide:
        return self._slides[self._index]

    @property
    def is_first(self) -> bool:
        return self._index == 0

    @property
    def is_last(self) -> bool:
        return self._index == len(self._slides) - 1

    @property
    def position(self) -> str:
        return f"{self._index + 1} / {len(self._slides)}"

    def __len__(self) -> int:
        return len(self._slides)

    def next(self) -> Slide:
        return self.go_to(self._index + 1)

    def previous(self) -> Slide:
        return self.go_to(self._index - 1)

    def go_to(self, index: int) -> Slide:
        self._index = max(0, min(index, len(self._slides) - 1))
        return self.current
