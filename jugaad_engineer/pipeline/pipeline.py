"""
Orchestrates the full Jugaad Engineer pipeline from two photos to an illustrated repair guide.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

import yaml

from jugaad_engineer.ai_generation import (
    PLACEHOLDER_IMAGE_URL,
    StepVisualizer,
    VisualizationResult,
    apply_results,
    normalize_image_outputs,
)
from jugaad_engineer.imaging import ImageSource, PreparedImage
from jugaad_engineer.repair_planning import RepairAnalyst, RepairGuide, RepairStep

ProgressCallback = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


@dataclass
class StepAsset:
    """Represents all data for a single repair step."""

    step: RepairStep
    image_outputs: Sequence[str] = ()
    is_placeholder: bool = False

    @property
    def primary_image(self) -> str | None:
        return self.image_outputs[0] if self.image_outputs else None

    @property
    def has_visual(self) -> bool:
        """False in blueprint mode: no image yet, or only the failure placeholder."""
        return bool(self.image_outputs) and not self.is_placeholder

    def to_dict(self) -> dict[str, Any]:
        payload = self.step.to_dict()
        payload["image_outputs"] = list(self.image_outputs)
        payload["is_placeholder"] = self.is_placeholder
        return payload


@dataclass
class RepairPackage:
    """Aggregated output of the pipeline."""

    guide: RepairGuide
    step_assets: list[StepAsset]
    demo: bool = False
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="seconds")
    )

    @property
    def blueprint_mode(self) -> bool:
        return not any(asset.has_visual for asset in self.step_assets)

    @classmethod
    def from_guide(cls, guide: RepairGuide, *, demo: bool = False) -> "RepairPackage":
        """Package a guide using whatever image URLs its steps already carry."""
        assets = [
            StepAsset(
                step=step,
                image_outputs=(step.image_url,) if step.image_url else (),
                is_placeholder=step.image_url == PLACEHOLDER_IMAGE_URL,
            )
            for step in guide.steps
        ]
        return cls(guide=guide, step_assets=assets, demo=demo)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.guide.title,
            "summary": self.guide.summary,
            "broken_object_analysis": self.guide.broken_object_analysis,
            "scrap_pile_analysis": self.guide.scrap_pile_analysis,
            "demo": self.demo,
            "created_at": self.created_at,
            "steps": [asset.to_dict() for asset in self.step_assets],
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RepairPackage":
        if "steps" not in payload:
            raise ValueError("Repair package payload must include 'steps'.")

        guide = RepairGuide.from_dict(payload)
        raw_steps = payload.get("steps") or []
        assets: list[StepAsset] = []
        for step, entry in zip(guide.steps, raw_steps):
            raw_outputs = entry.get("image_outputs")
            if raw_outputs is None and step.image_url:
                raw_outputs = [step.image_url]
            outputs = tuple(normalize_image_outputs(raw_outputs))
            assets.append(
                StepAsset(
                    step=step,
                    image_outputs=outputs,
                    is_placeholder=bool(entry.get("is_placeholder", False)),
                )
            )

        package = cls(guide=guide, step_assets=assets, demo=bool(payload.get("demo", False)))
        if payload.get("created_at"):
            package.created_at = str(payload["created_at"])
        return package

    @classmethod
    def from_yaml(cls, source: str | Path) -> "RepairPackage":
        path = Path(source)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, Mapping):
            raise ValueError("Repair package YAML must deserialize to a mapping.")
        return cls.from_dict(data)


class JugaadOrchestrator:
    """
    High-level coordinator that chains the analysis request and the illustration fan-out.
    """

    def __init__(
        self,
        *,
        analyst: RepairAnalyst | None = None,
        visualizer: StepVisualizer | None = None,
        api_key: str | None = None,
        analysis_model: str | None = None,
    ) -> None:
        self._analyst = analyst or RepairAnalyst(api_key=api_key, model=analysis_model)
        self._visualizer = visualizer

    @property
    def analyst(self) -> RepairAnalyst:
        return self._analyst

    def set_api_key(self, api_key: str | None) -> None:
        self._analyst.api_key = api_key

    def run(
        self,
        broken_image: ImageSource | PreparedImage,
        scrap_image: ImageSource | PreparedImage,
        *,
        visualize: bool = True,
        user_notes: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> RepairPackage:
        """
        Complete pipeline from two photos to a packaged guide.

        Analysis errors propagate to the caller. Illustration failures never do; they end
        in placeholder images. With ``visualize=False`` the package is in blueprint mode.
        """
        self._notify(progress_callback, "images:preparing")
        broken = self._analyst.prepare(broken_image)
        scrap = self._analyst.prepare(scrap_image)

        self._notify(progress_callback, "analysis:running", model=self._analyst.model)
        guide = self._analyst.analyze(broken, scrap, user_notes=user_notes)
        self._notify(
            progress_callback,
            "analysis:complete",
            title=guide.title,
            total_steps=len(guide.steps),
        )

        if visualize:
            package = self.visualize_guide(
                guide,
                reference_image=broken,
                progress_callback=progress_callback,
            )
        else:
            package = RepairPackage(
                guide=guide,
                step_assets=[StepAsset(step=step) for step in guide.steps],
            )

        self._notify(
            progress_callback,
            "pipeline:complete",
            total_steps=len(package.step_assets),
            blueprint_mode=package.blueprint_mode,
        )
        return package

    def visualize_guide(
        self,
        guide: RepairGuide,
        *,
        reference_image: ImageSource | PreparedImage | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> RepairPackage:
        """Run only the illustration stage for an existing guide."""
        visualizer = self._get_visualizer()
        self._notify(progress_callback, "visuals:start", total_steps=len(guide.steps))
        results = visualizer.visualize(
            guide,
            reference_image=reference_image,
            progress_callback=progress_callback,
        )
        illustrated = apply_results(guide, results)
        assets = _assets_from_results(illustrated, results)
        placeholders = sum(1 for result in results if result.is_placeholder)
        if placeholders:
            logger.warning("%d of %d steps use the placeholder image", placeholders, len(results))
        self._notify(
            progress_callback,
            "visuals:complete",
            total_steps=len(assets),
            placeholders=placeholders,
        )
        return RepairPackage(guide=illustrated, step_assets=assets)

    def _get_visualizer(self) -> StepVisualizer:
        if self._visualizer is None:
            self._visualizer = StepVisualizer()
        return self._visualizer

    @staticmethod
    def _notify(
        callback: ProgressCallback | None,
        stage: str,
        **payload: Any,
    ) -> None:
        if callback is not None:
            callback(stage, payload)


def _assets_from_results(
    guide: RepairGuide, results: Sequence[VisualizationResult]
) -> list[StepAsset]:
    by_index = {result.step_index: result for result in results}
    assets: list[StepAsset] = []
    for index, step in enumerate(guide.steps):
        result = by_index.get(index)
        if result is None:
            assets.append(StepAsset(step=step))
            continue
        assets.append(
            StepAsset(
                step=step,
                image_outputs=(result.image_url,),
                is_placeholder=result.is_placeholder,
            )
        )
    return assets
