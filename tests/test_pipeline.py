"""
Tests for the orchestrator and repair packages.
"""

from unittest.mock import MagicMock

import pytest

from jugaad_engineer.ai_generation import PLACEHOLDER_IMAGE_URL, StepVisualizer
from jugaad_engineer.imaging import PreparedImage
from jugaad_engineer.pipeline import JugaadOrchestrator, RepairPackage, StepAsset
from jugaad_engineer.repair_planning import RepairAnalyst, load_demo_guide


def _image_generator(output="https://img/step.png"):
    generator = MagicMock()
    generator.model_identifier = "black-forest-labs/flux-kontext-pro"
    generator.generate_image.return_value = output
    return generator


@pytest.fixture
def analyst(json_completion):
    return RepairAnalyst(api_key="k", completion_fn=json_completion)


def _orchestrator(analyst, generator):
    visualizer = StepVisualizer(
        image_generator=generator, stagger_seconds=0.0, sleep_fn=lambda _: None
    )
    return JugaadOrchestrator(analyst=analyst, visualizer=visualizer)


class TestJugaadOrchestrator:
    """Tests for the end-to-end pipeline with injected services."""

    def test_run_produces_illustrated_package(self, analyst, broken_photo, scrap_photo):
        generator = _image_generator()
        events = []

        package = _orchestrator(analyst, generator).run(
            broken_photo,
            scrap_photo,
            progress_callback=lambda stage, payload: events.append(stage),
        )

        assert not package.blueprint_mode
        assert [a.primary_image for a in package.step_assets] == ["https://img/step.png"] * 3
        assert all(step.image_url == "https://img/step.png" for step in package.guide.steps)

        assert events[:4] == [
            "images:preparing",
            "analysis:running",
            "analysis:complete",
            "visuals:start",
        ]
        assert events.count("step:done") == 3
        assert events[-2:] == ["visuals:complete", "pipeline:complete"]

    def test_primary_attempt_gets_broken_photo_as_reference(
        self, analyst, broken_photo, scrap_photo
    ):
        generator = _image_generator()

        _orchestrator(analyst, generator).run(broken_photo, scrap_photo)

        references = [
            c.kwargs["reference_image"] for c in generator.generate_image.call_args_list
        ]
        assert all(isinstance(ref, PreparedImage) for ref in references)

    def test_without_visuals_is_blueprint_mode(self, analyst, broken_photo, scrap_photo):
        generator = _image_generator()
        events = []

        package = _orchestrator(analyst, generator).run(
            broken_photo,
            scrap_photo,
            visualize=False,
            progress_callback=lambda stage, payload: events.append((stage, payload)),
        )

        assert package.blueprint_mode
        generator.generate_image.assert_not_called()
        assert events[-1] == ("pipeline:complete", {"total_steps": 3, "blueprint_mode": True})

    def test_failed_illustrations_become_placeholders(self, analyst, broken_photo, scrap_photo):
        generator = _image_generator()
        generator.generate_image.side_effect = RuntimeError("Prediction failed")
        events = []

        package = _orchestrator(analyst, generator).run(
            broken_photo,
            scrap_photo,
            progress_callback=lambda stage, payload: events.append((stage, payload)),
        )

        assert package.blueprint_mode
        assert all(a.is_placeholder for a in package.step_assets)
        assert all(a.primary_image == PLACEHOLDER_IMAGE_URL for a in package.step_assets)
        assert ("visuals:complete", {"total_steps": 3, "placeholders": 3}) in events

    def test_analysis_errors_propagate(self, broken_photo, scrap_photo):
        completion_fn = MagicMock(side_effect=RuntimeError("401 Unauthorized"))
        orchestrator = _orchestrator(
            RepairAnalyst(api_key="k", completion_fn=completion_fn), _image_generator()
        )

        with pytest.raises(RuntimeError, match="401"):
            orchestrator.run(broken_photo, scrap_photo)

    def test_set_api_key_updates_analyst(self, analyst):
        orchestrator = JugaadOrchestrator(analyst=analyst)

        orchestrator.set_api_key("replacement")

        assert analyst.api_key == "replacement"


class TestRepairPackage:
    """Tests for packaging and YAML persistence."""

    def test_demo_package_has_visuals(self):
        package = RepairPackage.from_guide(load_demo_guide(), demo=True)

        assert package.demo
        assert not package.blueprint_mode
        assert all(asset.has_visual for asset in package.step_assets)

    def test_placeholder_urls_are_flagged(self, sample_guide):
        guide = sample_guide.with_steps(
            [step.with_image(PLACEHOLDER_IMAGE_URL) for step in sample_guide.steps]
        )

        package = RepairPackage.from_guide(guide)

        assert all(asset.is_placeholder for asset in package.step_assets)
        assert package.blueprint_mode

    def test_step_asset_without_image(self, sample_guide):
        asset = StepAsset(step=sample_guide.steps[0])

        assert asset.primary_image is None
        assert not asset.has_visual

    def test_yaml_roundtrip(self, tmp_path, sample_guide):
        guide = sample_guide.with_steps(
            [
                sample_guide.steps[0].with_image("https://img/0.png"),
                sample_guide.steps[1].with_image(PLACEHOLDER_IMAGE_URL),
                sample_guide.steps[2],
            ]
        )
        package = RepairPackage.from_guide(guide)
        path = tmp_path / "package.yaml"
        path.write_text(package.to_yaml(), encoding="utf-8")

        restored = RepairPackage.from_yaml(path)

        assert restored.guide == package.guide
        assert restored.created_at == package.created_at
        assert [a.image_outputs for a in restored.step_assets] == [
            ("https://img/0.png",),
            (PLACEHOLDER_IMAGE_URL,),
            (),
        ]
        assert [a.is_placeholder for a in restored.step_assets] == [False, True, False]

    def test_from_dict_requires_steps(self):
        with pytest.raises(ValueError):
            RepairPackage.from_dict({"title": "No steps"})

    def test_from_yaml_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValueError):
            RepairPackage.from_yaml(path)
