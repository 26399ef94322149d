"""
Tests for illustration prompts, the Replicate wrapper, and the step visualizer.
"""

import threading
from io import BytesIO
from unittest.mock import MagicMock

import pytest

from jugaad_engineer.ai_generation import (
    PLACEHOLDER_IMAGE_URL,
    ReplicateImageGenerator,
    StepImagePrompt,
    StepVisualizer,
    apply_results,
    build_fallback_prompt,
    build_step_image_prompt,
    normalize_image_outputs,
    scrub_prompt,
    supports_reference_image,
)
from jugaad_engineer.imaging import prepare_image
from jugaad_engineer.repair_planning import ActionType, RepairGuide, RepairStep


class TestScrubPrompt:
    """Tests for the lexical safety scrubber."""

    def test_replaces_flagged_words(self):
        scrubbed = scrub_prompt("Use the knife to cut the hose, avoid blood and fire.")

        assert scrubbed == "Use the cutting tool to trim the hose, avoid red stain and heat."

    def test_whole_words_only(self):
        assert scrub_prompt("A shortcut through the firewall") == "A shortcut through the firewall"

    def test_preserves_leading_capital(self):
        assert scrub_prompt("Knife edge") == "Cutting tool edge"

    def test_single_pass(self):
        # "stab" maps to "press into"; the replacement must not be scrubbed again.
        assert scrub_prompt("stab the cork") == "press into the cork"

    def test_collapses_whitespace(self):
        assert scrub_prompt("  two   spaces \n here ") == "two spaces here"

    def test_empty(self):
        assert scrub_prompt("") == ""

    def test_hazard_and_body_terms(self):
        scrubbed = scrub_prompt("Explosive glue on bare skin")

        assert scrubbed == "Release glue on uncovered"


class TestStepImagePrompts:
    """Tests for building positive prompts."""

    def test_detailed_prompt_framing(self):
        prompt = build_step_image_prompt(
            "Hands using a knife to cut rubber strips.", step_title="Cut the Strips"
        )

        lines = prompt.positive.splitlines()
        assert lines[0] == "Repair step: Trim the Strips."
        assert lines[1] == "Technical visualization: Hands using a cutting tool to trim rubber strips."
        assert lines[2].startswith("Style: Photorealistic macro photography")
        assert prompt.negative

    def test_scrub_can_be_disabled(self):
        prompt = build_step_image_prompt("a knife", scrub=False)

        assert prompt.positive.startswith("Technical visualization: a knife.")

    def test_empty_brief_rejected(self):
        with pytest.raises(ValueError):
            build_step_image_prompt("   ")

    def test_fallback_prompt_uses_action_and_title(self):
        step = RepairStep(
            title="Lash the Splint",
            description="",
            action_type=ActionType.BIND,
        )

        prompt = build_fallback_prompt(step)

        assert "wrapping a binding tightly around two parts" in prompt.positive
        assert "Theme: Lash the Splint." in prompt.positive

    def test_negative_prompt_folded_into_text(self):
        prompt = build_step_image_prompt("a bent hanger")

        assert prompt.text.startswith(prompt.positive)
        assert "\nAvoid: people's faces" in prompt.text
        assert prompt.text.endswith("cluttered background.")

    def test_empty_negative_prompt_leaves_text_unchanged(self):
        assert StepImagePrompt(positive="a splint", negative="").text == "a splint"


class TestReplicateImageGenerator:
    """Tests for the Replicate client wrapper."""

    def test_requires_token_or_client(self, monkeypatch):
        monkeypatch.delenv("REPLICATE_API_TOKEN", raising=False)

        with pytest.raises(ValueError):
            ReplicateImageGenerator()

    def test_kontext_payload_with_reference(self, make_image_bytes):
        client = MagicMock()
        client.run.return_value = ["https://replicate.delivery/out.png"]
        generator = ReplicateImageGenerator(client=client)
        reference = prepare_image(make_image_bytes(size=(64, 64)))

        output = generator.generate_image("a wire brace", reference_image=reference)

        assert output == ["https://replicate.delivery/out.png"]
        model, = client.run.call_args.args
        payload = client.run.call_args.kwargs["input"]
        assert model == "black-forest-labs/flux-kontext-pro"
        assert payload["prompt"] == StepImagePrompt(positive="a wire brace").text
        assert payload["aspect_ratio"] == "match_input_image"
        assert isinstance(payload["input_image"], BytesIO)

    def test_text_only_model_ignores_reference(self):
        client = MagicMock()
        generator = ReplicateImageGenerator(client=client)

        generator.generate_image(
            StepImagePrompt(positive="a splint"),
            model_identifier="black-forest-labs/flux-schnell",
            reference_image="https://example.com/broken.jpg",
        )

        payload = client.run.call_args.kwargs["input"]
        assert "input_image" not in payload
        assert "image" not in payload
        assert payload["aspect_ratio"] == "16:9"

    def test_model_kwargs_override_payload(self):
        client = MagicMock()
        generator = ReplicateImageGenerator(
            client=client, model_identifier="black-forest-labs/flux-dev"
        )

        generator.generate_image("a clamp", guidance=5.0)

        assert client.run.call_args.kwargs["input"]["guidance"] == 5.0

    def test_payload_prompt_carries_exclusions(self):
        client = MagicMock()
        generator = ReplicateImageGenerator(
            client=client, model_identifier="black-forest-labs/flux-schnell"
        )

        generator.generate_image(build_step_image_prompt("a wire brace"))

        sent = client.run.call_args.kwargs["input"]["prompt"]
        assert sent.startswith("Technical visualization: a wire brace.")
        assert "Avoid: people's faces, text, watermark" in sent

    def test_unknown_model_rejected(self):
        generator = ReplicateImageGenerator(client=MagicMock())

        with pytest.raises(ValueError, match="Supported models"):
            generator.generate_image("x", model_identifier="someone/unknown-model")

    def test_missing_reference_path(self, tmp_path):
        generator = ReplicateImageGenerator(client=MagicMock())

        with pytest.raises(FileNotFoundError):
            generator.generate_image("x", reference_image=tmp_path / "missing.jpg")

    def test_supports_reference_image_with_version(self):
        assert supports_reference_image("black-forest-labs/flux-dev:abc123")
        assert not supports_reference_image("black-forest-labs/flux-schnell")


class TestNormalizeImageOutputs:
    """Tests for flattening Replicate outputs into URLs."""

    def test_plain_values(self):
        assert normalize_image_outputs(None) == []
        assert normalize_image_outputs("https://a/b.png") == ["https://a/b.png"]
        assert normalize_image_outputs(["https://a/1.png", "https://a/2.png"]) == [
            "https://a/1.png",
            "https://a/2.png",
        ]

    def test_file_output_objects_use_url(self):
        class FileOutput:
            url = "https://replicate.delivery/file.png"

            def __iter__(self):
                return iter([b"\x89PNG"])

        assert normalize_image_outputs(FileOutput()) == ["https://replicate.delivery/file.png"]
        assert normalize_image_outputs([FileOutput()]) == ["https://replicate.delivery/file.png"]


class FakeGenerator:
    """Thread-safe stand-in for ReplicateImageGenerator."""

    model_identifier = "black-forest-labs/flux-kontext-pro"

    def __init__(self, handler):
        self._handler = handler
        self._lock = threading.Lock()
        self.calls = []

    def generate_image(self, prompt, *, model_identifier=None, reference_image=None):
        with self._lock:
            self.calls.append((prompt.positive, model_identifier, reference_image))
        return self._handler(prompt, model_identifier)


def _guide(*briefs):
    steps = [
        RepairStep(
            title=f"Step {i + 1}",
            description="Do the thing.",
            action_type=ActionType.FASTEN,
            visualization_prompt=brief,
        )
        for i, brief in enumerate(briefs)
    ]
    return RepairGuide(
        title="Test Repair",
        summary="",
        broken_object_analysis="",
        scrap_pile_analysis="",
        steps=tuple(steps),
    )


def _visualizer(generator, sleeps, **kwargs):
    kwargs.setdefault("stagger_seconds", 0.0)
    return StepVisualizer(
        image_generator=generator,
        fallback_model="black-forest-labs/flux-schnell",
        sleep_fn=sleeps.append,
        **kwargs,
    )


class TestStepVisualizer:
    """Tests for the per-step illustration fan-out."""

    def test_results_in_step_order(self):
        generator = FakeGenerator(
            lambda prompt, model: f"https://img/{prompt.positive.splitlines()[0][-2]}.png"
        )
        sleeps = []
        visualizer = _visualizer(generator, sleeps)
        events = []

        results = visualizer.visualize(
            _guide("brief one", "brief two", "brief three"),
            progress_callback=lambda stage, payload: events.append((stage, payload)),
        )

        assert [r.step_index for r in results] == [0, 1, 2]
        assert [r.image_url for r in results] == [
            "https://img/1.png",
            "https://img/2.png",
            "https://img/3.png",
        ]
        assert all(not r.is_placeholder for r in results)
        assert sorted(p["step_index"] for _, p in events) == [0, 1, 2]
        assert {stage for stage, _ in events} == {"step:done"}

    def test_staggered_start(self):
        generator = FakeGenerator(lambda prompt, model: "https://img/x.png")
        sleeps = []
        sleeping_threads = []

        def sleep(seconds):
            sleeps.append(seconds)
            sleeping_threads.append(threading.current_thread())

        visualizer = StepVisualizer(
            image_generator=generator,
            stagger_seconds=1.5,
            sleep_fn=sleep,
        )

        visualizer.visualize(_guide("a", "b", "c"))

        assert sleeps == [1.5, 1.5]
        assert sleeping_threads == [threading.main_thread()] * 2
        assert len(generator.calls) == 3

    def test_reference_only_sent_to_primary(self):
        def handler(prompt, model):
            if model == "black-forest-labs/flux-kontext-pro":
                raise RuntimeError("Prediction failed: flagged as sensitive")
            return "https://img/fallback.png"

        generator = FakeGenerator(handler)
        visualizer = _visualizer(generator, [])

        result = visualizer.visualize_step(
            _guide("hands tying a knot").steps[0], reference_image="https://ref/broken.jpg"
        )

        assert result.image_url == "https://img/fallback.png"
        assert result.model_identifier == "black-forest-labs/flux-schnell"
        assert result.attempts == 2
        assert generator.calls[0][2] == "https://ref/broken.jpg"
        assert generator.calls[1][2] is None

    def test_generic_prompt_used_last(self):
        def handler(prompt, model):
            if "Theme:" in prompt.positive:
                return "https://img/generic.png"
            raise RuntimeError("blocked")

        generator = FakeGenerator(handler)
        result = _visualizer(generator, []).visualize_step(_guide("detailed brief").steps[0])

        assert result.image_url == "https://img/generic.png"
        assert result.attempts == 3
        assert not result.is_placeholder

    def test_empty_brief_skips_detailed_prompt(self):
        generator = FakeGenerator(lambda prompt, model: "https://img/generic.png")

        result = _visualizer(generator, []).visualize_step(_guide("").steps[0])

        assert result.attempts == 1
        assert "Theme: Step 1." in generator.calls[0][0]

    def test_placeholder_when_everything_fails(self):
        def handler(prompt, model):
            raise RuntimeError("model exploded")

        result = _visualizer(FakeGenerator(handler), []).visualize_step(_guide("x").steps[0])

        assert result.is_placeholder
        assert result.image_url == PLACEHOLDER_IMAGE_URL
        assert result.model_identifier is None
        assert result.attempts == 3
        assert result.error == "model exploded"

    def test_empty_output_counts_as_failure(self):
        def handler(prompt, model):
            return [] if model == "black-forest-labs/flux-kontext-pro" else "https://img/ok.png"

        result = _visualizer(FakeGenerator(handler), []).visualize_step(_guide("x").steps[0])

        assert result.image_url == "https://img/ok.png"
        assert result.attempts == 2

    def test_rate_limit_retries_with_linear_backoff(self):
        calls = {"count": 0}

        def handler(prompt, model):
            calls["count"] += 1
            if calls["count"] <= 2:
                raise RuntimeError("429 Too Many Requests")
            return "https://img/late.png"

        sleeps = []
        visualizer = _visualizer(FakeGenerator(handler), sleeps, retry_delay=4.0, max_retries=2)

        result = visualizer.visualize_step(_guide("x").steps[0])

        assert result.image_url == "https://img/late.png"
        assert result.attempts == 1
        assert sleeps == [4.0, 8.0]

    def test_rate_limit_gives_up_after_max_retries(self):
        def handler(prompt, model):
            if model == "black-forest-labs/flux-kontext-pro":
                raise RuntimeError("429 Too Many Requests")
            return "https://img/fallback.png"

        generator = FakeGenerator(handler)
        sleeps = []

        result = _visualizer(generator, sleeps, retry_delay=2.0, max_retries=1).visualize_step(
            _guide("x").steps[0]
        )

        assert sleeps == [2.0]
        assert [model for _, model, _ in generator.calls] == [
            "black-forest-labs/flux-kontext-pro",
            "black-forest-labs/flux-kontext-pro",
            "black-forest-labs/flux-schnell",
        ]
        assert result.image_url == "https://img/fallback.png"
        assert result.attempts == 2

    def test_non_rate_limit_errors_are_not_retried(self):
        def handler(prompt, model):
            raise RuntimeError("nope")

        generator = FakeGenerator(handler)
        sleeps = []

        _visualizer(generator, sleeps).visualize_step(_guide("x").steps[0])

        assert sleeps == []
        assert len(generator.calls) == 3

    def test_one_failing_step_does_not_affect_others(self):
        def handler(prompt, model):
            if "doomed" in prompt.positive or "Step 2" in prompt.positive:
                raise RuntimeError("nsfw")
            return "https://img/fine.png"

        results = _visualizer(FakeGenerator(handler), []).visualize(
            _guide("fine brief", "doomed brief", "another fine brief")
        )

        assert [r.is_placeholder for r in results] == [False, True, False]

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            StepVisualizer(image_generator=FakeGenerator(lambda p, m: ""), max_workers=0)

    def test_empty_guide(self):
        assert _visualizer(FakeGenerator(lambda p, m: ""), []).visualize(_guide()) == []

    def test_apply_results(self):
        guide = _guide("a", "b")
        results = _visualizer(FakeGenerator(lambda p, m: "https://img/z.png"), []).visualize(guide)

        illustrated = apply_results(guide, results)

        assert [s.image_url for s in illustrated.steps] == ["https://img/z.png"] * 2
        assert guide.steps[0].image_url is None
