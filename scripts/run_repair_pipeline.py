"""
CLI to run the complete Jugaad Engineer pipeline end-to-end.

Usage:
    python scripts/run_repair_pipeline.py \
        --broken photos/snapped_fan.jpg \
        --scrap photos/scrap_pile.jpg \
        --output repair_package.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from tqdm.auto import tqdm

# Ensure project root is on the Python path when running as a script.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jugaad_engineer import AppState, JugaadOrchestrator, RepairSession  # noqa: E402
from jugaad_engineer.ai_generation import StepVisualizer  # noqa: E402
from jugaad_engineer.repair_planning import RepairAnalyst  # noqa: E402


class ProgressTracker:
    """
    Provides user-friendly command-line progress updates for the repair pipeline.
    """

    def __init__(self) -> None:
        self._step_bar: tqdm | None = None

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        match stage:
            case "images:preparing":
                self._write("[1/4] Downscaling photos...")
            case "analysis:running":
                model = payload.get("model", "the analysis model")
                self._write(f"[2/4] Identifying failure points with {model}...")
            case "analysis:complete":
                title = payload.get("title", "Repair plan")
                total = payload.get("total_steps", 0)
                self._write(f"[2/4] Plan ready: {title} ({total} steps).")
            case "visuals:start":
                total = payload.get("total_steps", 0)
                self._write("[3/4] Generating repair visualizations...")
                self._step_bar = tqdm(total=total, desc="Illustrated steps", unit="step")
            case "step:done":
                if self._step_bar is not None:
                    title = payload.get("title") or ""
                    truncated = (title[:40] + "…") if len(title) > 40 else title
                    suffix = " (placeholder)" if payload.get("is_placeholder") else ""
                    self._step_bar.set_description(f"{truncated}{suffix}")
                    self._step_bar.update(1)
            case "visuals:complete":
                self.close()
                placeholders = payload.get("placeholders", 0)
                if placeholders:
                    self._write(f"[3/4] {placeholders} step(s) fell back to the placeholder image.")
            case "pipeline:complete":
                mode = " in blueprint mode" if payload.get("blueprint_mode") else ""
                self._write(f"[4/4] Pipeline complete{mode}.")
                self.close()

    def close(self) -> None:
        if self._step_bar is not None:
            self._step_bar.close()
            self._step_bar = None

    @staticmethod
    def _write(message: str) -> None:
        tqdm.write(message)


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate an improvised repair guide from two photos.")
    parser.add_argument("--broken", help="Path to the photo of the broken object.")
    parser.add_argument("--scrap", help="Path to the photo of the scrap pile.")
    parser.add_argument(
        "--output",
        default="repair_package.yaml",
        help="Output YAML file to store the guide and step images.",
    )
    parser.add_argument(
        "--no-visuals",
        dest="visualize",
        action="store_false",
        default=True,
        help="Skip image generation and keep every step in blueprint mode.",
    )
    parser.add_argument(
        "--demo",
        action="store_true",
        help="Skip the network entirely and write the canned demo guide.",
    )
    parser.add_argument("--api-key", default=None, help="API key for the analysis model.")
    parser.add_argument("--analysis-model", default=None, help="Override the analysis model.")
    parser.add_argument(
        "--stagger",
        type=float,
        default=1.5,
        help="Seconds between the starts of consecutive step illustrations (default: 1.5).",
    )
    parser.add_argument(
        "--max-edge",
        type=int,
        default=None,
        help="Longest photo edge in pixels before upload, 512-1536 (default: 1024).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    args = parser.parse_args()
    if not args.demo and not (args.broken and args.scrap):
        parser.error("--broken and --scrap are required unless --demo is given.")
    return args


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    analyst = RepairAnalyst(
        api_key=args.api_key,
        model=args.analysis_model,
        max_image_edge=args.max_edge,
    )
    visualizer = None
    if args.visualize and not args.demo:
        visualizer = StepVisualizer(stagger_seconds=args.stagger)
    orchestrator = JugaadOrchestrator(analyst=analyst, visualizer=visualizer)
    session = RepairSession(orchestrator=orchestrator, visualize=args.visualize, demo_delay=0)

    tracker = ProgressTracker()
    try:
        if args.demo:
            package = session.run_demo()
        else:
            session.set_broken_image(Path(args.broken))
            session.set_scrap_image(Path(args.scrap))
            package = session.start_analysis(progress_callback=tracker)
    finally:
        tracker.close()

    if session.state is AppState.ERROR or package is None:
        tqdm.write(f"Error: {session.error_message}")
        tqdm.write("Retry, pass --api-key with a different key, or run with --demo.")
        return 1

    output_path = Path(args.output)
    output_path.write_text(package.to_yaml(), encoding="utf-8")
    print(f"Saved repair package to {output_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
