"""
Narrate one step of a repair package to a WAV file.

Usage:
    python scripts/narrate_step.py --package repair_package.yaml --step 2 --output step2.wav
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jugaad_engineer import RepairPackage, StepNarrator  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read a repair step aloud into a WAV file.")
    parser.add_argument("--package", required=True, help="Path to the repair package YAML.")
    parser.add_argument("--step", type=int, required=True, help="1-based step number.")
    parser.add_argument("--output", required=True, help="Destination WAV file path.")
    parser.add_argument("--api-key", default=None, help="API key for the speech model.")
    parser.add_argument("--voice", default=None, help="Override the narration voice.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))

    package = RepairPackage.from_yaml(args.package)
    steps = package.guide.steps
    if not 1 <= args.step <= len(steps):
        print(f"Step must be between 1 and {len(steps)}.", file=sys.stderr)
        return 2

    narrator = StepNarrator(api_key=args.api_key, voice=args.voice)
    clip = narrator.narrate_step(steps[args.step - 1], step_number=args.step)
    output = clip.save(args.output)
    print(f"Saved {clip.duration_seconds:.1f}s narration to {output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
