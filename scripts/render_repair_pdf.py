"""
Render a repair package YAML into a printable slide deck PDF.

Usage:
    python scripts/render_repair_pdf.py \
        --package repair_package.yaml \
        --output repair_guide.pdf
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is on the Python path.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jugaad_engineer import RepairGuidePDFBuilder, RepairPackage  # noqa: E402
from jugaad_engineer.presentation import PAGE_SIZES  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Convert a repair package YAML into a presentation PDF."
    )
    parser.add_argument(
        "--package",
        required=True,
        help="Path to the repair package YAML (output of run_repair_pipeline.py).",
    )
    parser.add_argument(
        "--output",
        required=True,
        help="Destination PDF file path.",
    )
    parser.add_argument(
        "--page-size",
        choices=sorted(PAGE_SIZES.keys()),
        default="widescreen",
        help="Page size to render (default: widescreen).",
    )
    parser.add_argument(
        "--margin-mm",
        type=float,
        default=14.0,
        help="Page margin in millimetres (default: 14).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Timeout in seconds for downloading step images (default: 30).",
    )
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
    builder = RepairGuidePDFBuilder(
        page_size=PAGE_SIZES[args.page_size],
        margin_mm=args.margin_mm,
        request_timeout=args.timeout,
    )
    builder.build(package, args.output)

    print(f"Rendered repair guide PDF to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
