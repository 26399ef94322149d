"""
Interactive follow-up chat about a generated repair package.

Usage:
    python scripts/ask_engineer.py --package repair_package.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from jugaad_engineer import RepairChatSession, RepairPackage  # noqa: E402

EXIT_COMMANDS = {"exit", "quit", ":q"}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ask the engineer about a repair guide.")
    parser.add_argument("--package", required=True, help="Path to the repair package YAML.")
    parser.add_argument("--api-key", default=None, help="API key for the chat model.")
    parser.add_argument("--model", default=None, help="Override the chat model.")
    parser.add_argument(
        "--log-level",
        default="ERROR",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level))

    package = RepairPackage.from_yaml(args.package)
    chat = RepairChatSession(package.guide, api_key=args.api_key, model=args.model)
    print(f"Engineer: {chat.messages[0].text}")
    print("(type 'exit' to leave)")

    while True:
        try:
            question = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            break
        reply = chat.send(question)
        print(f"Engineer: {reply.text}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
