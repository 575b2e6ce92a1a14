"""CLI job to bulk-import clients from free text and export them as JSON."""

import argparse
import json
import logging
import sys
from typing import Optional, TextIO

from strategy_map.core.config import get_settings
from strategy_map.core.state import MapState
from strategy_map.etl.transform import to_client_row
from strategy_map.jobs.entries import EntryError, run_bulk_import

logger = logging.getLogger(__name__)


def run_import_job(*, text: str, include_demo: bool, output: TextIO) -> int:
    """Import ``text`` into a fresh state and write the export document; returns the number added."""
    if not get_settings().gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY is required")
    if not text.strip():
        raise ValueError("Input text is empty")

    state = MapState() if include_demo else MapState(clients=[])
    added = run_bulk_import(state, text)

    json.dump({"clients": [to_client_row(c) for c in state.clients]}, output, indent=2)
    output.write("\n")
    logger.info("Completed import: added=%d total=%d", len(added), len(state.clients))
    return len(added)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Extract, geocode and export clients from free text")
    parser.add_argument("input", nargs="?", help="Text file to import (defaults to stdin)")
    parser.add_argument("--output", "-o", dest="output", help="Write JSON here instead of stdout")
    parser.add_argument(
        "--include-demo",
        dest="include_demo",
        action="store_true",
        help="Start from the demo dataset instead of an empty list",
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)

    if args.input:
        with open(args.input, "r", encoding="utf-8") as fh:
            text = fh.read()
    else:
        text = sys.stdin.read()

    try:
        if args.output:
            with open(args.output, "w", encoding="utf-8") as out:
                run_import_job(text=text, include_demo=args.include_demo, output=out)
        else:
            run_import_job(text=text, include_demo=args.include_demo, output=sys.stdout)
    except EntryError as exc:
        logger.error("Import failed: %s", exc)
        raise SystemExit(1) from exc
    except (RuntimeError, ValueError) as exc:
        logger.error("Import not started: %s", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
