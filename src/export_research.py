"""
Research Export: command-line dataset dump
===========================================
Loads the analysable rows from research_data_complete and writes them in
one of the export formats.

Usage:
    python export_research.py                          # CSV to stdout
    python export_research.py --format json -o data.json
    python export_research.py --format academic --start 2025-01-01
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("export_research")

from research_exports import EXPORT_FORMATS, get_exporter
from routes.helpers import fetch_research_records


def run_export(fmt: str, start: str | None = None, end: str | None = None,
               output: str | None = None) -> int:
    """Export the dataset; returns a process exit code."""
    exporter = get_exporter(fmt)
    try:
        records = fetch_research_records(start, end)
    except Exception as e:
        log.error("Could not load research data: %s", e)
        return 1

    body = exporter(records)
    if output:
        Path(output).write_text(body + "\n", encoding="utf-8")
        log.info("Wrote %d rows as %s -> %s", len(records), fmt, output)
    else:
        sys.stdout.write(body + "\n")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Astrology research data export")
    parser.add_argument("--format", choices=EXPORT_FORMATS, default="csv",
                        help="Export format (default: csv)")
    parser.add_argument("--start", help="First entry date to include (YYYY-MM-DD)")
    parser.add_argument("--end", help="Last entry date to include (YYYY-MM-DD)")
    parser.add_argument("-o", "--output", help="Write to this file instead of stdout")
    args = parser.parse_args()

    sys.exit(run_export(args.format, args.start, args.end, args.output))


if __name__ == "__main__":
    main()
