"""
XDTS/TDTS -> STS converter.

Usage:
  xdts2sts [options] PATH...

  Drop .xdts/.tdts files or folders onto the program, or pass them here.
    - files are converted next to the original
    - folders are scanned (not recursively) and converted into the
      output directory ('converted_sts' unless configured)

Options:
  --split           write one legacy sheet .sts per cut instead of one
                    container per source file
  --workers N       number of files converted in parallel
  --out DIR         write every output into DIR
  --config FILE     read settings from a TOML file
  -v, --verbose     debug logging
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

from rich.console import Console

from .batch import BatchReport, FileResult, run_batch
from .config import ConfigError, load_config
from .logging_setup import configure_logging

logger = logging.getLogger(__name__)

MAX_LISTED_OUTPUTS = 10


def _print_result(console: Console, result: FileResult) -> None:
    if result.skipped:
        console.print(f"[yellow]-[/] {result.source.name} (cancelled)")
    elif result.error is not None:
        console.print(f"[red]✗[/] {result.source.name}")
    else:
        console.print(f"[green]✓[/] {result.source.name} ({len(result.outputs)} STS file(s))")


def _print_summary(console: Console, report: BatchReport) -> None:
    console.rule("Done")
    console.print(f"Converted {len(report.succeeded)} of {len(report.results)} source file(s)")
    console.print(f"Wrote {len(report.outputs)} STS file(s)")
    for path in report.outputs[:MAX_LISTED_OUTPUTS]:
        console.print(f"  - {path.name} ({path.stat().st_size:,} bytes)")
    if len(report.outputs) > MAX_LISTED_OUTPUTS:
        console.print(f"  ... and {len(report.outputs) - MAX_LISTED_OUTPUTS} more")
    if report.failures:
        console.print(f"[red]{len(report.failures)} file(s) failed:[/]")
        for r in report.failures:
            console.print(f"  - {r.source}: {r.error}", markup=False, highlight=False)


def main(argv: List[str], console: Optional[Console] = None) -> int:
    console = console or Console()
    args = argv[1:]
    paths: List[str] = []
    split: Optional[bool] = None
    workers: Optional[str] = None
    out_dir: Optional[str] = None
    config_path: Optional[str] = None
    verbose = False

    while args:
        a = args.pop(0)
        if a == "--split":
            split = True
        elif a in ("-v", "--verbose"):
            verbose = True
        elif a in ("--workers", "--out", "--config"):
            if not args:
                console.print(f"{a} needs a value")
                return 2
            value = args.pop(0)
            if a == "--workers":
                workers = value
            elif a == "--out":
                out_dir = value
            else:
                config_path = value
        elif a in ("-h", "--help"):
            console.print(__doc__.strip(), markup=False, highlight=False)
            return 0
        else:
            paths.append(a)

    if not paths:
        console.print(__doc__.strip(), markup=False, highlight=False)
        return 2

    try:
        config = load_config(config_path)
        if workers is not None:
            config.workers = int(workers)
            if config.workers < 1:
                raise ValueError(workers)
    except ConfigError as e:
        console.print(f"Configuration error: {e}", markup=False)
        return 2
    except ValueError:
        console.print(f"--workers expects a positive integer, got {workers!r}", markup=False)
        return 2
    if split is not None:
        config.split_cuts = split

    configure_logging("DEBUG" if verbose else config.log_level, log_file=config.log_file)

    report = run_batch(paths, config, out_dir=out_dir, on_result=lambda r: _print_result(console, r))
    logger.debug("Batch finished: %d ok, %d failed", len(report.succeeded), len(report.failures))
    if not report.results:
        console.print("No .xdts or .tdts files found.")
        return 1
    _print_summary(console, report)
    return 1 if report.failures else 0


def cli() -> int:
    return main(sys.argv)


if __name__ == "__main__":
    raise SystemExit(cli())
