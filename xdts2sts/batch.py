"""
Batch conversion of .xdts/.tdts files.

Inputs
  - loose files: converted next to the input (or into a forced output dir)
  - folders: every .xdts/.tdts directly inside (no recursion) is converted
    into ``config.output_dir``

Each file is read, parsed, encoded and written on its own worker. A file
either produces all of its outputs or none; failures are collected into the
report instead of stopping the batch.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple, Union

from .config import ConvertConfig
from .dts_parser import load_timesheet
from .errors import ConversionError, OutputClashError
from .logging_setup import log_context
from .sts_writer import encode, encode_cut
from .timesheet import Timesheet

logger = logging.getLogger(__name__)

TIMESHEET_EXTENSIONS = (".xdts", ".tdts")
OUTPUT_EXTENSION = ".sts"
MAX_NAME_CHARS = 100
_UNSAFE_NAME_CHARS = '/\\:<>"|?*'


@dataclass
class FileResult:
    source: Path
    outputs: List[Path] = field(default_factory=list)
    error: Optional[Exception] = None
    skipped: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.skipped


@dataclass
class BatchReport:
    results: List[FileResult] = field(default_factory=list)

    @property
    def succeeded(self) -> List[FileResult]:
        return [r for r in self.results if r.ok]

    @property
    def failures(self) -> List[FileResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def outputs(self) -> List[Path]:
        return [p for r in self.results for p in r.outputs]


def is_timesheet_file(path: Path) -> bool:
    return path.suffix.lower() in TIMESHEET_EXTENSIONS


def find_timesheet_files(folder: Union[str, Path]) -> List[Path]:
    folder = Path(folder)
    return sorted(p for p in folder.iterdir() if p.is_file() and is_timesheet_file(p))


def collect_inputs(
    paths: Iterable[Union[str, Path]],
    output_dir: Union[str, Path],
    forced_dir: Union[str, Path, None] = None,
) -> List[Tuple[Path, Path]]:
    """Return ``(input file, output directory)`` pairs in discovery order."""
    jobs: List[Tuple[Path, Path]] = []
    seen = set()

    def add(src: Path, dst: Path) -> None:
        key = src.resolve()
        if key not in seen:
            seen.add(key)
            jobs.append((src, dst))

    for raw in paths:
        p = Path(raw)
        if not p.exists():
            logger.warning("Path does not exist, skipping: %s", p)
        elif p.is_file():
            if is_timesheet_file(p):
                add(p, Path(forced_dir) if forced_dir else p.parent)
            else:
                logger.warning("Not an .xdts/.tdts file, skipping: %s", p)
        elif p.is_dir():
            found = find_timesheet_files(p)
            if not found:
                logger.warning("No .xdts or .tdts files in %s", p)
            for f in found:
                add(f, Path(forced_dir) if forced_dir else Path(output_dir))
    return jobs


def safe_name(name: str) -> str:
    for ch in _UNSAFE_NAME_CHARS:
        name = name.replace(ch, "_")
    return name[:MAX_NAME_CHARS]


def plan_output_stems(jobs: List[Tuple[Path, Path]]) -> List[Tuple[str, Optional[Path]]]:
    """Pick an output stem per job and report clashes.

    Sources sharing a stem but not an extension in one output directory
    (``a.xdts`` and ``a.tdts``) get the extension added: ``a_xdts``,
    ``a_tdts``. A stem that is still taken after that is returned with the
    source that claimed it first.
    """
    def key(dst: Path, stem: str) -> Tuple[Path, str]:
        return dst.resolve(), stem.lower()

    suffixes: Dict[Tuple[Path, str], Set[str]] = {}
    for src, dst in jobs:
        suffixes.setdefault(key(dst, src.stem), set()).add(src.suffix.lower())

    claimed: Dict[Tuple[Path, str], Path] = {}
    plan: List[Tuple[str, Optional[Path]]] = []
    for src, dst in jobs:
        stem = src.stem
        if len(suffixes[key(dst, stem)]) > 1:
            stem = f"{stem}_{src.suffix.lstrip('.').lower()}"
        k = key(dst, stem)
        plan.append((stem, claimed.get(k)))
        claimed.setdefault(k, src)
    return plan


def render_outputs(
    source: Path, sheet: Timesheet, out_dir: Path, split_cuts: bool = False, stem: Optional[str] = None
) -> List[Tuple[Path, bytes]]:
    stem = stem or source.stem
    if not split_cuts:
        return [(out_dir / f"{stem}{OUTPUT_EXTENSION}", encode(sheet))]
    if len(sheet.cuts) == 1:
        return [(out_dir / f"{stem}{OUTPUT_EXTENSION}", encode_cut(sheet.cuts[0]))]
    return [
        (out_dir / f"{stem}_{i:03d}_{safe_name(f'{source.name}->{cut.identifier}')}{OUTPUT_EXTENSION}",
         encode_cut(cut))
        for i, cut in enumerate(sheet.cuts)
    ]


def _write_atomic(target: Path, data: bytes) -> None:
    fd, tmp = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, target)
    except OSError:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def convert_file(
    source: Union[str, Path], out_dir: Union[str, Path], split_cuts: bool = False, stem: Optional[str] = None
) -> List[Path]:
    """Parse, encode and write one file. Raises on failure; nothing is left behind."""
    source, out_dir = Path(source), Path(out_dir)
    try:
        sheet = load_timesheet(source)
        payloads = render_outputs(source, sheet, out_dir, split_cuts, stem)
    except ConversionError as e:
        e.with_source(source)
        raise

    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    try:
        for target, data in payloads:
            _write_atomic(target, data)
            written.append(target)
    except OSError:
        for p in written:
            p.unlink()
        raise
    return written


def _run_one(
    source: Path, out_dir: Path, split_cuts: bool, stem: str, cancel: Optional[threading.Event]
) -> FileResult:
    with log_context(source=source.name):
        if cancel is not None and cancel.is_set():
            logger.info("Cancelled before start")
            return FileResult(source, skipped=True)
        try:
            outputs = convert_file(source, out_dir, split_cuts, stem)
        except (ConversionError, OSError) as e:
            logger.error("Conversion failed: %s", e)
            return FileResult(source, error=e)
        logger.info("Wrote %d STS file(s)", len(outputs))
        return FileResult(source, outputs=outputs)


def _clash(source: Path, out_dir: Path, stem: str, first: Path) -> FileResult:
    error = OutputClashError(
        f"output {stem}{OUTPUT_EXTENSION} in {out_dir} is already taken by {first}", source=str(source)
    )
    with log_context(source=source.name):
        logger.error("Conversion failed: %s", error)
    return FileResult(source, error=error)


def run_batch(
    paths: Iterable[Union[str, Path]],
    config: Optional[ConvertConfig] = None,
    out_dir: Union[str, Path, None] = None,
    on_result: Optional[Callable[[FileResult], None]] = None,
    cancel: Optional[threading.Event] = None,
) -> BatchReport:
    """Convert every timesheet found under ``paths``.

    ``out_dir`` forces a single destination for every input. ``on_result``
    is called from the calling thread as each file finishes. Setting
    ``cancel`` stops files that have not started yet. A file whose output
    name is already taken by an earlier input fails without being read.
    """
    config = config or ConvertConfig()
    jobs = collect_inputs(paths, config.output_dir, out_dir)
    results: List[Optional[FileResult]] = [None] * len(jobs)
    if not jobs:
        return BatchReport()

    logger.debug("Converting %d file(s) with %d worker(s)", len(jobs), config.workers)
    with ThreadPoolExecutor(max_workers=config.workers) as pool:
        futures = {}
        for i, ((src, dst), (stem, first)) in enumerate(zip(jobs, plan_output_stems(jobs))):
            if first is not None:
                results[i] = _clash(src, dst, stem, first)
                if on_result is not None:
                    on_result(results[i])
                continue
            futures[pool.submit(_run_one, src, dst, config.split_cuts, stem, cancel)] = i
        for fut in as_completed(futures):
            result = fut.result()
            results[futures[fut]] = result
            if on_result is not None:
                on_result(result)

    return BatchReport([r for r in results if r is not None])
