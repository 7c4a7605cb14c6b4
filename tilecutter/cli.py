"""Command line entry point: cut every config found under an input path.

Each ``<name>.yaml`` config is paired with ``<name>.png`` beside it, or
``<name>.dmi`` when reconstructing a precut sheet.  Outputs land next to the
input, or under ``--output`` mirroring the input tree.

Usage:
  tilecutter walls/                 # every .yaml/.yml under walls/
  tilecutter walls/window.yaml -o out/
  tilecutter 'walls/*.yaml' -j 4 --flatten
  tilecutter walls/ -d slice,config # debug logging + debug images
"""

from __future__ import annotations

import argparse
import logging
import multiprocessing
import sys
from pathlib import Path
from typing import NamedTuple

from tilecutter import __version__
from tilecutter.config import load_config
from tilecutter.dmi import save_dmi
from tilecutter.errors import InputNotFoundError, TilecutterError
from tilecutter.icon import Icon, NamedIcon, OutputText
from tilecutter.log_utils import setup_logging
from tilecutter.operations import OperationMode
from tilecutter.templates import FileResolver, MissingDirResolver, TemplateResolver

log = logging.getLogger("tilecutter.cli")

CONFIG_SUFFIXES = (".yaml", ".yml")


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


def resolve_inputs(raw: Path, exclude: Path | None = None) -> tuple[Path, list[Path]]:
    """Resolve a path argument to ``(root, config files)``.

    *root* is the directory output paths are mirrored relative to.  When
    walking a directory, configs under *exclude* (the templates) are skipped.
    """
    if raw.is_dir():
        skip = exclude.resolve() if exclude is not None else None
        found = sorted(
            p
            for p in raw.rglob("*")
            if p.is_file()
            and p.suffix in CONFIG_SUFFIXES
            and (skip is None or skip not in p.resolve().parents)
        )
        return raw, found

    if "*" in raw.name or "?" in raw.name:
        found = sorted(p for p in raw.parent.glob(raw.name) if p.is_file())
        return raw.parent, found

    if not raw.exists():
        raise FileNotFoundError(f"file not found: {raw}")
    return raw.parent, [raw]


# ---------------------------------------------------------------------------
# Per-file processing
# ---------------------------------------------------------------------------


class Job(NamedTuple):
    config_path: Path
    root: Path
    output: Path | None
    flatten: bool
    templates: Path
    debug: bool


class FileResult(NamedTuple):
    path: Path
    outputs: list[Path]
    error: str | None = None


def output_path(job: Job, named: NamedIcon, prefix: str) -> Path:
    relative = named.build_path(job.config_path, prefix)
    if job.flatten:
        relative = Path(relative.name)
    else:
        relative = job.config_path.parent.relative_to(job.root) / relative
    base = job.output if job.output is not None else job.root
    return base / relative


def write_output(named: NamedIcon, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(named.image, Icon):
        save_dmi(named.image, path)
    elif isinstance(named.image, OutputText):
        path.write_text(named.image.text, encoding="utf-8")
    else:
        named.image.save(path, format="PNG")


def process_file(job: Job) -> list[Path]:
    """Cut one config + image pair and write its outputs."""
    path = job.config_path
    log.info("Processing %s", path)

    if job.templates.is_dir():
        resolver: TemplateResolver = FileResolver(job.templates)
    else:
        resolver = MissingDirResolver(job.templates)
    config = load_config(path, resolver)

    operation = config.operation
    image_path = path.with_suffix(operation.input_suffix)
    if not image_path.is_file():
        raise InputNotFoundError(path.name, image_path.name, path.parent)
    img = operation.load(image_path)

    mode = OperationMode.DEBUG if job.debug else OperationMode.STANDARD
    outputs = operation.do_operation(img, mode)

    written = []
    for named in outputs:
        out = output_path(job, named, config.file_prefix)
        log.debug("Writing %s", out)
        write_output(named, out)
        written.append(out)
    return written


def format_error(exc: BaseException) -> str:
    """Render an error as a summary line plus its reasons and help hint."""
    lines = [f"Error: {exc}"]
    if isinstance(exc, TilecutterError):
        lines.extend(f"  - {reason}" for reason in exc.reasons())
        hint = exc.helptext()
        if hint:
            lines.append(f"  hint: {hint}")
    return "\n".join(lines)


def _run_job(job: Job) -> FileResult:
    # Errors are rendered to text here so results always pickle.
    try:
        return FileResult(job.config_path, process_file(job))
    except (TilecutterError, FileNotFoundError, ValueError) as exc:
        return FileResult(job.config_path, [], format_error(exc))
    except OSError as exc:
        return FileResult(job.config_path, [], f"Error: {exc}")
    except Exception as exc:
        log.debug("Unexpected failure in %s", job.config_path, exc_info=True)
        return FileResult(
            job.config_path, [], f"Error: unexpected {type(exc).__name__}: {exc}"
        )


def run_jobs(jobs: list[Job], workers: int) -> list[FileResult]:
    if workers <= 1 or len(jobs) <= 1:
        return [_run_job(job) for job in jobs]
    with multiprocessing.Pool(processes=min(workers, len(jobs))) as pool:
        return list(pool.imap_unordered(_run_job, jobs))


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="tilecutter",
        description="Cut smoothing tile sheets into BYOND DMI icons.",
        epilog=__doc__.split("Usage:", 1)[1],
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument(
        "input",
        type=Path,
        help="Config (.yaml/.yml), directory searched recursively, or glob",
    )
    p.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output directory (default: next to each input)",
    )
    p.add_argument(
        "-f",
        "--flatten",
        action="store_true",
        help="Write every output directly into the output directory",
    )
    p.add_argument(
        "-t",
        "--templates",
        type=Path,
        default=Path("templates"),
        help="Template directory (default: templates)",
    )
    p.add_argument(
        "-d",
        "--debug",
        nargs="?",
        const="all",
        default=None,
        metavar="TOPICS",
        help="Debug logging for comma separated topics (default: all), plus debug images",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Log progress")
    p.add_argument("--color-logs", action="store_true", help="Colour console logs")
    p.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")
    p.add_argument(
        "-j",
        "--jobs",
        type=int,
        default=1,
        help="Number of files processed in parallel (default: 1)",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    level = logging.INFO if args.verbose else logging.WARNING
    setup_logging(level, args.color_logs, args.debug, args.log_file)

    try:
        root, inputs = resolve_inputs(args.input, exclude=args.templates)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not inputs:
        print(f"Error: no .yaml/.yml configs found in {args.input}", file=sys.stderr)
        return 1
    print(f"Found {len(inputs)} files!")

    jobs = [
        Job(
            config_path=path,
            root=root,
            output=args.output,
            flatten=args.flatten,
            templates=args.templates,
            debug=args.debug is not None,
        )
        for path in inputs
    ]
    results = run_jobs(jobs, args.jobs)

    failures = [r for r in results if r.error is not None]
    for result in sorted(failures):
        print(f"{result.path}:\n{result.error}", file=sys.stderr)

    written = sum(len(r.outputs) for r in results)
    print(f"Processed {len(results) - len(failures)}/{len(results)} files ({written} outputs)")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
