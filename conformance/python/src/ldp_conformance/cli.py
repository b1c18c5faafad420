from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from rdflib.plugins.parsers.notation3 import BadSyntax

from . import SPEC_URI, __version__
from .errors import ArtifactWriteError, ReportError
from .logging import configure_logging

EXIT_OK = 0
EXIT_WRITE_FAILED = 1
EXIT_INVALID = 2


def _parse_timestamp(raw: str) -> datetime:
    try:
        value = datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"Invalid --timestamp (expected ISO 8601): {raw}") from exc
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _overrides(args: argparse.Namespace) -> list[dict[str, Any]]:
    out: dict[str, Any] = {}
    if getattr(args, "out", None):
        out["output_dir"] = args.out
    return [out] if out else []


def _load_inputs(args: argparse.Namespace):
    from .catalog import default_catalog, load_catalog
    from .config import load_settings

    catalog = load_catalog(Path(args.catalog)) if args.catalog else default_catalog()
    settings = load_settings(Path(args.config) if args.config else None, _overrides(args))
    return catalog, settings


def _report_failures(exc: ArtifactWriteError) -> int:
    sys.stderr.write(f"{exc}\n")
    for failure in exc.failures:
        sys.stderr.write(f"- {failure.path}: {failure.error}\n")
    return EXIT_WRITE_FAILED


def _write_summary(run) -> None:
    totals = run.model.totals
    sys.stdout.write(
        f"tests={totals.total} passed={totals.passed} failed={totals.failed} "
        f"skipped={totals.skipped} unresolved={totals.unresolved}\n"
    )
    for result in run.artifacts:
        sys.stdout.write(f"Wrote report: {result.path}\n")


def _cmd_report(args: argparse.Namespace) -> int:
    from .engine import ReportEngine
    from .feed import load_junit_results, load_results
    from .listener import ConsoleListener

    catalog, settings = _load_inputs(args)
    suites = load_junit_results(Path(args.results)) if args.junit else load_results(Path(args.results))
    engine = ReportEngine(
        catalog,
        settings,
        generated_at=args.timestamp,
        listeners=[ConsoleListener()] if args.progress else (),
    )
    run = engine.run(suites)
    _write_summary(run)
    return EXIT_OK


def _cmd_manifest(args: argparse.Namespace) -> int:
    from .api import build_manifest

    catalog, settings = _load_inputs(args)
    _, results = build_manifest(catalog, settings, out_dir=settings.output_dir)
    for result in results:
        sys.stdout.write(f"Wrote manifest: {result.path}\n")
    return EXIT_OK


def _cmd_coverage(args: argparse.Namespace) -> int:
    from .api import build_coverage_report

    catalog, settings = _load_inputs(args)
    _, results = build_coverage_report(catalog, settings, out_dir=settings.output_dir)
    for result in results:
        sys.stdout.write(f"Wrote coverage report: {result.path}\n")
    return EXIT_OK


def _cmd_convert(args: argparse.Namespace) -> int:
    from .serialize import convert_turtle

    source = Path(args.file)
    if not source.is_file():
        sys.stderr.write(f"No such file: {source}\n")
        return EXIT_INVALID
    try:
        result = convert_turtle(source, Path(args.output) if args.output else None)
    except BadSyntax as exc:
        sys.stderr.write(f"Invalid Turtle in {source}: {exc}\n")
        return EXIT_INVALID
    if not result.ok:
        raise ArtifactWriteError([result])
    sys.stdout.write(f"Wrote JSON-LD: {result.path}\n")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="ldp-conformance")
    parser.add_argument("--version", action="version", version=f"ldp-conformance {__version__} ({SPEC_URI})")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_common_flags(p: argparse.ArgumentParser) -> None:
        p.add_argument("--catalog", type=str, help="Catalog file (YAML or JSON); defaults to the built-in LDP catalog")
        p.add_argument("--config", type=str, help="Report configuration file (YAML or JSON)")
        p.add_argument("--out", type=str, help="Output directory (overrides the configuration)")
        p.add_argument("-v", "--verbose", action="store_true", help="Log debug details")

    report = sub.add_parser("report", help="Build the EARL report and the HTML dashboard from test results")
    add_common_flags(report)
    report.add_argument("--results", required=True, help="Result feed (JSON, or JUnit XML with --junit)")
    report.add_argument("--junit", action="store_true", help="Read --results as JUnit XML")
    report.add_argument("--timestamp", type=_parse_timestamp, help="Report date (ISO 8601); defaults to now")
    report.add_argument("--progress", action="store_true", help="Print one line per recorded outcome")
    report.set_defaults(handler=_cmd_report)

    manifest = sub.add_parser("manifest", help="Write the EARL test manifest for the catalog")
    add_common_flags(manifest)
    manifest.set_defaults(handler=_cmd_manifest)

    coverage = sub.add_parser("coverage", help="Write the HTML test-case coverage report for the catalog")
    add_common_flags(coverage)
    coverage.set_defaults(handler=_cmd_coverage)

    convert = sub.add_parser("convert", help="Convert a Turtle file to JSON-LD")
    convert.add_argument("file")
    convert.add_argument("--output", type=str, help="Target file; defaults to FILE with a .jsonld suffix")
    convert.add_argument("-v", "--verbose", action="store_true", help="Log debug details")
    convert.set_defaults(handler=_cmd_convert)

    args = parser.parse_args(argv)
    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        return args.handler(args)
    except ArtifactWriteError as exc:
        return _report_failures(exc)
    except ReportError as exc:
        sys.stderr.write(f"error: {exc}\n")
        return EXIT_INVALID


if __name__ == "__main__":
    raise SystemExit(main())
