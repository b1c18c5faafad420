from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable

from rdflib import Graph

from .aggregate import ReportModel, aggregate, build_rows
from .catalog import MetadataCatalog, default_catalog
from .config import ReportSettings
from .dashboard import DashboardRenderer
from .engine import ReportEngine, ReportRun
from .errors import ArtifactWriteError
from .feed import SuiteResult
from .graph import AssertionGraphBuilder
from .listener import ConsoleListener
from .serialize import ArtifactResult, write_artifacts


def run_report(
    catalog: MetadataCatalog | None = None,
    suites: Iterable[SuiteResult] = (),
    settings: ReportSettings | None = None,
    generated_at: datetime | None = None,
    *,
    write: bool = True,
    progress: bool = False,
) -> ReportRun:
    """
    Produce the EARL report and the dashboard for one set of suite results.

    With ``write=False`` nothing touches the file system; the returned run
    still carries the graph and the rendered HTML.
    """

    engine = ReportEngine(
        catalog if catalog is not None else default_catalog(),
        settings,
        generated_at=generated_at,
        listeners=[ConsoleListener()] if progress else (),
    )
    return engine.run(suites, write=write)


def _catalog_model(catalog: MetadataCatalog, settings: ReportSettings) -> ReportModel:
    return aggregate(
        catalog,
        build_rows(catalog, None, None),
        title=settings.report_title,
        reported_levels=settings.levels,
        group_info=settings.group_info(),
    )


def _checked(results: list[ArtifactResult]) -> list[ArtifactResult]:
    failures = [result for result in results if not result.ok]
    if failures:
        raise ArtifactWriteError(failures)
    return results


def build_manifest(
    catalog: MetadataCatalog | None = None,
    settings: ReportSettings | None = None,
    *,
    out_dir: Path | None = None,
) -> tuple[Graph, list[ArtifactResult]]:
    """
    The catalog manifest graph, without any execution results.

    Written as Turtle and JSON-LD when ``out_dir`` is given.
    """

    settings = settings or ReportSettings()
    catalog = catalog if catalog is not None else default_catalog()
    graph = AssertionGraphBuilder(subject=settings.subject, assertor=settings.assertor).build_manifest(
        _catalog_model(catalog, settings)
    )
    if out_dir is None:
        return graph, []
    return graph, _checked(write_artifacts(out_dir, graphs={settings.manifest_basename: graph}))


def build_coverage_report(
    catalog: MetadataCatalog | None = None,
    settings: ReportSettings | None = None,
    *,
    out_dir: Path | None = None,
) -> tuple[str, list[ArtifactResult]]:
    settings = settings or ReportSettings()
    catalog = catalog if catalog is not None else default_catalog()
    html = DashboardRenderer(settings).render_coverage(_catalog_model(catalog, settings))
    if out_dir is None:
        return html, []
    return html, _checked(write_artifacts(out_dir, documents={settings.coverage_filename: html}))
