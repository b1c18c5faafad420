from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Iterable

from rdflib import Graph

from .aggregate import ReportModel, SuiteSummary, aggregate, build_rows
from .catalog import MetadataCatalog
from .collector import OutcomeCollector, OutcomeListener
from .config import ReportSettings
from .dashboard import DashboardRenderer
from .errors import ArtifactWriteError
from .feed import SuiteResult, ingest
from .graph import AssertionGraphBuilder
from .model import ExecutionOutcome
from .resolver import Resolution, resolve
from .serialize import ArtifactResult, write_artifacts

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReportRun:
    model: ReportModel
    graph: Graph
    dashboard: str
    resolution: Resolution = field(default_factory=Resolution)
    artifacts: tuple[ArtifactResult, ...] = ()

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.artifacts)

    def failed_artifacts(self) -> list[ArtifactResult]:
        return [result for result in self.artifacts if not result.ok]


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class ReportEngine:
    """One reporting run: collect outcomes, resolve coverage, aggregate, render, write.

    An engine is used for a single run; its collector cannot be reopened.
    """

    def __init__(
        self,
        catalog: MetadataCatalog,
        settings: ReportSettings | None = None,
        *,
        generated_at: datetime | None = None,
        listeners: Iterable[OutcomeListener] = (),
    ) -> None:
        self.catalog = catalog
        self.settings = settings or ReportSettings()
        self.generated_at = generated_at or utc_now()
        self.collector = OutcomeCollector(catalog, listeners=listeners)
        self._suites: list[SuiteSummary] = []
        self._resolution: Resolution | None = None

    def record(self, test_id: str, outcome: ExecutionOutcome) -> None:
        self.collector.record(test_id, outcome)

    def ingest(self, suites: Iterable[SuiteResult]) -> int:
        suites = list(suites)
        for suite in suites:
            self._suites.append(
                SuiteSummary(
                    name=suite.name,
                    parameters=dict(suite.parameters),
                    included_groups=suite.included_groups,
                    excluded_groups=suite.excluded_groups,
                )
            )
        return ingest(self.collector, suites)

    def close(self) -> None:
        self.collector.close()

    def resolve(self) -> Resolution:
        if self._resolution is None:
            self._resolution = resolve(self.collector)
        return self._resolution

    def _scoped_groups(self) -> tuple[list[str], list[str]]:
        included = list(self.settings.included_groups)
        excluded = list(self.settings.excluded_groups)
        for suite in self._suites:
            included.extend(suite.included_groups)
            excluded.extend(suite.excluded_groups)
        return list(dict.fromkeys(included)), list(dict.fromkeys(excluded))

    def aggregate(self) -> ReportModel:
        resolution = self.resolve()
        included, excluded = self._scoped_groups()
        model = aggregate(
            self.catalog,
            build_rows(self.catalog, self.collector, resolution),
            title=self.settings.report_title,
            reported_levels=self.settings.levels,
            group_info=self.settings.group_info(),
            unresolved=resolution.unresolved,
            suites=self._suites,
            included_groups=included,
            excluded_groups=excluded,
            generated_at=self.generated_at,
        )
        totals = model.totals
        logger.info(
            "Aggregated %d tests: %d passed, %d failed, %d skipped, %d unresolved",
            totals.total,
            totals.passed,
            totals.failed,
            totals.skipped,
            totals.unresolved,
        )
        return model

    def build(self) -> ReportRun:
        if not self.collector.closed:
            self.close()
        model = self.aggregate()
        graph = AssertionGraphBuilder(
            subject=self.settings.subject,
            assertor=self.settings.assertor,
            generated_at=self.generated_at,
        ).build(model)
        dashboard = DashboardRenderer(self.settings).render(model)
        return ReportRun(model=model, graph=graph, dashboard=dashboard, resolution=self.resolve())

    def write(self, run: ReportRun) -> ReportRun:
        results = write_artifacts(
            self.settings.output_dir,
            graphs={self.settings.earl_basename: run.graph},
            documents={self.settings.dashboard_filename: run.dashboard},
        )
        run = replace(run, artifacts=tuple(results))
        failures = run.failed_artifacts()
        if failures:
            raise ArtifactWriteError(failures)
        return run

    def run(self, suites: Iterable[SuiteResult] = (), *, write: bool = True) -> ReportRun:
        logger.info("Collecting outcomes")
        self.ingest(suites)
        self.close()
        logger.info("Resolving indirect coverage")
        self.resolve()
        report = self.build()
        if write:
            report = self.write(report)
        return report
