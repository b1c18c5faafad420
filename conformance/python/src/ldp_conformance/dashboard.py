from __future__ import annotations

import logging
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

from . import NAME, SPEC_URI, __version__
from .aggregate import UNRESOLVED, ReportModel, TestRow
from .config import ReportSettings
from .identity import anchor, group_anchor, short_group
from .model import UNCLASSIFIED, LEVEL_ORDER

logger = logging.getLogger(__name__)

DASHBOARD_TEMPLATE = "dashboard.html"
COVERAGE_TEMPLATE = "coverage.html"


def _levels(row: TestRow) -> str:
    return ", ".join(level.value for level in row.descriptor.sorted_levels()) or UNCLASSIFIED


def _outcome_label(row: TestRow) -> str:
    if row.outcome is None:
        return "unresolved" if row.descriptor.is_indirect else "not reported"
    return row.state


def _create_environment() -> Environment:
    env = Environment(
        loader=PackageLoader("ldp_conformance", "templates"),
        autoescape=select_autoescape(["html", "xml"]),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )
    env.filters["anchor"] = anchor
    env.filters["group_anchor"] = group_anchor
    env.filters["short_group"] = short_group
    env.filters["levels"] = _levels
    env.filters["outcome_label"] = _outcome_label
    return env


class DashboardRenderer:
    """Render report models to HTML documents.

    Output depends only on the model and the settings passed in, so two
    renders of the same run are byte-identical.
    """

    def __init__(self, settings: ReportSettings | None = None) -> None:
        self.settings = settings or ReportSettings()
        self.env = _create_environment()

    def _context(self, model: ReportModel) -> dict[str, Any]:
        levels = [level for level in model.reported_levels if level in model.levels]
        if UNCLASSIFIED in model.levels:
            levels.append(UNCLASSIFIED)
        return {
            "model": model,
            "settings": self.settings,
            "suite_name": NAME,
            "spec_uri": SPEC_URI,
            "version": __version__,
            "summary_levels": levels,
            "all_levels": [level.value for level in LEVEL_ORDER],
            "generated_at": model.generated_at.isoformat() if model.generated_at is not None else None,
            "unresolved_state": UNRESOLVED,
        }

    def render(self, model: ReportModel) -> str:
        html = self.env.get_template(DASHBOARD_TEMPLATE).render(**self._context(model))
        logger.debug("Rendered dashboard for %d tests", len(model.rows))
        return html

    def render_coverage(self, model: ReportModel) -> str:
        return self.env.get_template(COVERAGE_TEMPLATE).render(**self._context(model))


def render_dashboard(model: ReportModel, settings: ReportSettings | None = None) -> str:
    return DashboardRenderer(settings).render(model)


def render_coverage(model: ReportModel, settings: ReportSettings | None = None) -> str:
    return DashboardRenderer(settings).render_coverage(model)
