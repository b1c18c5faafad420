"""Readers for the outcome feed produced by a test-execution driver.

Two formats are accepted: the native JSON feed (validated against
``results.schema.json``) and JUnit XML as written by most runners. Both are
reduced to :class:`SuiteResult` objects and then fed into an
:class:`~ldp_conformance.collector.OutcomeCollector` with :func:`ingest`.
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from .collector import OutcomeCollector
from .errors import FeedFormatError
from .identity import canonical_id
from .model import ExecutionOutcome, OutcomeStatus, RequirementLevel, ordered_levels
from .schemas import registry

logger = logging.getLogger(__name__)

_SECTIONS = (
    ("passed", OutcomeStatus.PASS),
    ("failed", OutcomeStatus.FAIL),
    ("skipped", OutcomeStatus.SKIP),
)


@dataclass(frozen=True, slots=True)
class FeedEntry:
    group: str
    method: str
    status: OutcomeStatus
    levels: tuple[str, ...] = ()
    message: str | None = None
    duration_ms: int | None = None
    parameters: tuple[str, ...] = ()

    @property
    def test_id(self) -> str:
        return canonical_id(self.group, self.method)

    def to_outcome(self) -> ExecutionOutcome:
        return ExecutionOutcome(
            test_id=self.test_id,
            status=self.status,
            message=self.message,
            duration_ms=self.duration_ms,
            parameters=self.parameters,
        )

    @staticmethod
    def from_dict(data: dict[str, Any], status: OutcomeStatus) -> "FeedEntry":
        return FeedEntry(
            group=data["group"],
            method=data["method"],
            status=status,
            levels=tuple(data.get("levels") or ()),
            message=data.get("message"),
            duration_ms=data.get("duration_ms"),
            parameters=tuple(str(p) for p in data.get("parameters") or ()),
        )


@dataclass(frozen=True, slots=True)
class SuiteResult:
    name: str
    entries: tuple[FeedEntry, ...] = ()
    included_groups: tuple[str, ...] = ()
    excluded_groups: tuple[str, ...] = ()
    parameters: dict[str, str] = field(default_factory=dict)

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for e in self.entries if e.status is status)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "SuiteResult":
        entries: list[FeedEntry] = []
        for key, status in _SECTIONS:
            entries.extend(FeedEntry.from_dict(item, status) for item in data.get(key) or [])
        return SuiteResult(
            name=data["name"],
            entries=tuple(entries),
            included_groups=tuple(data.get("included_groups") or ()),
            excluded_groups=tuple(data.get("excluded_groups") or ()),
            parameters={str(k): str(v) for k, v in (data.get("parameters") or {}).items()},
        )


def parse_results(document: Any, *, source: str = "<results>") -> list[SuiteResult]:
    errors = registry().validate(document, schema="results.schema.json")
    if errors:
        raise FeedFormatError(f"Invalid result feed {source}", errors=errors)
    return [SuiteResult.from_dict(suite) for suite in document["suites"]]


def load_results(path: Path) -> list[SuiteResult]:
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise FeedFormatError(f"Cannot read result feed {path}: {exc}") from exc
    return parse_results(document, source=str(path))


def _duration_ms(raw: str | None) -> int | None:
    if raw is None or not raw.strip():
        return None
    try:
        return max(0, round(float(raw) * 1000))
    except ValueError:
        return None


def _junit_entry(case: ET.Element) -> FeedEntry:
    classname = case.get("classname")
    name = case.get("name")
    if not classname or not name:
        raise FeedFormatError("JUnit <testcase> requires both 'classname' and 'name'")

    status = OutcomeStatus.PASS
    message: str | None = None
    for tag, mapped in (("failure", OutcomeStatus.FAIL), ("error", OutcomeStatus.FAIL), ("skipped", OutcomeStatus.SKIP)):
        child = case.find(tag)
        if child is not None:
            status = mapped
            message = child.get("message") or (child.text or "").strip() or None
            break

    # Parameterised runners append "[...]" to the method name.
    method, _, params = name.partition("[")
    parameters = tuple(p.strip() for p in params.rstrip("]").split(",") if p.strip()) if params else ()
    return FeedEntry(
        group=classname,
        method=method.strip(),
        status=status,
        message=message,
        duration_ms=_duration_ms(case.get("time")),
        parameters=parameters,
    )


def parse_junit(text: str, *, source: str = "<junit>") -> list[SuiteResult]:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise FeedFormatError(f"Invalid JUnit XML {source}: {exc}") from exc

    if root.tag == "testsuite":
        suites = [root]
    elif root.tag == "testsuites":
        suites = root.findall("testsuite")
    else:
        raise FeedFormatError(f"Invalid JUnit XML {source}: unexpected root <{root.tag}>")

    results: list[SuiteResult] = []
    for index, suite in enumerate(suites):
        properties = {
            prop.get("name", ""): prop.get("value", "")
            for prop in suite.findall("properties/property")
            if prop.get("name")
        }
        results.append(
            SuiteResult(
                name=suite.get("name") or f"suite-{index + 1}",
                entries=tuple(_junit_entry(case) for case in suite.iter("testcase")),
                parameters=properties,
            )
        )
    return results


def load_junit_results(path: Path) -> list[SuiteResult]:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise FeedFormatError(f"Cannot read JUnit report {path}: {exc}") from exc
    return parse_junit(text, source=str(path))


def _check_levels(entry: FeedEntry, declared: Iterable[RequirementLevel]) -> None:
    if not entry.levels:
        return
    reported, _ = RequirementLevel.parse_all(entry.levels)
    expected = frozenset(declared)
    if reported != expected:
        logger.warning(
            "Levels reported for %s (%s) differ from the catalog (%s); using the catalog",
            entry.test_id,
            ",".join(level.value for level in ordered_levels(reported)) or "-",
            ",".join(level.value for level in ordered_levels(expected)) or "-",
        )


def ingest(collector: OutcomeCollector, suites: Iterable[SuiteResult]) -> int:
    """Record every feed entry; returns the number of outcomes recorded."""

    recorded = 0
    for suite in suites:
        logger.info(
            "Ingesting suite %s: %d passed, %d failed, %d skipped",
            suite.name,
            suite.count(OutcomeStatus.PASS),
            suite.count(OutcomeStatus.FAIL),
            suite.count(OutcomeStatus.SKIP),
        )
        for entry in suite.entries:
            descriptor = collector.catalog.get(entry.test_id)
            if descriptor is not None:
                _check_levels(entry, descriptor.levels)
            collector.record(entry.test_id, entry.to_outcome())
            recorded += 1
    return recorded
