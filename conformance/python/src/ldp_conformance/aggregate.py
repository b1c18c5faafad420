"""Classification of test outcomes into per-level, per-group buckets.

Everything here is computed by one pass over ``(descriptor, final outcome)``
pairs and returned as frozen values; nothing is accumulated in module state.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Mapping, Sequence

from .catalog import GroupInfo, MetadataCatalog
from .collector import OutcomeCollector
from .errors import UnresolvedCoverageWarning
from .identity import short_group
from .model import (
    LEVEL_ORDER,
    UNCLASSIFIED,
    FinalOutcome,
    ImplementationMethod,
    OutcomeSource,
    OutcomeStatus,
    ReviewStatus,
    TestDescriptor,
)
from .resolver import Resolution

UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True)
class TestRow:
    descriptor: TestDescriptor
    outcome: FinalOutcome | None = None

    # Not a pytest test class.
    __test__ = False

    @property
    def test_id(self) -> str:
        return self.descriptor.test_id

    @property
    def state(self) -> str:
        return self.outcome.status.value if self.outcome is not None else UNRESOLVED

    @property
    def is_resolved(self) -> bool:
        return self.outcome is not None and self.outcome.source is OutcomeSource.RESOLVED

    @property
    def is_unresolved_indirect(self) -> bool:
        return self.descriptor.is_indirect and self.outcome is None

    @property
    def never_reported(self) -> bool:
        return not self.descriptor.is_indirect and self.outcome is None

    def bucket_keys(self) -> list[str]:
        levels = self.descriptor.sorted_levels()
        return [level.value for level in levels] if levels else [UNCLASSIFIED]


def requirement_key(descriptor: TestDescriptor) -> str:
    """Tests sharing a specification reference check the same requirement."""

    return descriptor.spec_ref or f"urn:test:{descriptor.test_id}"


@dataclass(frozen=True, slots=True)
class Tally:
    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    unresolved: int = 0
    requirements: int = 0
    review: Mapping[str, int] = field(default_factory=dict)

    @property
    def conserved(self) -> bool:
        return self.passed + self.failed + self.skipped + self.unresolved == self.total


def tally(rows: Sequence[TestRow]) -> Tally:
    states = Counter(row.state for row in rows)
    review = Counter(row.descriptor.status.value for row in rows)
    return Tally(
        total=len(rows),
        passed=states[OutcomeStatus.PASS.value],
        failed=states[OutcomeStatus.FAIL.value],
        skipped=states[OutcomeStatus.SKIP.value],
        unresolved=states[UNRESOLVED],
        requirements=len({requirement_key(row.descriptor) for row in rows}),
        review={status.value: review[status.value] for status in ReviewStatus if review[status.value]},
    )


@dataclass(frozen=True, slots=True)
class AggregateBucket:
    level: str
    group: str
    test_ids: tuple[str, ...]
    tally: Tally

    @property
    def key(self) -> tuple[str, str]:
        return self.level, self.group


@dataclass(frozen=True, slots=True)
class LevelRequirements:
    covered: int = 0
    implemented: int = 0
    not_implemented: int = 0


@dataclass(frozen=True, slots=True)
class RequirementTally:
    covered: int
    implemented: int
    not_implemented: int
    by_level: Mapping[str, LevelRequirements]

    def level(self, level: str) -> LevelRequirements:
        return self.by_level.get(level, LevelRequirements())


def requirement_tally(descriptors: Iterable[TestDescriptor]) -> RequirementTally:
    levels: dict[str, set[str]] = {}
    implemented: dict[str, bool] = {}
    for descriptor in descriptors:
        key = requirement_key(descriptor)
        levels.setdefault(key, set()).update(level.value for level in descriptor.levels)
        implemented[key] = implemented.get(key, False) or descriptor.is_implemented

    by_level: dict[str, LevelRequirements] = {}
    for level in LEVEL_ORDER:
        keys = [key for key, key_levels in levels.items() if level.value in key_levels]
        done = sum(1 for key in keys if implemented[key])
        by_level[level.value] = LevelRequirements(covered=len(keys), implemented=done, not_implemented=len(keys) - done)

    done = sum(1 for value in implemented.values() if value)
    return RequirementTally(
        covered=len(implemented),
        implemented=done,
        not_implemented=len(implemented) - done,
        by_level=by_level,
    )


@dataclass(frozen=True, slots=True)
class ImplementationTally:
    total: int
    implemented: int
    unimplemented: int
    not_enabled: int
    client_only: int
    manual: int
    by_level: Mapping[str, tuple[int, int]]


def implementation_tally(descriptors: Iterable[TestDescriptor]) -> ImplementationTally:
    items = list(descriptors)
    by_level: dict[str, tuple[int, int]] = {}
    for level in LEVEL_ORDER:
        at_level = [d for d in items if level in d.levels]
        by_level[level.value] = (sum(1 for d in at_level if d.is_implemented), len(at_level))
    implemented = sum(1 for d in items if d.is_implemented)
    return ImplementationTally(
        total=len(items),
        implemented=implemented,
        unimplemented=len(items) - implemented,
        not_enabled=sum(1 for d in items if not d.enabled),
        client_only=sum(1 for d in items if d.implementation is ImplementationMethod.CLIENT_ONLY),
        manual=sum(1 for d in items if d.implementation is ImplementationMethod.MANUAL),
        by_level=by_level,
    )


@dataclass(frozen=True, slots=True)
class GroupSummary:
    name: str
    title: str
    description: str | None
    rows: tuple[TestRow, ...]
    tally: Tally

    @property
    def short_name(self) -> str:
        return short_group(self.name)


@dataclass(frozen=True, slots=True)
class SuiteSummary:
    name: str
    parameters: Mapping[str, str] = field(default_factory=dict)
    included_groups: tuple[str, ...] = ()
    excluded_groups: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ReportModel:
    title: str
    rows: tuple[TestRow, ...]
    buckets: tuple[AggregateBucket, ...]
    levels: Mapping[str, Tally]
    totals: Tally
    requirements: RequirementTally
    implementation: ImplementationTally
    groups: tuple[GroupSummary, ...]
    reported_levels: tuple[str, ...] = tuple(level.value for level in LEVEL_ORDER)
    unresolved: tuple[UnresolvedCoverageWarning, ...] = ()
    suites: tuple[SuiteSummary, ...] = ()
    included_groups: tuple[str, ...] = ()
    excluded_groups: tuple[str, ...] = ()
    generated_at: datetime | None = None

    def row(self, test_id: str) -> TestRow | None:
        for row in self.rows:
            if row.test_id == test_id:
                return row
        return None

    def bucket(self, level: str, group: str) -> AggregateBucket | None:
        for bucket in self.buckets:
            if bucket.key == (level, group):
                return bucket
        return None

    def buckets_for(self, level: str) -> list[AggregateBucket]:
        return [bucket for bucket in self.buckets if bucket.level == level]

    def with_state(self, state: str) -> list[TestRow]:
        return [row for row in self.rows if row.state == state]

    def failed(self) -> list[TestRow]:
        return self.with_state(OutcomeStatus.FAIL.value)

    def skipped(self) -> list[TestRow]:
        return self.with_state(OutcomeStatus.SKIP.value)

    def passed(self) -> list[TestRow]:
        return self.with_state(OutcomeStatus.PASS.value)

    def unresolved_rows(self) -> list[TestRow]:
        return [row for row in self.rows if row.is_unresolved_indirect]

    def not_reported(self) -> list[TestRow]:
        return [row for row in self.rows if row.never_reported]

    def manual(self) -> list[TestRow]:
        return [row for row in self.rows if row.descriptor.implementation is ImplementationMethod.MANUAL]

    def client_only(self) -> list[TestRow]:
        return [row for row in self.rows if row.descriptor.implementation is ImplementationMethod.CLIENT_ONLY]


def build_rows(catalog: MetadataCatalog, collector: OutcomeCollector | None, resolution: Resolution | None) -> list[TestRow]:
    rows: list[TestRow] = []
    for descriptor in catalog.all():
        outcome: FinalOutcome | None = None
        if descriptor.is_indirect:
            resolved = resolution.get(descriptor.test_id) if resolution is not None else None
            if resolved is not None:
                outcome = FinalOutcome.resolved(resolved)
        elif collector is not None:
            recorded = collector.lookup(descriptor.test_id)
            if recorded is not None:
                outcome = FinalOutcome.direct(recorded)
        rows.append(TestRow(descriptor=descriptor, outcome=outcome))
    return rows


def _bucket_order(level: str) -> int:
    order = [lv.value for lv in LEVEL_ORDER]
    return order.index(level) if level in order else len(order)


def aggregate(
    catalog: MetadataCatalog,
    rows: Iterable[TestRow],
    *,
    title: str = "LDP Test Suite",
    reported_levels: Sequence[str] | None = None,
    group_info: Mapping[str, GroupInfo] | None = None,
    unresolved: Sequence[UnresolvedCoverageWarning] = (),
    suites: Sequence[SuiteSummary] = (),
    included_groups: Sequence[str] = (),
    excluded_groups: Sequence[str] = (),
    generated_at: datetime | None = None,
) -> ReportModel:
    rows = tuple(rows)
    group_order = {name: index for index, name in enumerate(catalog.groups())}

    by_bucket: dict[tuple[str, str], list[TestRow]] = {}
    by_level: dict[str, list[TestRow]] = {}
    by_group: dict[str, list[TestRow]] = {}
    for row in rows:
        group = row.descriptor.group
        by_group.setdefault(group, []).append(row)
        for level in row.bucket_keys():
            by_bucket.setdefault((level, group), []).append(row)
            by_level.setdefault(level, []).append(row)

    buckets = tuple(
        AggregateBucket(
            level=level,
            group=group,
            test_ids=tuple(row.test_id for row in bucket_rows),
            tally=tally(bucket_rows),
        )
        for (level, group), bucket_rows in sorted(
            by_bucket.items(),
            key=lambda item: (_bucket_order(item[0][0]), group_order.get(item[0][1], len(group_order))),
        )
    )

    overrides = group_info or {}
    groups = []
    for name in catalog.groups():
        info = overrides.get(name) or overrides.get(short_group(name)) or catalog.group_info(name)
        group_rows = tuple(by_group.get(name, ()))
        groups.append(
            GroupSummary(
                name=name,
                title=info.title or name,
                description=info.description,
                rows=group_rows,
                tally=tally(group_rows),
            )
        )

    levels = {
        level: tally(by_level[level])
        for level in sorted(by_level, key=_bucket_order)
    }
    descriptors = [row.descriptor for row in rows]
    return ReportModel(
        title=title,
        rows=rows,
        buckets=buckets,
        levels=levels,
        totals=tally(rows),
        requirements=requirement_tally(descriptors),
        implementation=implementation_tally(descriptors),
        groups=tuple(groups),
        reported_levels=tuple(reported_levels) if reported_levels is not None else tuple(lv.value for lv in LEVEL_ORDER),
        unresolved=tuple(unresolved),
        suites=tuple(suites),
        included_groups=tuple(included_groups),
        excluded_groups=tuple(excluded_groups),
        generated_at=generated_at,
    )
