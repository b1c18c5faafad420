"""Derive outcomes for tests whose evidence comes from other tests."""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field

from .collector import OutcomeCollector
from .errors import CollectorOpenError, UnresolvedCoverageWarning
from .model import OutcomeStatus, ResolvedOutcome, TestDescriptor

logger = logging.getLogger(__name__)

# Methods carrying this marker are themselves aggregate checks and never count as evidence.
EXCLUDED_MARKER = "Conforms"

_PRECEDENCE = (OutcomeStatus.FAIL, OutcomeStatus.PASS, OutcomeStatus.SKIP)


@dataclass(frozen=True, slots=True)
class Resolution:
    resolved: dict[str, ResolvedOutcome] = field(default_factory=dict)
    unresolved: tuple[UnresolvedCoverageWarning, ...] = ()

    def get(self, test_id: str) -> ResolvedOutcome | None:
        return self.resolved.get(test_id)

    def unresolved_ids(self) -> set[str]:
        return {w.test_id for w in self.unresolved}


def covering_descriptors(collector: OutcomeCollector, descriptor: TestDescriptor) -> list[TestDescriptor]:
    coverage = descriptor.coverage
    if coverage is None:
        return []
    return [
        candidate
        for candidate in collector.catalog.in_groups(coverage.groups)
        if coverage.matches(candidate)
        and EXCLUDED_MARKER not in candidate.method
        and candidate.test_id != descriptor.test_id
    ]


def combine(statuses: list[OutcomeStatus]) -> OutcomeStatus | None:
    present = set(statuses)
    for status in _PRECEDENCE:
        if status in present:
            return status
    return None


def resolve_one(collector: OutcomeCollector, descriptor: TestDescriptor) -> ResolvedOutcome | None:
    evidence: list[str] = []
    statuses: list[OutcomeStatus] = []
    for candidate in covering_descriptors(collector, descriptor):
        outcome = collector.lookup(candidate.test_id)
        if outcome is None:
            continue
        evidence.append(candidate.test_id)
        statuses.append(outcome.status)

    status = combine(statuses)
    if status is None:
        return None
    return ResolvedOutcome(test_id=descriptor.test_id, status=status, evidence=tuple(evidence))


def resolve(collector: OutcomeCollector) -> Resolution:
    if not collector.closed:
        raise CollectorOpenError()

    resolved: dict[str, ResolvedOutcome] = {}
    unresolved: list[UnresolvedCoverageWarning] = []
    for descriptor in collector.catalog.all():
        if not descriptor.is_indirect:
            continue
        outcome = resolve_one(collector, descriptor)
        if outcome is not None:
            resolved[descriptor.test_id] = outcome
            logger.debug("Resolved %s as %s from %d outcomes", descriptor.test_id, outcome.status.value, len(outcome.evidence))
            continue

        coverage = descriptor.coverage
        warning = UnresolvedCoverageWarning(
            descriptor.test_id,
            groups=sorted(coverage.groups) if coverage else [],
            levels=coverage.labels() if coverage else [],
        )
        logger.warning("%s", warning)
        warnings.warn(warning, stacklevel=2)
        unresolved.append(warning)
    return Resolution(resolved=resolved, unresolved=tuple(unresolved))
