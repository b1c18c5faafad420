from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from .identity import canonical_id


class RequirementLevel(str, Enum):
    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"

    @classmethod
    def parse_all(cls, values: Iterable[str]) -> tuple[frozenset["RequirementLevel"], tuple[str, ...]]:
        """Split raw group labels into recognized levels and the remaining tags."""

        levels: set[RequirementLevel] = set()
        tags: list[str] = []
        for raw in values:
            label = str(raw).strip()
            try:
                levels.add(cls(label.upper()))
            except ValueError:
                if label and label not in tags:
                    tags.append(label)
        return frozenset(levels), tuple(tags)


LEVEL_ORDER: tuple[RequirementLevel, ...] = (RequirementLevel.MUST, RequirementLevel.SHOULD, RequirementLevel.MAY)
UNCLASSIFIED = "UNCLASSIFIED"


def ordered_levels(levels: Iterable[RequirementLevel]) -> list[RequirementLevel]:
    present = set(levels)
    return [level for level in LEVEL_ORDER if level in present]


class ReviewStatus(str, Enum):
    APPROVED = "approved"
    PENDING = "pending"
    EXTENSION = "extension"
    DEPRECATED = "deprecated"
    NEEDS_CLARIFICATION = "needs-clarification"


class ImplementationMethod(str, Enum):
    AUTOMATED = "automated"
    MANUAL = "manual"
    CLIENT_ONLY = "client-only"
    NOT_IMPLEMENTED = "not-implemented"
    INDIRECT = "indirect"


class OutcomeStatus(str, Enum):
    PASS = "pass"
    FAIL = "fail"
    SKIP = "skip"


class OutcomeSource(str, Enum):
    DIRECT = "direct"
    RESOLVED = "resolved"


@dataclass(frozen=True, slots=True)
class CoverageSpec:
    groups: frozenset[str]
    levels: frozenset[RequirementLevel]
    # Labels that are not requirement levels, matched against descriptor tags.
    tags: tuple[str, ...] = ()

    def labels(self) -> list[str]:
        return [level.value for level in ordered_levels(self.levels)] + list(self.tags)

    def matches(self, descriptor: "TestDescriptor") -> bool:
        """True if the descriptor carries one of the covering levels or tags.

        An empty label set matches nothing.
        """

        if descriptor.levels & self.levels:
            return True
        wanted = {tag.upper() for tag in self.tags}
        return any(tag.upper() in wanted for tag in descriptor.tags)

    @staticmethod
    def parse(groups: Iterable[str], labels: Iterable[str]) -> "CoverageSpec":
        levels, tags = RequirementLevel.parse_all(labels)
        return CoverageSpec(groups=frozenset(groups), levels=levels, tags=tags)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "CoverageSpec":
        return CoverageSpec.parse(data.get("groups") or [], data.get("levels") or [])


@dataclass(frozen=True, slots=True)
class TestDescriptor:
    group: str
    method: str
    levels: frozenset[RequirementLevel] = frozenset()
    status: ReviewStatus = ReviewStatus.PENDING
    implementation: ImplementationMethod = ImplementationMethod.NOT_IMPLEMENTED
    spec_ref: str | None = None
    description: str | None = None
    comment: str | None = None
    tags: tuple[str, ...] = ()
    steps: tuple[str, ...] = ()
    enabled: bool = True
    coverage: CoverageSpec | None = None

    # Not a pytest test class.
    __test__ = False

    @property
    def test_id(self) -> str:
        return canonical_id(self.group, self.method)

    @property
    def is_indirect(self) -> bool:
        return self.implementation is ImplementationMethod.INDIRECT

    @property
    def is_implemented(self) -> bool:
        return (
            self.enabled
            and self.implementation in (ImplementationMethod.AUTOMATED, ImplementationMethod.INDIRECT)
        )

    def sorted_levels(self) -> list[RequirementLevel]:
        return ordered_levels(self.levels)

    @staticmethod
    def from_dict(data: dict[str, Any], *, group: str | None = None) -> "TestDescriptor":
        levels, extra_tags = RequirementLevel.parse_all(data.get("levels") or [])
        tags = tuple(dict.fromkeys([*extra_tags, *(data.get("tags") or [])]))
        covered_by = data.get("covered_by")
        description = data.get("description")
        return TestDescriptor(
            group=group if group is not None else data["group"],
            method=data["method"],
            levels=levels,
            status=ReviewStatus(data.get("status", ReviewStatus.PENDING.value)),
            implementation=ImplementationMethod(data.get("implementation", ImplementationMethod.NOT_IMPLEMENTED.value)),
            spec_ref=data.get("spec_ref"),
            description=description.strip() if isinstance(description, str) else None,
            comment=data.get("comment"),
            tags=tags,
            steps=tuple(data.get("steps") or ()),
            enabled=bool(data.get("enabled", True)),
            coverage=CoverageSpec.from_dict(covered_by) if isinstance(covered_by, dict) else None,
        )


@dataclass(frozen=True, slots=True)
class ExecutionOutcome:
    test_id: str
    status: OutcomeStatus
    message: str | None = None
    duration_ms: int | None = None
    parameters: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ResolvedOutcome:
    test_id: str
    status: OutcomeStatus
    evidence: tuple[str, ...] = field(default=())


@dataclass(frozen=True, slots=True)
class FinalOutcome:
    """The outcome a report shows for one test, whichever way it was obtained."""

    status: OutcomeStatus
    source: OutcomeSource
    message: str | None = None
    evidence: tuple[str, ...] = ()
    duration_ms: int | None = None
    parameters: tuple[str, ...] = ()

    @staticmethod
    def direct(outcome: ExecutionOutcome) -> "FinalOutcome":
        return FinalOutcome(
            status=outcome.status,
            source=OutcomeSource.DIRECT,
            message=outcome.message,
            duration_ms=outcome.duration_ms,
            parameters=outcome.parameters,
        )

    @staticmethod
    def resolved(outcome: ResolvedOutcome) -> "FinalOutcome":
        return FinalOutcome(status=outcome.status, source=OutcomeSource.RESOLVED, evidence=outcome.evidence)
