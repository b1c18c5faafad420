from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .serialize import ArtifactResult


class ReportError(Exception):
    """Base class for every error raised by the reporting engine."""


class CatalogError(ReportError):
    pass


class DuplicateIdError(CatalogError):
    def __init__(self, test_id: str, *, existing: str, incoming: str) -> None:
        self.test_id = test_id
        self.existing = existing
        self.incoming = incoming
        super().__init__(f"Canonical id {test_id!r} declared twice: {existing} and {incoming}")


class SelfCoverageError(CatalogError):
    def __init__(self, test_id: str, group: str) -> None:
        self.test_id = test_id
        self.group = group
        super().__init__(f"Indirect test {test_id!r} lists its own group {group!r} as coverage")


class CatalogFormatError(CatalogError):
    def __init__(self, message: str, *, errors: Sequence[str] = ()) -> None:
        self.errors = list(errors)
        detail = "" if not self.errors else ": " + "; ".join(self.errors)
        super().__init__(f"{message}{detail}")


class CollectorError(ReportError):
    pass


class UnknownDescriptorError(CollectorError):
    def __init__(self, test_id: str) -> None:
        self.test_id = test_id
        super().__init__(f"Outcome reported for unknown test {test_id!r}")


class DuplicateOutcomeError(CollectorError):
    def __init__(self, test_id: str) -> None:
        self.test_id = test_id
        super().__init__(f"Test {test_id!r} already reported an outcome in this run")


class IndirectOutcomeError(CollectorError):
    def __init__(self, test_id: str) -> None:
        self.test_id = test_id
        super().__init__(f"Test {test_id!r} is covered indirectly and cannot report its own outcome")


class CollectorClosedError(CollectorError):
    def __init__(self, test_id: str) -> None:
        self.test_id = test_id
        super().__init__(f"Outcome for {test_id!r} arrived after the collector was closed")


class CollectorOpenError(CollectorError):
    def __init__(self) -> None:
        super().__init__("Coverage cannot be resolved while the outcome collector is still open")


class FeedFormatError(ReportError):
    def __init__(self, message: str, *, errors: Sequence[str] = ()) -> None:
        self.errors = list(errors)
        detail = "" if not self.errors else ": " + "; ".join(self.errors)
        super().__init__(f"{message}{detail}")


class ConfigError(ReportError):
    pass


class ArtifactWriteError(ReportError):
    def __init__(self, failures: Sequence["ArtifactResult"]) -> None:
        self.failures = list(failures)
        names = ", ".join(f"{f.path.name} ({f.error})" for f in self.failures)
        super().__init__(f"Failed to write {len(self.failures)} artifact(s): {names}")


class UnresolvedCoverageWarning(UserWarning):
    """An indirect test found no direct evidence among the tests it is covered by."""

    def __init__(self, test_id: str, *, groups: Sequence[str], levels: Sequence[str]) -> None:
        self.test_id = test_id
        self.groups = list(groups)
        self.levels = list(levels)
        super().__init__(
            f"No outcome available for {test_id!r}: nothing recorded for "
            f"{'/'.join(self.levels) or 'no level'} tests in {', '.join(self.groups)}"
        )
