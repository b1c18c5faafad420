from __future__ import annotations

import sys
import textwrap
from typing import TYPE_CHECKING, TextIO

from .identity import short_group
from .model import ExecutionOutcome, OutcomeStatus, TestDescriptor

if TYPE_CHECKING:
    from .collector import OutcomeCollector

_LABELS = {
    OutcomeStatus.PASS: "PASSED",
    OutcomeStatus.FAIL: "FAILED",
    OutcomeStatus.SKIP: "SKIPPED",
}


class ConsoleListener:
    """Progress lines while outcomes arrive, then a digest of the failures."""

    def __init__(self, out: TextIO | None = None, err: TextIO | None = None, *, width: int = 78) -> None:
        self.out = out or sys.stdout
        self.err = err or sys.stderr
        self.width = width
        self._failures: list[str] = []

    def outcome_recorded(self, descriptor: TestDescriptor, outcome: ExecutionOutcome) -> None:
        levels = "[" + ", ".join(level.value for level in descriptor.sorted_levels()) + "]"
        duration = f"{outcome.duration_ms}ms" if outcome.duration_ms is not None else "-"
        self.out.write(
            f"{descriptor.method:<50} {short_group(descriptor.group):<17} "
            f"{_LABELS[outcome.status]:<8} {levels:<15} {duration:>8}\n"
        )
        if outcome.status is OutcomeStatus.FAIL:
            self._failures.append(self._failure_details(descriptor, outcome))

    def _failure_details(self, descriptor: TestDescriptor, outcome: ExecutionOutcome) -> str:
        parts = [f"[FAILURE] {short_group(descriptor.group)}.{descriptor.method}"]
        if descriptor.description:
            parts.append(textwrap.fill(descriptor.description, width=self.width))
        if outcome.message:
            parts.append(outcome.message)
        return "\n\n".join(parts)

    def collection_closed(self, collector: "OutcomeCollector") -> None:
        counts = {status: 0 for status in OutcomeStatus}
        for outcome in collector.outcomes():
            counts[outcome.status] += 1
        self.out.write(
            f"\nTotal: {len(collector)} "
            f"(passed={counts[OutcomeStatus.PASS]} failed={counts[OutcomeStatus.FAIL]} "
            f"skipped={counts[OutcomeStatus.SKIP]})\n"
        )
        if self._failures:
            self.err.write("\n" + "\n\n".join(self._failures) + "\n")

    @property
    def failures(self) -> list[str]:
        return list(self._failures)
