from __future__ import annotations

import logging
from typing import Iterable, Iterator, Protocol

from .catalog import MetadataCatalog
from .errors import (
    CollectorClosedError,
    DuplicateOutcomeError,
    IndirectOutcomeError,
    UnknownDescriptorError,
)
from .model import ExecutionOutcome, OutcomeStatus, TestDescriptor

logger = logging.getLogger(__name__)


class OutcomeListener(Protocol):
    def outcome_recorded(self, descriptor: TestDescriptor, outcome: ExecutionOutcome) -> None: ...

    def collection_closed(self, collector: "OutcomeCollector") -> None: ...


class OutcomeCollector:
    """Write-once store of the outcomes observed while the suite runs.

    Outcomes can only be recorded for tests the catalog knows about and that
    run directly. Once :meth:`close` is called the set is frozen and the
    coverage resolver may read it.
    """

    def __init__(self, catalog: MetadataCatalog, *, listeners: Iterable[OutcomeListener] = ()) -> None:
        self._catalog = catalog
        self._outcomes: dict[str, ExecutionOutcome] = {}
        self._listeners = list(listeners)
        self._closed = False

    @property
    def catalog(self) -> MetadataCatalog:
        return self._catalog

    @property
    def closed(self) -> bool:
        return self._closed

    def add_listener(self, listener: OutcomeListener) -> None:
        self._listeners.append(listener)

    def record(self, test_id: str, outcome: ExecutionOutcome) -> None:
        if self._closed:
            raise CollectorClosedError(test_id)
        descriptor = self._catalog.get(test_id)
        if descriptor is None:
            raise UnknownDescriptorError(test_id)
        if descriptor.is_indirect:
            raise IndirectOutcomeError(test_id)
        if test_id in self._outcomes:
            raise DuplicateOutcomeError(test_id)
        if outcome.test_id != test_id:
            raise ValueError(f"Outcome for {outcome.test_id!r} recorded under {test_id!r}")

        self._outcomes[test_id] = outcome
        logger.debug("Recorded %s for %s", outcome.status.value, test_id)
        for listener in self._listeners:
            listener.outcome_recorded(descriptor, outcome)

    def record_status(
        self,
        test_id: str,
        status: OutcomeStatus | str,
        *,
        message: str | None = None,
        duration_ms: int | None = None,
        parameters: Iterable[str] = (),
    ) -> ExecutionOutcome:
        outcome = ExecutionOutcome(
            test_id=test_id,
            status=OutcomeStatus(status),
            message=message,
            duration_ms=duration_ms,
            parameters=tuple(parameters),
        )
        self.record(test_id, outcome)
        return outcome

    def lookup(self, test_id: str) -> ExecutionOutcome | None:
        return self._outcomes.get(test_id)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug("Collector closed with %d outcomes", len(self._outcomes))
        for listener in self._listeners:
            listener.collection_closed(self)

    def outcomes(self) -> Iterator[ExecutionOutcome]:
        return iter(list(self._outcomes.values()))

    def __len__(self) -> int:
        return len(self._outcomes)

    def __contains__(self, test_id: object) -> bool:
        return test_id in self._outcomes
