"""Build the EARL evaluation graph and the test manifest from a report model.

Blank nodes get labels derived from canonical ids so that the same inputs
always produce the same graph, triple for triple.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Sequence

from rdflib import BNode, Graph, Literal, URIRef
from rdflib.namespace import DCTERMS, FOAF, RDF, RDFS, XSD
from rdflib.term import Node

from . import LDPT_NAMESPACE, NAME
from .aggregate import ReportModel, TestRow
from .config import AssertorSettings, SubjectSettings
from .identity import case_uri, manifest_uri, short_group
from .model import UNCLASSIFIED, ImplementationMethod, OutcomeSource, OutcomeStatus, ReviewStatus, TestDescriptor
from .vocab import DOAP, EARL, LDPT, MF, RDFT, TD, new_graph

logger = logging.getLogger(__name__)

SUITE_MANIFEST = URIRef(LDPT_NAMESPACE + "manifest")

OUTCOMES = {
    OutcomeStatus.PASS: EARL.passed,
    OutcomeStatus.FAIL: EARL.failed,
    OutcomeStatus.SKIP: EARL.untested,
}

MODES = {
    ImplementationMethod.AUTOMATED: EARL.automatic,
    ImplementationMethod.MANUAL: EARL.manual,
}

REVIEW_STATUS = {
    ReviewStatus.APPROVED: TD.approved,
    ReviewStatus.PENDING: TD.unreviewed,
    ReviewStatus.EXTENSION: TD.unreviewed,
    ReviewStatus.DEPRECATED: TD.rejected,
    ReviewStatus.NEEDS_CLARIFICATION: TD.onhold,
}

_LABEL_UNSAFE = re.compile(r"[^A-Za-z0-9_-]")


def mode_for(descriptor: TestDescriptor) -> URIRef:
    return MODES.get(descriptor.implementation, EARL.notTested)


def approval_for(descriptor: TestDescriptor) -> URIRef:
    return RDFT.Approved if descriptor.status is ReviewStatus.APPROVED else RDFT.Proposed


def _bnode(kind: str, key: str) -> BNode:
    return BNode(f"{kind}-{_LABEL_UNSAFE.sub('_', key)}" if key else kind)


def _add_list(graph: Graph, label: str, items: Sequence[Node]) -> Node:
    if not items:
        return RDF.nil
    cells = [_bnode(label, str(index)) for index in range(len(items))]
    for index, (cell, item) in enumerate(zip(cells, items)):
        graph.add((cell, RDF.first, item))
        graph.add((cell, RDF.rest, cells[index + 1] if index + 1 < len(cells) else RDF.nil))
    return cells[0]


class AssertionGraphBuilder:
    def __init__(
        self,
        *,
        subject: SubjectSettings | None = None,
        assertor: AssertorSettings | None = None,
        generated_at: datetime | None = None,
    ) -> None:
        self.subject = subject or SubjectSettings()
        self.assertor = assertor or AssertorSettings()
        self.generated_at = generated_at

    def build(self, model: ReportModel) -> Graph:
        """The full execution report: manifests, test cases and assertions."""

        graph = self.build_manifest(model)
        subject = self.add_subject(graph)
        assertor = self.add_assertor(graph)
        count = 0
        for row in model.rows:
            if self.add_assertion(graph, row, subject=subject, assertor=assertor) is not None:
                count += 1
        logger.info("Built EARL graph: %d assertions, %d triples", count, len(graph))
        return graph

    def build_manifest(self, model: ReportModel) -> Graph:
        graph = new_graph()
        for row in model.rows:
            self.add_test_case(graph, row.descriptor)

        manifests: list[Node] = []
        titles = {group.name: group for group in model.groups}
        reported = set(model.reported_levels) | {UNCLASSIFIED}
        for bucket in model.buckets:
            if bucket.level not in reported or not bucket.test_ids:
                continue
            summary = titles.get(bucket.group)
            title = summary.title if summary is not None else bucket.group
            node = manifest_uri(bucket.group, bucket.level)
            graph.add((node, RDF.type, MF.Manifest))
            graph.add((node, DCTERMS.title, Literal(f"{title}: {bucket.level} tests")))
            comment = summary.description if summary is not None and summary.description else f"{bucket.level} tests declared in {bucket.group}"
            graph.add((node, RDFS.comment, Literal(comment)))
            graph.add((node, DCTERMS.subject, Literal(bucket.level)))
            entries = [case_uri(test_id) for test_id in bucket.test_ids]
            label = f"entries-{short_group(bucket.group)}-{bucket.level}"
            graph.add((node, MF.entries, _add_list(graph, label, entries)))
            manifests.append(node)

        graph.add((SUITE_MANIFEST, RDF.type, MF.Manifest))
        graph.add((SUITE_MANIFEST, DCTERMS.title, Literal(NAME)))
        graph.add((SUITE_MANIFEST, RDFS.comment, Literal("LDP tests")))
        graph.add((SUITE_MANIFEST, MF.include, _add_list(graph, "include", manifests)))
        return graph

    def add_test_case(self, graph: Graph, descriptor: TestDescriptor) -> URIRef:
        node = case_uri(descriptor.test_id)
        graph.add((node, RDF.type, EARL.TestCase))
        graph.add((node, MF.name, Literal(descriptor.test_id)))
        if descriptor.description:
            graph.add((node, RDFS.comment, Literal(descriptor.description)))
        for level in descriptor.sorted_levels():
            graph.add((node, DCTERMS.subject, Literal(level.value)))
        graph.add((node, TD.reviewStatus, REVIEW_STATUS[descriptor.status]))
        graph.add((node, RDFT.approval, approval_for(descriptor)))
        if descriptor.spec_ref:
            graph.add((node, TD.specificationReference, URIRef(descriptor.spec_ref)))
        graph.add((node, LDPT.declaredInClass, Literal(descriptor.group)))
        graph.add((node, LDPT.implementation, Literal(descriptor.implementation.value)))
        if not descriptor.enabled:
            graph.add((node, LDPT.enabled, Literal(False)))
        if descriptor.coverage is not None:
            for group in sorted(descriptor.coverage.groups):
                graph.add((node, LDPT.coveredByGroup, Literal(group)))
            for level in descriptor.coverage.labels():
                graph.add((node, LDPT.coveredByLevel, Literal(level)))
        return node

    def add_subject(self, graph: Graph) -> Node:
        settings = self.subject
        node: Node = URIRef(settings.uri) if settings.uri else _bnode("subject", "")
        graph.add((node, RDF.type, EARL.TestSubject))
        graph.add((node, RDF.type, DOAP.Project))
        if settings.name:
            graph.add((node, DOAP.name, Literal(settings.name)))
        if settings.homepage:
            graph.add((node, DOAP.homepage, URIRef(settings.homepage)))
        if settings.language:
            graph.add((node, DOAP["programming-language"], Literal(settings.language)))
        if settings.description:
            graph.add((node, DOAP.description, Literal(settings.description)))
        developer = settings.developer
        if developer is not None and (developer.name or developer.mbox or developer.homepage):
            dev = _bnode("developer", "")
            graph.add((node, DOAP.developer, dev))
            graph.add((dev, RDF.type, FOAF.Person))
            if developer.name:
                graph.add((dev, FOAF.name, Literal(developer.name)))
            if developer.mbox:
                mbox = developer.mbox if developer.mbox.startswith("mailto:") else f"mailto:{developer.mbox}"
                graph.add((dev, FOAF.mbox, URIRef(mbox)))
            if developer.homepage:
                graph.add((dev, FOAF.homepage, URIRef(developer.homepage)))
        return node

    def add_assertor(self, graph: Graph) -> Node:
        settings = self.assertor
        node: Node = URIRef(settings.uri) if settings.uri else _bnode("assertor", "")
        graph.add((node, RDF.type, EARL.Assertor))
        graph.add((node, RDF.type, EARL.Software))
        graph.add((node, DCTERMS.title, Literal(settings.title)))
        if settings.homepage:
            graph.add((node, DOAP.homepage, URIRef(settings.homepage)))
        if settings.version:
            graph.add((node, DCTERMS.hasVersion, Literal(settings.version)))
        return node

    def add_assertion(self, graph: Graph, row: TestRow, *, subject: Node, assertor: Node) -> Node | None:
        if row.outcome is None:
            return None
        descriptor = row.descriptor
        assertion = _bnode("assertion", descriptor.test_id)
        result = _bnode("result", descriptor.test_id)

        graph.add((assertion, RDF.type, EARL.Assertion))
        graph.add((assertion, EARL.test, case_uri(descriptor.test_id)))
        graph.add((assertion, EARL.subject, subject))
        graph.add((assertion, EARL.assertedBy, assertor))
        graph.add((assertion, EARL.mode, mode_for(descriptor)))
        graph.add((assertion, EARL.result, result))

        graph.add((result, RDF.type, EARL.TestResult))
        graph.add((result, EARL.outcome, OUTCOMES[row.outcome.status]))
        diagnostic = row.outcome.message
        if row.outcome.source is OutcomeSource.RESOLVED:
            diagnostic = "Derived from: " + (", ".join(row.outcome.evidence) or "no covering outcomes")
        if diagnostic:
            graph.add((result, DCTERMS.description, Literal(diagnostic)))
        if self.generated_at is not None:
            graph.add((result, DCTERMS.date, Literal(self.generated_at.isoformat(), datatype=XSD.dateTime)))
        return assertion
