from __future__ import annotations

import sys
import unittest
import warnings
from pathlib import Path


class TestAggregation(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        repo_root = Path(__file__).resolve().parents[1]
        cls.src = repo_root / "conformance" / "python" / "src"
        sys.path.insert(0, str(cls.src))

        import ldp_conformance.aggregate as aggregate  # noqa: E402
        import ldp_conformance.catalog as catalog  # noqa: E402
        import ldp_conformance.collector as collector  # noqa: E402
        import ldp_conformance.errors as errors  # noqa: E402
        import ldp_conformance.resolver as resolver  # noqa: E402

        cls.agg = aggregate
        cls.catalog_mod = catalog
        cls.collector_mod = collector
        cls.errors = errors
        cls.resolver = resolver

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            sys.path.remove(str(cls.src))
        except ValueError:
            pass

    def _scenario_catalog(self):
        return (
            self.catalog_mod.CatalogBuilder()
            .group("GroupA")
            .test("testFoo", levels=["MUST"], implementation="automated")
            .group("GroupB")
            .test("testBar", levels=["SHOULD"], implementation="manual")
            .group("GroupC")
            .test("testBaz", implementation="indirect", covered_by=(["GroupA"], ["MUST"]))
            .build()
        )

    def _model(self, catalog, outcomes: dict[str, str]):
        collector = self.collector_mod.OutcomeCollector(catalog)
        for test_id, status in outcomes.items():
            collector.record_status(test_id, status)
        collector.close()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", self.errors.UnresolvedCoverageWarning)
            resolution = self.resolver.resolve(collector)
        rows = self.agg.build_rows(catalog, collector, resolution)
        return self.agg.aggregate(catalog, rows, unresolved=resolution.unresolved)

    def test_indirect_test_resolves_without_double_counting(self) -> None:
        model = self._model(self._scenario_catalog(), {"GroupA-Foo": "pass", "GroupB-Bar": "skip"})

        baz = model.row("GroupC-Baz")
        self.assertEqual(baz.state, "pass")
        self.assertTrue(baz.is_resolved)

        must = model.levels["MUST"]
        self.assertEqual((must.passed, must.failed, must.skipped), (1, 0, 0))
        self.assertEqual(model.bucket("MUST", "GroupA").test_ids, ("GroupA-Foo",))

        should = model.levels["SHOULD"]
        self.assertEqual((should.passed, should.failed, should.skipped), (0, 0, 1))

        unclassified = model.bucket("UNCLASSIFIED", "GroupC")
        self.assertEqual(unclassified.tally.passed, 1)
        self.assertEqual(model.unresolved, ())

    def test_unresolved_indirect_test_is_listed_not_counted(self) -> None:
        model = self._model(self._scenario_catalog(), {"GroupB-Bar": "skip"})

        self.assertIsNone(model.row("GroupC-Baz").outcome)
        self.assertEqual([row.test_id for row in model.unresolved_rows()], ["GroupC-Baz"])
        self.assertEqual([w.test_id for w in model.unresolved], ["GroupC-Baz"])
        self.assertEqual([row.test_id for row in model.not_reported()], ["GroupA-Foo"])

        for tally in (model.levels["MUST"], model.levels["UNCLASSIFIED"]):
            self.assertEqual((tally.passed, tally.failed, tally.skipped), (0, 0, 0))
            self.assertEqual(tally.unresolved, 1)

    def test_counts_are_conserved_in_every_bucket(self) -> None:
        catalog = self.catalog_mod.default_catalog()
        outcomes = {}
        for index, descriptor in enumerate(catalog.all()):
            if descriptor.is_indirect or index % 5 == 4:
                continue
            outcomes[descriptor.test_id] = ("pass", "fail", "skip", "pass")[index % 4]
        model = self._model(catalog, outcomes)

        for bucket in model.buckets:
            self.assertTrue(bucket.tally.conserved, bucket.key)
        for tally in model.levels.values():
            self.assertTrue(tally.conserved)
        self.assertTrue(model.totals.conserved)
        self.assertEqual(model.totals.total, 69)
        self.assertEqual(sum(g.tally.total for g in model.groups), 69)

    def test_descriptor_with_several_levels_lands_in_each_bucket(self) -> None:
        catalog = (
            self.catalog_mod.CatalogBuilder()
            .group("GroupA")
            .test("testBoth", levels=["MUST", "SHOULD"])
            .build()
        )
        model = self._model(catalog, {"GroupA-Both": "fail"})

        self.assertEqual(model.bucket("MUST", "GroupA").tally.failed, 1)
        self.assertEqual(model.bucket("SHOULD", "GroupA").tally.failed, 1)
        self.assertEqual(model.totals.failed, 1)

    def test_requirements_are_counted_once_per_reference(self) -> None:
        ref = "http://www.w3.org/TR/ldp#ldpc-linktypehdr"
        catalog = (
            self.catalog_mod.CatalogBuilder()
            .group("BasicContainerTest")
            .test("testLinkHeader", levels=["MUST"], spec_ref=ref)
            .group("DirectContainerTest")
            .test("testLinkHeader", levels=["MUST"], spec_ref=ref)
            .test("testNoReference", levels=["MUST"])
            .test("testOther", levels=["SHOULD"], spec_ref="http://www.w3.org/TR/ldp#other", implementation="not-implemented")
            .build()
        )
        model = self._model(
            catalog,
            {"BasicContainer-LinkHeader": "pass", "DirectContainer-LinkHeader": "fail"},
        )

        must = model.levels["MUST"]
        self.assertEqual(must.total, 3)
        self.assertEqual(must.requirements, 2)
        self.assertEqual(must.passed + must.failed, 2)

        self.assertEqual(model.requirements.covered, 3)
        self.assertEqual(model.requirements.implemented, 2)
        self.assertEqual(model.requirements.not_implemented, 1)
        self.assertEqual(model.requirements.level("MUST").covered, 2)
        self.assertEqual(model.requirements.level("SHOULD").not_implemented, 1)

    def test_implementation_tally(self) -> None:
        catalog = (
            self.catalog_mod.CatalogBuilder()
            .group("GroupA")
            .test("testAuto", levels=["MUST"])
            .test("testManual", levels=["MUST"], implementation="manual")
            .test("testClient", levels=["SHOULD"], implementation="client-only")
            .test("testDisabled", levels=["MAY"], enabled=False)
            .build()
        )
        model = self._model(catalog, {})
        tally = model.implementation

        self.assertEqual((tally.total, tally.implemented, tally.unimplemented), (4, 1, 3))
        self.assertEqual((tally.not_enabled, tally.client_only, tally.manual), (1, 1, 1))
        self.assertEqual(tally.by_level["MUST"], (1, 2))
        self.assertEqual([row.test_id for row in model.manual()], ["GroupA-Manual"])
        self.assertEqual([row.test_id for row in model.client_only()], ["GroupA-Client"])

    def test_buckets_follow_level_then_group_order(self) -> None:
        catalog = (
            self.catalog_mod.CatalogBuilder()
            .group("GroupB")
            .test("testMay", levels=["MAY"])
            .test("testLoose")
            .group("GroupA")
            .test("testMust", levels=["MUST"])
            .test("testShould", levels=["SHOULD"])
            .build()
        )
        model = self._model(catalog, {})

        self.assertEqual(
            [bucket.key for bucket in model.buckets],
            [("MUST", "GroupA"), ("SHOULD", "GroupA"), ("MAY", "GroupB"), ("UNCLASSIFIED", "GroupB")],
        )
        self.assertEqual(list(model.levels), ["MUST", "SHOULD", "MAY", "UNCLASSIFIED"])


if __name__ == "__main__":
    unittest.main()
