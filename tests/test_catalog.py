from __future__ import annotations

import json
import sys
import tempfile
import unittest
from pathlib import Path


class TestMetadataCatalog(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        repo_root = Path(__file__).resolve().parents[1]
        cls.src = repo_root / "conformance" / "python" / "src"
        sys.path.insert(0, str(cls.src))

        import ldp_conformance.catalog as catalog  # noqa: E402
        import ldp_conformance.errors as errors  # noqa: E402
        import ldp_conformance.model as model  # noqa: E402

        cls.catalog = catalog
        cls.errors = errors
        cls.model = model

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            sys.path.remove(str(cls.src))
        except ValueError:
            pass

    def _descriptor(self, group: str, method: str, **kwargs):
        return self.model.TestDescriptor(group=group, method=method, **kwargs)

    def test_register_and_lookup(self) -> None:
        catalog = self.catalog.MetadataCatalog()
        descriptor = self._descriptor("RdfSourceTest", "testGetResource")
        catalog.register(descriptor)

        self.assertIn("RdfSource-GetResource", catalog)
        self.assertIs(catalog.get("RdfSource-GetResource"), descriptor)
        self.assertIsNone(catalog.get("RdfSource-Missing"))
        self.assertEqual(len(catalog), 1)

    def test_duplicate_canonical_id_is_rejected(self) -> None:
        catalog = self.catalog.MetadataCatalog()
        catalog.register(self._descriptor("RdfSourceTest", "testGetResource"))

        with self.assertRaises(self.errors.DuplicateIdError) as ctx:
            catalog.register(self._descriptor("org.other.RdfSourceTest", "testGetResource"))
        self.assertEqual(ctx.exception.test_id, "RdfSource-GetResource")
        self.assertIsInstance(ctx.exception, self.errors.CatalogError)

    def test_indirect_descriptor_cannot_cover_its_own_group(self) -> None:
        builder = self.catalog.CatalogBuilder().group("RdfSourceTest")
        with self.assertRaises(self.errors.SelfCoverageError):
            builder.test(
                "testConformsRdfSource",
                levels=["MUST"],
                implementation="indirect",
                covered_by=(["RdfSource"], ["MUST"]),
            )

    def test_indirect_descriptor_needs_coverage(self) -> None:
        builder = self.catalog.CatalogBuilder().group("GroupC")
        with self.assertRaises(self.errors.CatalogFormatError):
            builder.test("testBaz", implementation="indirect")

    def test_all_is_restartable_and_ordered(self) -> None:
        catalog = (
            self.catalog.CatalogBuilder()
            .group("GroupB")
            .test("testTwo")
            .group("GroupA")
            .test("testOne")
            .test("testThree")
            .build()
        )
        view = catalog.all()
        first = [d.test_id for d in view]
        second = [d.test_id for d in view]
        self.assertEqual(first, ["GroupB-Two", "GroupA-One", "GroupA-Three"])
        self.assertEqual(first, second)
        self.assertEqual(catalog.groups(), ["GroupB", "GroupA"])
        self.assertEqual([d.method for d in catalog.in_groups(["GroupA"])], ["testOne", "testThree"])

    def test_builder_splits_levels_and_tags(self) -> None:
        catalog = (
            self.catalog.CatalogBuilder()
            .group("NonRDFSourceTest", title="Non-RDF Source")
            .test("testPostNonRDFSource", levels=["MUST", "NON-RDF", "manual"])
            .build()
        )
        descriptor = catalog.get("NonRDFSource-PostNonRDFSource")
        self.assertEqual(descriptor.levels, frozenset({self.model.RequirementLevel.MUST}))
        self.assertEqual(descriptor.tags, ("NON-RDF", "manual"))
        self.assertEqual(catalog.group_info("NonRDFSourceTest").title, "Non-RDF Source")

    def test_default_catalog(self) -> None:
        catalog = self.catalog.default_catalog()

        self.assertEqual(len(catalog), 69)
        self.assertEqual(
            catalog.groups(),
            [
                "RdfSourceTest",
                "BasicContainerTest",
                "CommonContainerTest",
                "CommonResourceTest",
                "NonRDFSourceTest",
                "IndirectContainerTest",
                "DirectContainerTest",
            ],
        )
        indirect = [d.test_id for d in catalog.all() if d.is_indirect]
        self.assertEqual(indirect, ["RdfSource-ConformsRdfSourceLdpResource", "CommonContainer-ConformsContainerRdfResource"])
        self.assertEqual(sum(1 for d in catalog.all() if not d.enabled), 4)
        self.assertEqual(catalog.in_groups(["NonRDFSource"]), [])
        self.assertEqual(len(catalog.in_groups(["IndirectContainer"])), len(catalog.in_groups(["IndirectContainerTest"])))
        self.assertTrue(catalog.in_groups(["IndirectContainer"]))

    def test_load_catalog_from_json(self) -> None:
        document = {
            "suite": {"name": "Example"},
            "groups": [
                {
                    "name": "GroupA",
                    "title": "Group A",
                    "tests": [
                        {"method": "testFoo", "levels": ["MUST"], "status": "approved", "implementation": "automated"},
                    ],
                },
                {
                    "name": "GroupC",
                    "tests": [
                        {
                            "method": "testBaz",
                            "implementation": "indirect",
                            "covered_by": {"groups": ["GroupA"], "levels": ["MUST"]},
                        },
                    ],
                },
            ],
        }
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "catalog.json"
            path.write_text(json.dumps(document), encoding="utf-8")
            catalog = self.catalog.load_catalog(path)

        baz = catalog.get("GroupC-Baz")
        self.assertTrue(baz.is_indirect)
        self.assertEqual(baz.coverage.groups, frozenset({"GroupA"}))
        self.assertEqual(catalog.get("GroupA-Foo").status, self.model.ReviewStatus.APPROVED)

    def test_invalid_catalog_reports_schema_errors(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "catalog.yaml"
            path.write_text(
                "groups:\n"
                "  - name: GroupA\n"
                "    tests:\n"
                "      - method: testFoo\n"
                "        implementation: sometimes\n",
                encoding="utf-8",
            )
            with self.assertRaises(self.errors.CatalogFormatError) as ctx:
                self.catalog.load_catalog(path)

        self.assertTrue(any(e.startswith("$.groups[0].tests[0].implementation") for e in ctx.exception.errors))

    def test_missing_catalog_file(self) -> None:
        with self.assertRaises(self.errors.CatalogFormatError):
            self.catalog.load_catalog(Path("/nonexistent/catalog.yaml"))


if __name__ == "__main__":
    unittest.main()
