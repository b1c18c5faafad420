from __future__ import annotations

import contextlib
import io
import json
import sys
import tempfile
import unittest
import warnings
from pathlib import Path

FEED = {
    "suites": [
        {
            "name": "ldp-server",
            "parameters": {"server": "http://localhost:8080/"},
            "passed": [
                {"group": "RdfSourceTest", "method": "testGetResource", "levels": ["MUST"], "duration_ms": 20},
                {"group": "CommonResourceTest", "method": "testGetResource", "levels": ["MUST"]},
            ],
            "failed": [{"group": "RdfSourceTest", "method": "testRelativeUriResolutionPut", "message": "wrong base"}],
            "skipped": [{"group": "CommonResourceTest", "method": "testIsHttp11Manual"}],
        }
    ]
}


class TestCli(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        repo_root = Path(__file__).resolve().parents[1]
        cls.src = repo_root / "conformance" / "python" / "src"
        sys.path.insert(0, str(cls.src))

        import ldp_conformance.cli as cli  # noqa: E402
        import ldp_conformance.errors as errors  # noqa: E402

        cls.cli = cli
        cls.errors = errors

    @classmethod
    def tearDownClass(cls) -> None:
        try:
            sys.path.remove(str(cls.src))
        except ValueError:
            pass

    def _main(self, argv: list[str]) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err), warnings.catch_warnings():
            warnings.simplefilter("ignore", self.errors.UnresolvedCoverageWarning)
            code = self.cli.main(argv)
        return code, out.getvalue(), err.getvalue()

    def _feed(self, tmp: Path, document=FEED) -> Path:
        path = tmp / "results.json"
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    def test_report_writes_artifacts(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            out_dir = tmp_path / "report"
            code, out, err = self._main(
                [
                    "report",
                    "--results",
                    str(self._feed(tmp_path)),
                    "--out",
                    str(out_dir),
                    "--timestamp",
                    "2024-05-01T12:00:00Z",
                ]
            )

            self.assertEqual(code, 0, err)
            self.assertIn("tests=69 passed=3 failed=2 skipped=1", out)
            self.assertEqual(out.count("Wrote report:"), 3)
            self.assertTrue((out_dir / "ldp-testsuite-execution-report-earl.ttl").is_file())
            self.assertTrue((out_dir / "ldp-testsuite-execution-report-earl.jsonld").is_file())
            dashboard = (out_dir / "LdpTestSuiteHtmlReport.html").read_text(encoding="utf-8")

        self.assertIn("2024-05-01T12:00:00+00:00", dashboard)
        self.assertIn("wrong base", dashboard)
        self.assertIn("server=http://localhost:8080/", dashboard)

    def test_report_with_config_and_progress(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            config = tmp_path / "report.yaml"
            config.write_text(
                f"output_dir: {tmp_path / 'configured'}\n"
                "report_title: Example Server Report\n"
                "subject:\n"
                "  name: Example Server\n",
                encoding="utf-8",
            )
            code, out, err = self._main(
                ["report", "--results", str(self._feed(tmp_path)), "--config", str(config), "--progress"]
            )

            self.assertEqual(code, 0, err)
            dashboard = (tmp_path / "configured" / "LdpTestSuiteHtmlReport.html").read_text(encoding="utf-8")

        self.assertIn("<title>Example Server Report</title>", dashboard)
        self.assertIn("Example Server", dashboard)
        self.assertIn("testRelativeUriResolutionPut", out)
        self.assertIn("[FAILURE] RdfSource.testRelativeUriResolutionPut", err)

    def test_report_from_junit(self) -> None:
        junit = (
            '<testsuite name="junit">'
            '<testcase classname="org.w3.ldp.testsuite.test.RdfSourceTest" name="testGetResource" time="0.02"/>'
            '<testcase classname="org.w3.ldp.testsuite.test.CommonResourceTest" name="testGetResource">'
            '<failure message="no Link header"/></testcase>'
            "</testsuite>"
        )
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            results = tmp_path / "junit.xml"
            results.write_text(junit, encoding="utf-8")
            code, out, err = self._main(
                ["report", "--results", str(results), "--junit", "--out", str(tmp_path / "out")]
            )

        self.assertEqual(code, 0, err)
        self.assertIn("passed=2 failed=2", out)

    def test_invalid_feed_exits_2(self) -> None:
        document = {"suites": [{"name": "x", "passed": [{"group": "RdfSourceTest"}]}]}
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            code, out, err = self._main(
                ["report", "--results", str(self._feed(tmp_path, document)), "--out", str(tmp_path / "out")]
            )
            self.assertFalse((tmp_path / "out").exists())

        self.assertEqual(code, 2)
        self.assertIn("error:", err)
        self.assertIn("$.suites[0].passed[0]", err)

    def test_unknown_test_exits_2(self) -> None:
        document = {"suites": [{"name": "x", "passed": [{"group": "RdfSourceTest", "method": "testNoSuchThing"}]}]}
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            code, _, err = self._main(
                ["report", "--results", str(self._feed(tmp_path, document)), "--out", str(tmp_path / "out")]
            )

        self.assertEqual(code, 2)
        self.assertIn("RdfSource-NoSuchThing", err)

    def test_write_failure_exits_1(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            out_dir = tmp_path / "report"
            (out_dir / "LdpTestSuiteHtmlReport.html").mkdir(parents=True)
            code, _, err = self._main(["report", "--results", str(self._feed(tmp_path)), "--out", str(out_dir)])

            self.assertTrue((out_dir / "ldp-testsuite-execution-report-earl.ttl").is_file())

        self.assertEqual(code, 1)
        self.assertIn("LdpTestSuiteHtmlReport.html", err)

    def test_bad_config_exits_2(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            config = tmp_path / "report.yaml"
            config.write_text("levels: [OPTIONAL]\n", encoding="utf-8")
            code, _, err = self._main(["manifest", "--config", str(config), "--out", str(tmp_path)])

        self.assertEqual(code, 2)
        self.assertIn("OPTIONAL", err)

    def test_manifest_and_coverage(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            code, out, err = self._main(["manifest", "--out", str(tmp_path)])
            self.assertEqual(code, 0, err)
            self.assertEqual(out.count("Wrote manifest:"), 2)
            self.assertTrue((tmp_path / "ldp-earl-manifest.ttl").is_file())

            code, out, err = self._main(["coverage", "--out", str(tmp_path)])
            self.assertEqual(code, 0, err)
            self.assertTrue((tmp_path / "LdpTestCasesHtmlReport.html").is_file())

    def test_convert(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            source = tmp_path / "data.ttl"
            source.write_text(
                "@prefix earl: <http://www.w3.org/ns/earl#> .\n"
                "<http://example.org/t> a earl:TestCase .\n",
                encoding="utf-8",
            )
            code, out, err = self._main(["convert", str(source)])
            self.assertEqual(code, 0, err)
            document = json.loads((tmp_path / "data.jsonld").read_text(encoding="utf-8"))
            self.assertIn("@context", document)

            target = tmp_path / "named.jsonld"
            code, _, _ = self._main(["convert", str(source), "--output", str(target)])
            self.assertEqual(code, 0)
            self.assertTrue(target.is_file())

    def test_convert_errors(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            tmp_path = Path(tmp)
            code, _, err = self._main(["convert", str(tmp_path / "missing.ttl")])
            self.assertEqual(code, 2)
            self.assertIn("No such file", err)

            broken = tmp_path / "broken.ttl"
            broken.write_text("this is not turtle <", encoding="utf-8")
            code, _, err = self._main(["convert", str(broken)])
            self.assertEqual(code, 2)
            self.assertIn("Invalid Turtle", err)


if __name__ == "__main__":
    unittest.main()
