import json
import tempfile
import unittest
import unittest.mock
from datetime import datetime
from pathlib import Path

import requests

from sshd_agent import report
from sshd_agent.models import CheckResult, ResultSet, Verdict, rating_for

GENERATED = datetime(2024, 1, 2, 3, 4, 5)


def make_results(*verdicts):
    results = ResultSet(config_path="/etc/ssh/sshd_config")
    for i, verdict in enumerate(verdicts):
        results.add(CheckResult(
            name=f"Check {i}",
            description=f"Description {i}",
            verdict=verdict,
            details=f"Details {i}",
            remediation="" if verdict is Verdict.PASS else f"Fix {i}",
            family="network",
        ))
    return results


class TestScore(unittest.TestCase):
    def test_rating_bands(self):
        cases = ((100, "Excellent"), (90, "Excellent"), (89.9, "Good"), (70, "Good"),
                 (69.9, "Fair"), (50, "Fair"), (49.9, "Poor"), (0, "Poor"))
        for score, label in cases:
            self.assertEqual(rating_for(score), label, score)

    def test_empty_result_set(self):
        results = ResultSet()
        self.assertEqual(results.score, 0.0)
        self.assertEqual(results.rating, "Poor")
        self.assertTrue(results.all_passed)

    def test_counts(self):
        results = make_results(Verdict.PASS, Verdict.FAIL, Verdict.WARNING, Verdict.PASS)
        self.assertEqual((results.total, results.passed, results.failed, results.warnings), (4, 2, 1, 1))
        self.assertEqual(results.score, 50.0)
        self.assertEqual(results.summary()["rating"], "Fair")
        self.assertFalse(results.all_passed)

    def test_score_style(self):
        self.assertEqual(report.score_style(80), "pass")
        self.assertEqual(report.score_style(60), "warning")
        self.assertEqual(report.score_style(59.9), "fail")


class TestDisplayModel(unittest.TestCase):
    def test_render_results(self):
        lines = report.render_results(make_results(Verdict.PASS, Verdict.FAIL))
        texts = [text for _, text in lines]
        self.assertIn(("pass", "[✅] Check 0"), lines)
        self.assertIn(("fail", "[❌] Check 1"), lines)
        self.assertIn("    💡 Recommendation: Fix 1", texts)
        self.assertNotIn("    💡 Recommendation: ", texts)
        self.assertNotIn("    Details: Details 0", texts)
        self.assertIn("  Security Score: 50.0% (Fair)", texts)

    def test_verbose_adds_descriptions(self):
        texts = [text for _, text in report.render_results(make_results(Verdict.WARNING), verbose=True)]
        self.assertIn("Config File: /etc/ssh/sshd_config", texts)
        self.assertIn("    Description: Description 0", texts)
        self.assertIn("    Details: Details 0", texts)

    def test_verbose_lists_active_directives(self):
        directives = [("Port", "22"), ("UsePAM", "yes")]
        texts = [text for _, text in report.render_results(make_results(Verdict.PASS), True, directives)]
        self.assertIn("Active Directives (2):", texts)
        self.assertIn("    UsePAM yes", texts)
        quiet = [text for _, text in report.render_results(make_results(Verdict.PASS), False, directives)]
        self.assertNotIn("Active Directives (2):", quiet)


class TestTextReport(unittest.TestCase):
    def test_needs_attention(self):
        text = report.render_text_report(make_results(Verdict.PASS, Verdict.FAIL), GENERATED)
        self.assertIn("Generated: 2024-01-02 03:04:05", text)
        self.assertIn("[FAIL] Check 1", text)
        self.assertIn("  Recommendation: Fix 1", text)
        self.assertIn("  Security Score: 50.0%", text)
        self.assertIn("  Rating: Fair", text)
        self.assertIn("Overall Status: NEEDS ATTENTION", text)

    def test_secure_when_nothing_fails(self):
        text = report.render_text_report(make_results(Verdict.PASS, Verdict.WARNING), GENERATED)
        self.assertIn("Overall Status: SECURE", text)
        self.assertIn("  Recommendation: Fix 1", text)

    def test_write_text_report(self):
        with tempfile.TemporaryDirectory() as td:
            p = report.write_text_report(Path(td) / "r.txt", make_results(Verdict.PASS), GENERATED)
            self.assertIn("SSH SECURITY CHECK REPORT", p.read_text(encoding="utf-8"))


class TestPayload(unittest.TestCase):
    def test_build_payload(self):
        payload = report.build_payload(make_results(Verdict.PASS, Verdict.FAIL), "scan-1", GENERATED)
        self.assertTrue(payload["ok"])
        self.assertEqual(payload["scan_id"], "scan-1")
        self.assertEqual(payload["generated"], "2024-01-02T03:04:05")
        sshd = payload["data"]["sshd"]
        self.assertEqual(sshd["summary"]["failed"], 1)
        self.assertEqual(sshd["results"][1]["verdict"], "FAIL")
        self.assertFalse(sshd["results"][1]["passed"])
        self.assertNotIn("directives", sshd)
        json.dumps(payload)

    def test_payload_carries_directives(self):
        payload = report.build_payload(make_results(Verdict.PASS), generated=GENERATED,
                                       directives=[("Port", "22"), ("X11Forwarding", "no")])
        self.assertEqual(payload["data"]["sshd"]["directives"],
                         [{"directive": "Port", "value": "22"},
                          {"directive": "X11Forwarding", "value": "no"}])

    def test_write_json_report(self):
        payload = report.build_payload(make_results(Verdict.PASS), generated=GENERATED)
        with tempfile.TemporaryDirectory() as td:
            p = report.write_json_report(Path(td) / "r.json", payload)
            self.assertEqual(json.loads(p.read_text(encoding="utf-8")), payload)


class TestUpload(unittest.TestCase):
    def setUp(self):
        self.payload = report.build_payload(make_results(Verdict.PASS), generated=GENERATED)

    def test_success_sends_bearer_token(self):
        response = unittest.mock.Mock(status_code=200, text="ok")
        with unittest.mock.patch("sshd_agent.report.requests.post", return_value=response) as post:
            self.assertTrue(report.upload_report(self.payload, "https://collector/api", "T0K"))
        post.assert_called_once_with(
            "https://collector/api",
            json=self.payload,
            headers={"Authorization": "Bearer T0K"},
            timeout=report.UPLOAD_TIMEOUT,
        )

    def test_rejected(self):
        response = unittest.mock.Mock(status_code=500, text="boom")
        with unittest.mock.patch("sshd_agent.report.requests.post", return_value=response):
            self.assertFalse(report.upload_report(self.payload, "https://collector/api"))

    def test_connection_error(self):
        with unittest.mock.patch("sshd_agent.report.requests.post",
                                 side_effect=requests.ConnectionError("down")):
            self.assertFalse(report.upload_report(self.payload, "https://collector/api"))


if __name__ == "__main__":
    unittest.main()
