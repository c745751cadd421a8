# -*- coding: utf-8 -*-
"""
Report rendering for a ResultSet.

- render_results: pure display model, a list of (style, text) lines that the
  console layer colours and prints
- render_text_report / write_text_report: plain-text report file
- build_payload / write_json_report / upload_report: JSON results, optionally
  POSTed to a collection backend
"""

import json
import logging
from datetime import datetime
from pathlib import Path

import requests

from .models import Verdict

logger = logging.getLogger(__name__)

RULE = "=" * 70
THIN_RULE = "-" * 70

SYMBOLS = {
    Verdict.PASS: "✅",
    Verdict.FAIL: "❌",
    Verdict.WARNING: "⚠️",
}

RATING_MESSAGES = {
    "Excellent": "Excellent! Your SSH configuration is highly secure.",
    "Good": "Good, but there's room for improvement.",
    "Fair": "Fair. Several settings should be hardened.",
    "Poor": "Warning! Your SSH configuration has security vulnerabilities.",
}

UPLOAD_TIMEOUT = 30


def score_style(score: float) -> str:
    if score >= 80:
        return "pass"
    if score >= 60:
        return "warning"
    return "fail"


# ================================================
# Display model
# ================================================
def render_check(check, verbose=False):
    lines = [(check.verdict.value.lower(), f"[{SYMBOLS[check.verdict]}] {check.name}")]
    if verbose and check.description:
        lines.append(("description", f"    Description: {check.description}"))
    if not check.passed and check.remediation:
        lines.append(("recommendation", f"    💡 Recommendation: {check.remediation}"))
    if verbose and check.details:
        lines.append(("details", f"    Details: {check.details}"))
    lines.append(("plain", ""))
    return lines


def render_results(results, verbose=False, directives=None):
    """*directives* are the (key, value) pairs of DirectiveStore.directives(), listed when verbose."""
    lines = [("header", RULE), ("header", "SECURITY CHECK RESULTS"), ("header", RULE)]
    if verbose and results.config_path:
        lines.append(("details", f"Config File: {results.config_path}"))
        lines.append(("plain", ""))
    if verbose and directives:
        lines.append(("details", f"Active Directives ({len(directives)}):"))
        lines.extend(("details", f"    {key} {value}") for key, value in directives)
        lines.append(("plain", ""))
    for check in results:
        lines.extend(render_check(check, verbose))

    score = results.score
    lines += [
        ("header", RULE),
        ("plain", ""),
        ("plain", "Summary:"),
        ("plain", f"  Total Checks: {results.total}"),
        ("pass", f"  Passed: {results.passed}"),
        ("fail", f"  Failed: {results.failed}"),
        ("warning", f"  Warnings: {results.warnings}"),
        ("plain", ""),
        (score_style(score), f"  Security Score: {score:.1f}% ({results.rating})"),
        ("plain", ""),
        (score_style(score), f"  {RATING_MESSAGES[results.rating]}"),
    ]
    return lines


# ================================================
# Plain-text report
# ================================================
def render_text_report(results, generated=None) -> str:
    generated = generated or datetime.now()
    out = [
        "SSH SECURITY CHECK REPORT",
        RULE,
        f"Generated: {generated:%Y-%m-%d %H:%M:%S}",
        f"Config File: {results.config_path}",
        "",
        "SECURITY CHECKS:",
        THIN_RULE,
    ]
    for check in results:
        out.append(f"[{check.verdict.value}] {check.name}")
        if check.description:
            out.append(f"  Description: {check.description}")
        if check.details:
            out.append(f"  Details: {check.details}")
        if not check.passed and check.remediation:
            out.append(f"  Recommendation: {check.remediation}")
        out.append("")

    out += [
        RULE,
        "SUMMARY:",
        f"  Total Checks: {results.total}",
        f"  Passed: {results.passed}",
        f"  Failed: {results.failed}",
        f"  Warnings: {results.warnings}",
        f"  Security Score: {results.score:.1f}%",
        f"  Rating: {results.rating}",
        "",
        f"  Overall Status: {'SECURE' if results.all_passed else 'NEEDS ATTENTION'}",
    ]
    return "\n".join(out) + "\n"


def write_text_report(path, results, generated=None) -> Path:
    p = Path(path)
    p.write_text(render_text_report(results, generated), encoding="utf-8")
    logger.info("Text report written to %s", p)
    return p


# ================================================
# JSON payload
# ================================================
def build_payload(results, scan_id=None, generated=None, directives=None) -> dict:
    generated = generated or datetime.now()
    payload = {
        "ok": True,
        "scan_id": scan_id,
        "generated": generated.isoformat(timespec="seconds"),
        "data": {
            "sshd": {
                "config_path": results.config_path,
                "summary": results.summary(),
                "results": [c.as_dict() for c in results],
            }
        },
    }
    if directives is not None:
        payload["data"]["sshd"]["directives"] = [
            {"directive": key, "value": value} for key, value in directives
        ]
    return payload


def write_json_report(path, payload) -> Path:
    p = Path(path)
    with p.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)
    logger.info("JSON report written to %s", p)
    return p


def upload_report(payload, url, token=None, timeout=UPLOAD_TIMEOUT) -> bool:
    """POST *payload* to *url*; returns False (never raises) when the upload fails."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    try:
        response = requests.post(url, json=payload, headers=headers, timeout=timeout)
    except requests.RequestException as e:
        logger.error("Upload to %s failed: %s", url, e)
        return False
    if response.status_code >= 400:
        logger.error("Upload to %s rejected: %s %s", url, response.status_code, response.text[:200])
        return False
    logger.info("Upload status: %s", response.status_code)
    return True
