#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unified sshd_config Rule Evaluator

Rules live in rules/sshd_rules.yaml (one flat, ordered table). Each rule
names a `type`; the matching handler below turns a DirectiveStore (plus the
host probes for the system family) into a verdict and a detail line.
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

import yaml

from .errors import CatalogError
from .models import CheckResult, PatchRequest, ResultSet, Verdict
from .system_probe import SystemProbes

logger = logging.getLogger(__name__)

RULES_FILE = Path(__file__).resolve().parent / "rules" / "sshd_rules.yaml"

FAMILIES = ("authentication", "protocol", "access", "network", "session", "system")


@dataclass(frozen=True)
class Rule:
    name: str
    family: str
    type: str
    description: str
    remediation: str = ""
    details: dict = field(default_factory=dict)
    params: dict = field(default_factory=dict)
    fix: Optional[PatchRequest] = None

    def detail(self, key, value=None, default=""):
        template = self.details.get(key) or default
        return template.format(value=value) if value is not None else template


# =============================
# LOAD HELPERS
# =============================

def load_yaml_rules(file_path: Path):
    if not file_path.exists():
        raise CatalogError(f"Rule file not found: {file_path}")
    try:
        with file_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {file_path}: {e}")
    if isinstance(data, dict):
        data = data.get("rules")
    if not isinstance(data, list) or not data:
        raise CatalogError(f"No rules defined in {file_path}")
    return data


def _as_text(rule_name, key, value):
    # an unquoted yes/no in YAML arrives as a bool
    if isinstance(value, bool):
        raise CatalogError(f"{rule_name}: '{key}' must be a quoted string, got {value!r}")
    return str(value)


def build_rule(raw: dict) -> Rule:
    if not isinstance(raw, dict):
        raise CatalogError(f"Rule entries must be mappings, got {raw!r}")
    name = raw.get("name")
    rule_type = (raw.get("type") or "").strip()
    if not name or not rule_type:
        raise CatalogError(f"Rule is missing 'name' or 'type': {raw!r}")

    family = raw.get("family", "")
    if family not in FAMILIES:
        raise CatalogError(f"{name}: unknown family '{family}'")

    params = {k: v for k, v in raw.items()
              if k not in ("name", "family", "type", "description", "remediation", "details", "fix")}
    if "expected" in params:
        params["expected"] = _as_text(name, "expected", params["expected"])
    if "otherwise" in params:
        try:
            params["otherwise"] = Verdict(str(params["otherwise"]).upper())
        except ValueError:
            raise CatalogError(f"{name}: invalid 'otherwise' verdict {params['otherwise']!r}")
    if "pattern" in params:
        try:
            params["pattern"] = re.compile(params["pattern"], re.MULTILINE)
        except re.error as e:
            raise CatalogError(f"{name}: invalid pattern: {e}")

    fix = None
    raw_fix = raw.get("fix")
    if raw_fix:
        if not isinstance(raw_fix, dict) or "directive" not in raw_fix or "value" not in raw_fix:
            raise CatalogError(f"{name}: 'fix' needs a directive and a value")
        fix = PatchRequest(str(raw_fix["directive"]), _as_text(name, "fix.value", raw_fix["value"]))

    return Rule(
        name=str(name),
        family=family,
        type=rule_type,
        description=str(raw.get("description", "")),
        remediation=str(raw.get("remediation", "")).strip(),
        details=dict(raw.get("details") or {}),
        params=params,
        fix=fix,
    )


def load_catalog(file_path=None):
    """Load and validate the ordered rule table."""
    path = Path(file_path) if file_path else RULES_FILE
    rules = [build_rule(raw) for raw in load_yaml_rules(path)]
    seen = set()
    for r in rules:
        if r.name in seen:
            raise CatalogError(f"Duplicate rule name: {r.name}")
        seen.add(r.name)
    logger.debug("Loaded %d rules from %s", len(rules), path)
    return tuple(rules)


@lru_cache(maxsize=1)
def default_catalog():
    return load_catalog(RULES_FILE)


# =============================
# UTILS
# =============================

def _directives(rule):
    names = rule.params.get("directives") or [rule.params.get("directive")]
    return [d for d in names if d]


def parse_int(value):
    if value is None or not re.fullmatch(r"[+-]?\d+", value.strip()):
        return None
    return int(value)


def in_range(number, bounds):
    if "gt" in bounds and not number > bounds["gt"]:
        return False
    if "ge" in bounds and not number >= bounds["ge"]:
        return False
    if "lt" in bounds and not number < bounds["lt"]:
        return False
    if "le" in bounds and not number <= bounds["le"]:
        return False
    return True


# =============================
# HANDLERS (one per rule type)
# =============================

def check_root_login(rule, store, probes):
    directive = rule.params["directive"]
    value = (store.value(directive) or "").lower()
    if value == "no":
        return Verdict.PASS, rule.detail("pass")
    if value == "prohibit-password":
        return Verdict.WARNING, rule.detail("warning")
    return Verdict.FAIL, rule.detail("fail")


def check_directive_equals(rule, store, probes):
    expected = rule.params["expected"]
    if any(store.equals(d, expected) for d in _directives(rule)):
        return Verdict.PASS, rule.detail("pass")
    return rule.params.get("otherwise", Verdict.WARNING), rule.detail("fail")


def check_integer_range(rule, store, probes):
    directive = rule.params["directive"]
    value = store.value(directive)
    if value is None:
        return Verdict.WARNING, rule.detail("missing", default=f"{directive} is not configured")
    number = parse_int(value)
    if number is not None and in_range(number, rule.params.get("range") or {}):
        return Verdict.PASS, rule.detail("pass", number)
    return Verdict.WARNING, rule.detail("fail", value)


def check_directive_present(rule, store, probes):
    directive = rule.params["directive"]
    value = store.value(directive)
    if value:
        return Verdict.PASS, rule.detail("pass", value)
    return Verdict.WARNING, rule.detail("missing", default=f"{directive} is not configured")


def check_any_present(rule, store, probes):
    if any(store.exists(d) for d in _directives(rule)):
        return Verdict.PASS, rule.detail("pass")
    return Verdict.WARNING, rule.detail("fail")


def check_pattern_absent(rule, store, probes):
    if store.matches_pattern(rule.params["pattern"]):
        return Verdict.FAIL, rule.detail("fail")
    return Verdict.PASS, rule.detail("pass")


def check_service_active(rule, store, probes):
    services = rule.params.get("services") or []
    if any(probes.service_running(s) for s in services):
        return Verdict.PASS, rule.detail("pass")
    return Verdict.FAIL, rule.detail("fail")


def check_file_mode(rule, store, probes):
    if not probes.posix:
        return Verdict.WARNING, rule.detail("skipped")
    path = probes.config_path or store.path
    if not path:
        return Verdict.WARNING, "No config file path to inspect"
    mode = probes.mode_of(path)
    if mode is None:
        return Verdict.WARNING, f"{path} not found"
    shown = format(mode, "o")
    if mode & 0o002:
        return Verdict.FAIL, rule.detail("fail", shown)
    return Verdict.PASS, rule.detail("pass", shown)


def check_key_modes(rule, store, probes):
    if not probes.posix:
        return Verdict.WARNING, rule.detail("skipped")
    issues = []
    for key_file in rule.params.get("paths") or []:
        mode = probes.mode_of(key_file)
        if mode is None:
            continue
        # private keys must be 0600: no group/other read or write
        if mode & 0o066:
            issues.append(Path(key_file).name)
    if issues:
        return Verdict.FAIL, rule.detail("fail", ", ".join(issues))
    return Verdict.PASS, rule.detail("pass")


HANDLERS = {
    "root_login": check_root_login,
    "directive_equals": check_directive_equals,
    "integer_range": check_integer_range,
    "directive_present": check_directive_present,
    "any_present": check_any_present,
    "pattern_absent": check_pattern_absent,
    "service_active": check_service_active,
    "file_mode": check_file_mode,
    "key_modes": check_key_modes,
}


# =============================
# UNIVERSAL RULE EVALUATOR
# =============================

def evaluate_rule(store, rule: Rule, probes: SystemProbes) -> CheckResult:
    """Evaluate one rule; never raises, a broken check becomes a WARNING."""
    handler = HANDLERS.get(rule.type)
    if handler is None:
        verdict, details = Verdict.WARNING, f"No recognized rule type: '{rule.type}'"
    else:
        try:
            verdict, details = handler(rule, store, probes)
        except Exception as e:
            logger.warning("Check '%s' could not be evaluated: %s", rule.name, e)
            verdict, details = Verdict.WARNING, f"Check could not be evaluated: {e}"

    logger.debug("%s -> %s :: %s", rule.name, verdict.value, details)
    return CheckResult(
        name=rule.name,
        description=rule.description,
        verdict=verdict,
        details=details,
        remediation="" if verdict is Verdict.PASS else rule.remediation,
        family=rule.family,
    )


def run(store, probes: Optional[SystemProbes] = None, catalog=None) -> ResultSet:
    """Run every rule of *catalog* in order against *store*."""
    catalog = default_catalog() if catalog is None else catalog
    if probes is None:
        probes = SystemProbes(config_path=store.path)
    results = ResultSet(config_path=store.path)
    for rule in catalog:
        results.add(evaluate_rule(store, rule, probes))
    logger.info("Evaluated %d rules: %d PASS / %d FAIL / %d WARNING",
                results.total, results.passed, results.failed, results.warnings)
    return results
