#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SSH Security Check runner (Audit + Report + Remediation)

- Resolve and load sshd_config
- Evaluate the hardening rules
- Print the results, write text/JSON reports, optionally upload the JSON
- --fix: back up the config and repair the selected failing directives

Exit code: 0 when no check FAILs, 1 otherwise or on a fatal error.
"""

import argparse
import logging
import os
import sys
import traceback

from . import __version__, check_file_sshd, console
from .backup import list_backups, restore_from_backup
from .check_file_sshd import default_catalog, load_catalog
from .errors import AuditError
from .patcher import preview_diff
from .remediation import RemediationState, Remediator, fixable_checks, select_all
from .report import (build_payload, render_results, upload_report,
                     write_json_report, write_text_report)
from .sshd_config import DirectiveStore, detect_config_path
from .system_probe import ensure_supported_platform

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="sshd-agent",
        description="Audit an OpenSSH server configuration and optionally fix it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
examples:
  sudo sshd-agent
  sudo sshd-agent --verbose
  sudo sshd-agent --config /etc/ssh/sshd_config.d/custom.conf
  sudo sshd-agent --verbose --output security-report.txt
  sudo sshd-agent --fix
  sudo sshd-agent --fix --yes --include-warnings
  sudo sshd-agent --fix --dry-run
  sudo sshd-agent --json result.json --upload-url https://collector/api --token T

--fix will list the fixable issues, ask which ones to repair, back up the
configuration and rewrite the selected directives. Always keep an active SSH
session open when using --fix to prevent lockout.
""",
    )
    p.add_argument("-v", "--verbose", action="store_true",
                   help="show descriptions and details for every check")
    p.add_argument("-c", "--config", metavar="PATH",
                   help="sshd_config to audit (default: $SSHD_CONFIG or /etc/ssh/sshd_config)")
    p.add_argument("-o", "--output", metavar="FILE", help="save a plain-text report")
    p.add_argument("--json", metavar="FILE", dest="json_file", help="save the results as JSON")
    p.add_argument("--rules", metavar="FILE", help="use another rule catalog (YAML)")
    p.add_argument("-f", "--fix", action="store_true", help="interactive remediation mode")
    p.add_argument("-y", "--yes", action="store_true",
                   help="with --fix: repair every fixable issue without prompting")
    p.add_argument("--include-warnings", action="store_true",
                   help="with --fix: also offer fixable warnings")
    p.add_argument("--dry-run", action="store_true",
                   help="with --fix: show the patch as a diff without writing it")
    p.add_argument("--list-backups", action="store_true",
                   help="list backups of the configuration and exit")
    p.add_argument("--restore", metavar="BACKUP",
                   help="copy BACKUP over the configuration and exit")
    p.add_argument("--upload-url", default=os.environ.get("SSHD_AGENT_UPLOAD_URL"),
                   help="POST the JSON results to this URL")
    p.add_argument("--token", default=os.environ.get("SSHD_AGENT_TOKEN"),
                   help="bearer token for --upload-url")
    p.add_argument("--scan-id", help="scan identifier included in the JSON payload")
    p.add_argument("--debug", action="store_true", help="debug logging on stderr")
    return p


def configure_logging(args) -> None:
    level = logging.WARNING
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ----------------------------
# Maintenance commands
# ----------------------------
def show_backups(config_path) -> int:
    backups = list_backups(config_path)
    if not backups:
        console.info(f"No backups found for {config_path}")
        return 0
    console.info(f"Backups of {config_path} (newest first):")
    for b in backups:
        print(f"  {b}")
    return 0


def restore(backup_path, config_path) -> int:
    try:
        restore_from_backup(backup_path, config_path)
    except OSError as e:
        console.error(f"Failed to restore backup: {e}")
        console.error(f"Manual restore required: sudo cp {backup_path} {config_path}")
        return 1
    console.success(f"Configuration restored from {backup_path}")
    console.info("Test it with 'sudo sshd -t' and restart the SSH service.")
    return 0


# ----------------------------
# Remediation
# ----------------------------
def remediate(args, config_path, results, catalog):
    """Run --fix; returns the ResultSet that decides the exit code."""
    candidates = fixable_checks(results, args.include_warnings, catalog)
    if not results.failed and not (args.include_warnings and candidates):
        console.success("No failed checks to remediate. All security checks passed!")
        return results
    if not candidates:
        console.info("No automatically fixable issues found.")
        return results

    select = select_all if args.yes else console.select_checks_to_fix
    remediator = Remediator(config_path, select=select, catalog=catalog)

    if args.dry_run:
        selected = select(candidates)
        current, patched = remediator.plan(selected)
        diff = preview_diff(current, patched, config_path)
        if diff:
            print(diff)
        else:
            console.info("No changes needed.")
        return results

    if os.name == "posix" and os.geteuid() != 0:
        console.warn("Not running as root: writing the configuration may fail.")

    outcome = remediator.run(candidates)
    if outcome.state is RemediationState.IDLE:
        console.info(outcome.message)
        return results
    if outcome.state is RemediationState.ROLLED_BACK:
        console.error(outcome.message)
        return results

    console.success(f"Backup created: {outcome.backup.path}")
    console.success(outcome.message)
    for req in outcome.applied:
        print(f"   {req.directive} {req.value}")
    console.next_steps(outcome.backup.path, config_path)

    # re-check the rewritten file
    store = DirectiveStore.from_file(config_path)
    after = check_file_sshd.run(store, catalog=catalog)
    console.info(
        f"Re-check: {after.passed}/{after.total} passed, {after.failed} failed, "
        f"score {results.score:.1f}% -> {after.score:.1f}%"
    )
    return after


# ----------------------------
# Main
# ----------------------------
def run(args) -> int:
    config_path = detect_config_path(args.config)

    if args.list_backups:
        return show_backups(config_path)
    if args.restore:
        return restore(args.restore, config_path)

    ensure_supported_platform()
    catalog = load_catalog(args.rules) if args.rules else default_catalog()
    store = DirectiveStore.from_file(config_path)
    results = check_file_sshd.run(store, catalog=catalog)

    directives = store.directives()
    console.show(render_results(results, args.verbose, directives))
    ok = True
    payload = build_payload(results, scan_id=args.scan_id, directives=directives)

    try:
        if args.output:
            write_text_report(args.output, results)
            console.success(f"Report saved to: {args.output}")
        if args.json_file:
            write_json_report(args.json_file, payload)
            console.success(f"JSON results saved to: {args.json_file}")
    except OSError as e:
        console.error(f"Could not write report: {e}")
        ok = False

    if args.upload_url:
        if upload_report(payload, args.upload_url, args.token):
            console.success(f"Results uploaded to {args.upload_url}")
        else:
            console.warn(f"Upload to {args.upload_url} failed (see log)")

    if args.fix:
        results = remediate(args, config_path, results, catalog)

    return 0 if ok and results.all_passed else 1


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args)
    console.header(__version__)

    try:
        return run(args)
    except AuditError as e:
        console.error(str(e))
        if args.verbose:
            print(f"\nStack Trace:\n{traceback.format_exc()}")
        return 1
    except KeyboardInterrupt:
        print()
        console.warn("Interrupted by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
