# -*- coding: utf-8 -*-
"""Terminal output: colours the report display model and asks y/n questions."""

import sys


class _C:
    BOLD = "\033[1m"
    DIM = "\033[2m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    CYAN = "\033[36m"
    GRAY = "\033[90m"
    RESET = "\033[0m"


# TTY check runs once at import time against the real stdout.
if not sys.stdout.isatty():
    _C.BOLD = _C.DIM = _C.GREEN = _C.YELLOW = _C.RED = ""
    _C.CYAN = _C.GRAY = _C.RESET = ""


def _style(style):
    return {
        "header": _C.BOLD,
        "pass": _C.GREEN,
        "fail": _C.RED,
        "warning": _C.YELLOW,
        "description": _C.GRAY,
        "recommendation": _C.CYAN,
        "details": _C.DIM,
    }.get(style, "")


def show(lines) -> None:
    """Print a display model produced by report.render_results."""
    for style, text in lines:
        color = _style(style)
        print(f"{color}{text}{_C.RESET}" if color and text else text)


def header(version: str) -> None:
    print(f"{_C.BOLD}=== SSH Security Check for Linux OS ==={_C.RESET}")
    print(f"Version: {version}")
    print("Description: Comprehensive SSH security configuration analyzer\n")


def info(msg: str) -> None:
    print(f"{_C.CYAN}ℹ️  {msg}{_C.RESET}")


def success(msg: str) -> None:
    print(f"{_C.GREEN}✅ {msg}{_C.RESET}")


def warn(msg: str) -> None:
    print(f"{_C.YELLOW}⚠️  {msg}{_C.RESET}")


def error(msg: str) -> None:
    print(f"{_C.RED}❌ Error: {msg}{_C.RESET}")


def prompt_yes_no(message: str, input_fn=input) -> bool:
    while True:
        try:
            response = input_fn(f"{message} (y/n): ").strip().lower()
        except EOFError:
            return False
        if response in ("y", "yes"):
            return True
        if response in ("n", "no"):
            return False
        print("Please enter 'y' for yes or 'n' for no.")


def select_checks_to_fix(checks, input_fn=input):
    """Walk through fixable checks and keep those the operator confirms."""
    print(f"\n{_C.BOLD}{'─' * 66}")
    print("  INTERACTIVE SECURITY REMEDIATION")
    print(f"{'─' * 66}{_C.RESET}\n")
    print(f"Found {len(checks)} security issue(s) that can be automatically fixed.\n")

    selected = []
    for check in checks:
        print(f"{_C.YELLOW}┌ {check.name}{_C.RESET}")
        print(f"│  Issue: {check.details}")
        print(f"{_C.CYAN}│  Fix: {check.remediation}{_C.RESET}")
        print("└")
        if prompt_yes_no("  Do you want to fix this issue?", input_fn):
            selected.append(check)
        print()
    return selected


def next_steps(backup_path: str, config_path: str) -> None:
    print(f"\n{_C.BOLD}{'─' * 66}")
    print("  IMPORTANT NEXT STEPS")
    print(f"{'─' * 66}{_C.RESET}")
    print("\n1. Test the SSH configuration:")
    print(f"{_C.CYAN}   sudo sshd -t{_C.RESET}")
    print("\n2. If test passes, restart SSH service:")
    print(f"{_C.CYAN}   sudo systemctl restart sshd{_C.RESET}")
    print("\n3. Keep your current SSH session open!")
    print(f"{_C.YELLOW}   ⚠️  Test login in a NEW terminal before closing this one.{_C.RESET}")
    print("\n4. If something goes wrong, restore from backup:")
    print(f"{_C.CYAN}   sudo cp {backup_path} {config_path}")
    print(f"   sudo systemctl restart sshd{_C.RESET}")
