#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
sshd_config directive store

- Resolve the config path (explicit path, SSHD_CONFIG env or possible paths)
- Load the file as UTF-8 text (line endings untouched)
- Query surface used by every rule: value / equals / exists / matches_pattern
- All directive regexes are built here; the patcher imports patch_pattern
  so that evaluation and patching always agree on what a directive line is

Match policy: the first active line (top-down) that assigns a value to a key
wins, which is also how sshd reads global options.
"""

import logging
import os
import re
from functools import lru_cache
from pathlib import Path

from .errors import PermissionDenied, SourceUnavailable

logger = logging.getLogger(__name__)

# ----------------------------
# Config: detection paths
# ----------------------------
DEFAULT_CONFIG_PATH = "/etc/ssh/sshd_config"

POSSIBLE_PATHS = [
    "/etc/ssh/sshd_config",             # Debian/Ubuntu, RHEL, Arch
    "/usr/local/etc/ssh/sshd_config",   # compiled from source / BSD ports
    "/etc/sshd_config",                 # macOS, older layouts
    "/usr/local/etc/sshd_config",
]


def detect_config_path(explicit=None) -> str:
    """CLI path first, then $SSHD_CONFIG, then the first existing known path."""
    if explicit:
        return str(explicit)
    env_path = os.environ.get("SSHD_CONFIG")
    if env_path:
        return env_path
    for p in POSSIBLE_PATHS:
        if os.path.isfile(p):
            return p
    return DEFAULT_CONFIG_PATH


# ----------------------------
# Patterns
# ----------------------------
_ACTIVE_LINE = re.compile(r"^[ \t]*([A-Za-z][A-Za-z0-9]*)[ \t]+([^\s#]+)")


@lru_cache(maxsize=None)
def assignment_pattern(key: str):
    """Active (uncommented) line assigning a value to *key*; group 1 is the value token."""
    return re.compile(rf"^[ \t]*{re.escape(key)}[ \t]+([^\s#]+)", re.IGNORECASE)


@lru_cache(maxsize=None)
def equals_pattern(key: str, expected: str):
    """Whole-line match: *key* set to exactly *expected*, optional trailing comment."""
    return re.compile(
        rf"^\s*{re.escape(key)}\s+{re.escape(expected)}\s*(?:#.*)?$",
        re.IGNORECASE,
    )


@lru_cache(maxsize=None)
def patch_pattern(key: str):
    """Line holding *key* with any value, commented out or not."""
    return re.compile(
        rf"^[ \t]*#?[ \t]*{re.escape(key)}[ \t]+\S[^\r\n]*",
        re.IGNORECASE | re.MULTILINE,
    )


# ----------------------------
# Store
# ----------------------------
class DirectiveStore:
    """Immutable snapshot of a configuration text.

    Queries never raise; an empty source is rejected at construction time.
    A patched configuration gets a new store.
    """

    def __init__(self, text: str, path=None):
        if text is None or not text.strip():
            raise SourceUnavailable(f"SSH config is empty: {path or '<text>'}")
        self._text = text
        self._lines = tuple(text.splitlines())
        self._path = str(path) if path is not None else ""

    @classmethod
    def from_file(cls, path) -> "DirectiveStore":
        p = Path(path)
        try:
            with p.open("r", encoding="utf-8", newline="") as f:
                text = f.read()
        except PermissionError:
            raise PermissionDenied(p)
        except FileNotFoundError:
            raise SourceUnavailable(f"SSH config file not found at {p}")
        except (OSError, UnicodeDecodeError) as e:
            raise SourceUnavailable(f"Cannot read SSH config {p}: {e}")
        logger.debug("Loaded %s (%d bytes)", p, len(text))
        return cls(text, path=p)

    @property
    def text(self) -> str:
        return self._text

    @property
    def path(self) -> str:
        return self._path

    def _assignment_line(self, key):
        pattern = assignment_pattern(key)
        for line in self._lines:
            m = pattern.match(line)
            if m:
                return line, m.group(1)
        return None, None

    def value(self, key: str):
        return self._assignment_line(key)[1]

    def equals(self, key: str, expected: str) -> bool:
        line, _ = self._assignment_line(key)
        if line is None:
            return False
        return bool(equals_pattern(key, str(expected)).match(line))

    def exists(self, key: str) -> bool:
        return self._assignment_line(key)[0] is not None

    def matches_pattern(self, pattern) -> bool:
        if isinstance(pattern, re.Pattern):
            return pattern.search(self._text) is not None
        try:
            return re.search(pattern, self._text, re.MULTILINE) is not None
        except re.error as e:
            logger.warning("Invalid pattern %r: %s", pattern, e)
            return False

    def directives(self):
        """Ordered (key, value) pairs of every active directive line."""
        out = []
        for line in self._lines:
            m = _ACTIVE_LINE.match(line)
            if m:
                out.append((m.group(1), m.group(2)))
        return out
