# -*- coding: utf-8 -*-
"""
Rewrite sshd_config directives in place.

A directive that already appears (active or commented out) is replaced on its
first line only; later duplicates are left as they are. A missing directive is
appended at the end of the file under a provenance comment. Applying the same
request twice yields the same text as applying it once.
"""

import difflib
import logging
from datetime import datetime

from .sshd_config import patch_pattern

logger = logging.getLogger(__name__)

PROVENANCE = "# Added by sshd-agent on"


def _newline(text):
    return "\r\n" if "\r\n" in text else "\n"


def apply(text: str, key: str, value: str, now=None) -> str:
    line = f"{key} {value}"
    m = patch_pattern(key).search(text)
    if m:
        if m.group(0) != line:
            logger.debug("Replacing %r with %r", m.group(0), line)
        return text[:m.start()] + line + text[m.end():]

    nl = _newline(text)
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    block = f"{PROVENANCE} {stamp}{nl}{line}{nl}"
    logger.debug("Appending %r", line)
    if not text:
        return block
    if not text.endswith("\n"):
        text += nl
    return text + nl + block


def apply_many(text: str, requests, now=None) -> str:
    """Apply each PatchRequest in order."""
    now = now or datetime.now()
    for req in requests:
        text = apply(text, req.directive, req.value, now=now)
    return text


def preview_diff(old: str, new: str, path="sshd_config") -> str:
    return "".join(difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"{path} (current)",
        tofile=f"{path} (patched)",
    ))
