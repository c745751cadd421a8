# -*- coding: utf-8 -*-
"""
Remediation of failing checks.

States: IDLE -> BACKUP_PENDING -> PATCHING -> COMMITTED | ROLLED_BACK

Only rules that carry a `fix` entry in the catalog can be repaired; the
system family (service status, file permissions) never can. A backup is taken
before the file is touched and put back if writing the patched text fails.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from . import patcher
from .backup import BackupGuard
from .check_file_sshd import default_catalog
from .errors import PatchPersistFailure, SourceUnavailable
from .models import Backup, PatchRequest, Verdict
from .sshd_config import DirectiveStore

logger = logging.getLogger(__name__)


class RemediationState(Enum):
    IDLE = "idle"
    BACKUP_PENDING = "backup_pending"
    PATCHING = "patching"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class RemediationOutcome:
    state: RemediationState
    message: str = ""
    backup: Optional[Backup] = None
    applied: List[PatchRequest] = field(default_factory=list)
    changed: bool = False
    error: Optional[Exception] = None

    @property
    def success(self) -> bool:
        return self.state is RemediationState.COMMITTED


def fix_table(catalog=None) -> dict:
    """Rule name -> PatchRequest for every auto-fixable rule."""
    catalog = default_catalog() if catalog is None else catalog
    return {r.name: r.fix for r in catalog if r.fix is not None}


def fixable_checks(results, include_warnings=False, catalog=None):
    fixes = fix_table(catalog)
    wanted = {Verdict.FAIL, Verdict.WARNING} if include_warnings else {Verdict.FAIL}
    return [c for c in results if c.verdict in wanted and c.name in fixes]


def write_config(path, text: str) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise PatchPersistFailure(f"Failed to write {path}: {e}")


def select_all(checks):
    return list(checks)


class Remediator:
    def __init__(self, config_path, select=select_all, catalog=None, now=None):
        self.config_path = str(config_path)
        self.select = select
        self.fixes = fix_table(catalog)
        self.now = now
        self.state = RemediationState.IDLE

    def _enter(self, state):
        logger.debug("remediation %s -> %s", self.state.value, state.value)
        self.state = state

    def requests_for(self, checks):
        return [self.fixes[c.name] for c in checks if c.name in self.fixes]

    def plan(self, checks):
        """(current text, patched text) for *checks* without touching the file."""
        current = DirectiveStore.from_file(self.config_path).text
        return current, patcher.apply_many(current, self.requests_for(checks), now=self.now)

    def run(self, candidates) -> RemediationOutcome:
        """Fix the selected checks among *candidates* (already filtered by fixable_checks)."""
        self.state = RemediationState.IDLE
        candidates = [c for c in candidates if c.name in self.fixes]
        if not candidates:
            return RemediationOutcome(self.state, "No automatically fixable issues found.")

        selected = [c for c in self.select(candidates) if c.name in self.fixes]
        if not selected:
            return RemediationOutcome(self.state, "No issues selected for remediation.")
        requests = self.requests_for(selected)

        self._enter(RemediationState.BACKUP_PENDING)
        guard = BackupGuard(self.config_path, now=self.now)
        try:
            # BackupFailure escapes from here before anything is written
            with guard as backup:
                self._enter(RemediationState.PATCHING)
                current = DirectiveStore.from_file(self.config_path).text
                patched = patcher.apply_many(current, requests, now=self.now)
                changed = patched != current
                if changed:
                    write_config(self.config_path, patched)
        except (PatchPersistFailure, SourceUnavailable) as e:
            self._enter(RemediationState.ROLLED_BACK)
            logger.error("Remediation rolled back: %s", e)
            return RemediationOutcome(
                self.state,
                f"Failed to apply fixes: {e}. Configuration restored from backup.",
                backup=guard.backup,
                error=e,
            )

        self._enter(RemediationState.COMMITTED)
        message = ("Security fixes applied successfully!" if changed
                   else "Configuration already contains the selected fixes.")
        return RemediationOutcome(self.state, message, backup=backup,
                                  applied=requests, changed=changed)
