# -*- coding: utf-8 -*-
"""
Timestamped backups of the configuration file.

BackupGuard copies the file before any patch and puts the copy back if the
guarded block raises. Backups are never deleted by sshd-agent.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path

from .errors import BackupFailure, RestoreFailure
from .models import Backup

logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".backup_"


def _backup_path(config: Path, now=None) -> Path:
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    candidate = config.with_name(f"{config.name}{BACKUP_SUFFIX}{timestamp}")
    n = 1
    while candidate.exists():
        candidate = config.with_name(f"{config.name}{BACKUP_SUFFIX}{timestamp}_{n}")
        n += 1
    return candidate


def verify_backup(backup_path) -> bool:
    p = Path(backup_path)
    return p.is_file() and p.stat().st_size > 0


def create_backup(config_path, now=None) -> Backup:
    config = Path(config_path)
    if not config.is_file():
        raise BackupFailure(f"Configuration file not found: {config}")
    target = _backup_path(config, now)
    try:
        shutil.copy2(config, target)
    except PermissionError as e:
        raise BackupFailure(f"Failed to create backup {target}: {e} (try running with sudo)")
    except OSError as e:
        raise BackupFailure(f"Failed to create backup {target}: {e}")
    if not verify_backup(target):
        raise BackupFailure(f"Backup {target} is missing or empty")
    logger.info("Backup created: %s", target)
    return Backup(source=str(config), path=str(target))


def restore_from_backup(backup_path, original_path) -> None:
    backup = Path(backup_path)
    if not backup.is_file():
        raise FileNotFoundError(f"Backup file not found: {backup}")
    shutil.copyfile(backup, original_path)
    logger.info("Restored %s from %s", original_path, backup)


def list_backups(config_path):
    """Backups of *config_path*, newest first."""
    config = Path(config_path)
    directory = config.parent
    if not directory.is_dir():
        return []
    return sorted(
        (str(p) for p in directory.glob(f"{config.name}{BACKUP_SUFFIX}*") if p.is_file()),
        reverse=True,
    )


class BackupGuard:
    """Context manager: back up on enter, restore on an exception inside the block.

        with BackupGuard(path) as backup:
            write_patched_config(path)
    """

    def __init__(self, config_path, now=None):
        self.config_path = str(config_path)
        self.now = now
        self.backup = None
        self.restored = False

    def acquire(self) -> Backup:
        self.backup = create_backup(self.config_path, self.now)
        return self.backup

    def restore(self) -> None:
        if self.backup is None:
            return
        try:
            restore_from_backup(self.backup.path, self.config_path)
        except OSError as e:
            logger.error("Restore of %s failed: %s", self.config_path, e)
            raise RestoreFailure(self.backup.path, self.config_path, e)
        self.restored = True

    def __enter__(self) -> Backup:
        return self.acquire()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and issubclass(exc_type, Exception):
            logger.warning("Rolling back %s after error: %s", self.config_path, exc)
            self.restore()
        return False
