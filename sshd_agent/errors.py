# -*- coding: utf-8 -*-
"""
Exception hierarchy for the audit and remediation engine.

Fatal kinds abort the run at the CLI; CollaboratorUnavailable is always
downgraded to a WARNING result by the evaluator.
"""


class AuditError(Exception):
    """Base class for every error raised by sshd-agent."""


# ----------------------------
# Startup / input
# ----------------------------
class SourceUnavailable(AuditError):
    """The configuration file is missing, empty or unreadable."""


class PermissionDenied(SourceUnavailable):
    """The configuration file exists but the current user may not read it."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(
            f"Permission denied reading {self.path}. "
            "Please run with elevated privileges (e.g. sudo sshd-agent)."
        )


class UnsupportedPlatform(AuditError):
    """The host is not a Linux system."""


class CatalogError(AuditError):
    """The rule catalog could not be loaded or is malformed."""


class CollaboratorUnavailable(AuditError):
    """An external probe (permissions, service status) could not be queried."""


# ----------------------------
# Remediation
# ----------------------------
class RemediationError(AuditError):
    pass


class BackupFailure(RemediationError):
    """The backup could not be created; nothing has been modified."""


class PatchPersistFailure(RemediationError):
    """Writing the patched configuration failed."""


class RestoreFailure(RemediationError):
    """Restoring the backup after a failed patch failed as well."""

    def __init__(self, backup_path, config_path, reason):
        self.backup_path = str(backup_path)
        self.config_path = str(config_path)
        super().__init__(
            f"Failed to restore backup: {reason}. "
            f"Manual restore required: sudo cp {self.backup_path} {self.config_path}"
        )
