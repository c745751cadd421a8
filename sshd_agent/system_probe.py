# -*- coding: utf-8 -*-
"""
Host probes used by the system-family rules.

- platform gate (Linux only)
- service status via `systemctl is-active`
- POSIX permission bits of the config and host key files
"""

import logging
import os
import platform
import stat
import subprocess
from pathlib import Path

from .errors import CollaboratorUnavailable, UnsupportedPlatform

logger = logging.getLogger(__name__)

SERVICE_TIMEOUT = 10


def is_posix() -> bool:
    return os.name == "posix"


def ensure_supported_platform() -> None:
    system = platform.system()
    if system != "Linux":
        raise UnsupportedPlatform(
            f"This application must be run on a Linux system (detected: {system or 'unknown'})."
        )


def run_command(command, timeout_seconds=SERVICE_TIMEOUT):
    """Run a command, returning (returncode, stdout, stderr). Never raises."""
    try:
        proc = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout_seconds,
            check=False,
            text=True,
        )
        return proc.returncode, proc.stdout.strip(), proc.stderr.strip()
    except FileNotFoundError:
        return 127, "", f"Command not found: {command[0]}"
    except subprocess.TimeoutExpired:
        return 124, "", f"Timeout ({timeout_seconds}s) running: {' '.join(command)}"
    except OSError as exc:
        return 1, "", f"Error running {' '.join(command)}: {exc}"


def is_service_running(name: str, timeout_seconds=SERVICE_TIMEOUT) -> bool:
    """True when systemd reports *name* as active; any failure counts as not running."""
    code, out, err = run_command(["systemctl", "is-active", name], timeout_seconds)
    if code != 0:
        logger.debug("systemctl is-active %s -> %s %s", name, code, err or out)
        return False
    return out.strip().lower() == "active"


def file_mode(path):
    """Permission bits of *path*, or None when it does not exist."""
    try:
        st = Path(path).stat()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise CollaboratorUnavailable(f"Could not stat {path}: {e}")
    return stat.S_IMODE(st.st_mode)


class SystemProbes:
    """Bundle of host probes handed to the evaluator; tests swap in fakes."""

    def __init__(self, config_path="", service_running=is_service_running,
                 mode_of=file_mode, posix=None):
        self.config_path = str(config_path)
        self.service_running = service_running
        self.mode_of = mode_of
        self.posix = is_posix() if posix is None else posix
