"""
HiveDeploy Utilities

Platform and identity helpers used by commands before any deployment starts.
"""

import socket
from pathlib import Path
from typing import Optional

from hivedeploy.constants import OS_RELEASE_PATH, SUPPORTED_OS_MARKER
from hivedeploy.exceptions import PlatformError


def ensure_supported_os(os_release_path: Optional[Path] = None) -> None:
    """
    Check that we are running on NixOS.

    Raises:
        PlatformError: If the OS identity file is unreadable or names another OS
    """
    path = os_release_path or OS_RELEASE_PATH

    try:
        os_release = path.read_text()
    except OSError as e:
        raise PlatformError(
            f"Could not detect the OS version from {path}",
            context=str(e),
        ) from e

    if SUPPORTED_OS_MARKER not in os_release.splitlines():
        raise PlatformError(
            '"apply-local" only works on NixOS machines',
            context=f"{path} does not contain {SUPPORTED_OS_MARKER}",
        )


def get_hostname() -> str:
    """Hostname of this machine, used as the default node name."""
    return socket.gethostname()
