"""
Key Deployment Service

Installs secret files so that a reader of the destination path only ever
sees the previous file or the complete new one with final ownership and mode.
"""

import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from hivedeploy.constants import CHMOD_BIN, CHOWN_BIN
from hivedeploy.exceptions import HiveDeployError, KeyDeploymentError
from hivedeploy.logger import DeployLogger
from hivedeploy.models.keys import Key
from hivedeploy.services.execution_service import ExecutionGroup, run_command
from hivedeploy.ui_components import ProgressHandle


class KeyInstaller:
    """
    Atomic install of keys on the local filesystem.

    Protocol per key:
    1. Write the payload to a fresh temp file (created mode 0600)
    2. Keep the temp file and take its path
    3. chmod <permissions> and chown <user>:<group> on the temp path
    4. Ensure the destination directory exists
    5. Rename the temp file onto <dest_dir>/<name>

    The temp file is created next to the destination unless scratch_dir is
    given, so the final rename never crosses filesystems. Installing two
    different keys concurrently is safe; instances hold no per-key state.
    """

    def __init__(
        self,
        label: str = "local",
        scratch_dir: Optional[Path] = None,
        chmod_command: str = CHMOD_BIN,
        chown_command: str = CHOWN_BIN,
        logger: Optional[DeployLogger] = None,
        group: Optional[ExecutionGroup] = None,
    ):
        """
        Initialize key installer.

        Args:
            label: Host identifier for command output attribution
            scratch_dir: Where temp files are written (default: destination directory)
            chmod_command: Program used to apply the permission string
            chown_command: Program used to apply user:group ownership
            logger: Optional run logger
            group: Execution group the chmod/chown commands run in (for cancellation)
        """
        self.label = label
        self.scratch_dir = scratch_dir
        self.chmod_command = chmod_command
        self.chown_command = chown_command
        self.logger = logger
        self.group = group

    def install_all(self, keys: Mapping[str, Key], progress: Optional[ProgressHandle] = None) -> None:
        """
        Install every key in order.

        The first failure stops the loop and is raised; keys installed
        before it stay installed.
        """
        for name, key in keys.items():
            self.install(name, key, progress=progress)

    def install(self, name: str, key: Key, progress: Optional[ProgressHandle] = None) -> Path:
        """
        Install a single key.

        Returns:
            Destination path of the installed key

        Raises:
            KeyDeploymentError: If any step failed; nothing is left at the destination
        """
        if progress:
            progress.set_message(f"Deploying key {name}")

        if not name or "/" in name or name in (".", ".."):
            raise KeyDeploymentError(name, ValueError("key names must be plain file names"))

        dest_path = key.dest_path(name)
        temp_path: Optional[Path] = None

        try:
            scratch_dir = self.scratch_dir or key.dest_dir
            scratch_dir.mkdir(parents=True, exist_ok=True)
            temp_path = self._write_temp(name, key.text, scratch_dir)

            run_command(
                self.label, self.chmod_command, [key.permissions, str(temp_path)], logger=self.logger, group=self.group
            )
            run_command(
                self.label, self.chown_command, [key.owner, str(temp_path)], logger=self.logger, group=self.group
            )

            dest_path.parent.mkdir(parents=True, exist_ok=True)
            os.replace(temp_path, dest_path)
            temp_path = None
        except (HiveDeployError, OSError) as e:
            raise KeyDeploymentError(name, e) from e
        finally:
            if temp_path is not None:
                _remove_quietly(temp_path, self.logger)

        if self.logger:
            self.logger.log(f"[{self.label}] Deployed key {name} to {dest_path}")

        return dest_path

    @staticmethod
    def _write_temp(name: str, text: str, scratch_dir: Path) -> Path:
        """Write the payload to a new temp file; mkstemp creates it with mode 0600."""
        fd, raw_path = tempfile.mkstemp(prefix=f".{name}.", suffix=".tmp", dir=scratch_dir)
        path = Path(raw_path)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(text.encode("utf-8"))
                handle.flush()
                os.fsync(handle.fileno())
        except BaseException:
            _remove_quietly(path)
            raise
        return path


def _remove_quietly(path: Path, logger: Optional[DeployLogger] = None) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        if logger:
            logger.log(f"Could not remove temporary key file {path}: {e}", "WARNING")
