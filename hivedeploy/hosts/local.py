"""
Local Host

The machine HiveDeploy itself runs on. It may not be capable of realizing
every derivation (e.g. Linux systems on macOS).
"""

from typing import List, Mapping, Optional

from hivedeploy.constants import NIX_ENV_BIN, NIX_STORE_BIN, SYSTEM_PROFILE
from hivedeploy.exceptions import CommandCancelledError
from hivedeploy.hosts.base import CopyDirection, CopyOptions, Host
from hivedeploy.logger import DeployLogger
from hivedeploy.models.goal import DeploymentGoal
from hivedeploy.models.keys import Key
from hivedeploy.models.store import Profile, StorePath, parse_store_paths
from hivedeploy.services.execution_service import CommandExecution, ExecutionGroup
from hivedeploy.services.key_service import KeyInstaller


class LocalHost(Host):
    """Host implementation for the local machine."""

    def __init__(
        self,
        label: str = "local",
        logger: Optional[DeployLogger] = None,
        key_installer: Optional[KeyInstaller] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize local host.

        Args:
            label: Name used to attribute command output
            logger: Optional run logger mirroring command output
            key_installer: Installer used by upload_keys
            timeout: Optional deadline for each external command
        """
        super().__init__(label)
        self.logger = logger
        self.timeout = timeout
        self.executions = ExecutionGroup()
        self.key_installer = key_installer or KeyInstaller(label=label, logger=logger, group=self.executions)

    def copy_closure(self, closure: StorePath, direction: CopyDirection, options: CopyOptions) -> None:
        # Already local
        return None

    def realize(self, derivation: StorePath) -> List[StorePath]:
        execution = self._execution([NIX_STORE_BIN, "--no-gc-warning", "--realise", str(derivation)])
        try:
            self.executions.run(execution)
        finally:
            _, stderr = execution.get_logs()
            self._append_logs(stderr)

        stdout, _ = execution.get_logs()
        return parse_store_paths(stdout)

    def upload_keys(self, keys: Mapping[str, Key]) -> None:
        self._has_run = True
        if self.executions.cancelled:
            raise CommandCancelledError(self.label, "upload keys")
        self.key_installer.install_all(keys, progress=self.progress)

    def activate(self, profile: Profile, goal: DeploymentGoal) -> None:
        if goal.should_switch_profile():
            switch = self._execution([NIX_ENV_BIN, "--profile", SYSTEM_PROFILE, "--set", str(profile)])
            try:
                self.executions.run(switch)
            finally:
                self._append_logs(switch.output)

        execution = self._execution(profile.activation_command(goal))
        try:
            self.executions.run(execution)
        finally:
            self._append_logs(execution.output)

    def cancel(self) -> None:
        self.executions.cancel()

    def _execution(self, command: List[str]) -> CommandExecution:
        execution = CommandExecution(self.label, command, timeout=self.timeout, logger=self.logger)
        if self.progress:
            execution.set_progress(self.progress)
        return execution

    def __repr__(self) -> str:
        return f"LocalHost(label={self.label})"
