"""
Deployment

Drives one pipeline per target host:
copy closure → realize → upload keys → activate.
Pipelines run concurrently, one worker thread each, and share nothing
but the (thread-safe) progress display and run logger.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, List, Optional

from hivedeploy.core.hive_loader import Hive
from hivedeploy.exceptions import HiveDeployError, ProfileError
from hivedeploy.hosts.base import CopyDirection, CopyOptions, Host
from hivedeploy.logger import DeployLogger
from hivedeploy.models.goal import DeploymentGoal
from hivedeploy.models.results import HostResult
from hivedeploy.models.store import Profile
from hivedeploy.ui_components import DeploymentProgress, ProgressHandle


class Deployment:
    """
    Deploy a goal to a set of hosts.

    Responsibilities:
    - Run each host's steps strictly in order, stopping at the first failure
    - Keep hosts independent: one failure never stops another pipeline
    - Report each failure with host, step, command and captured stderr
    """

    def __init__(
        self,
        hive: Hive,
        targets: Dict[str, Host],
        goal: DeploymentGoal,
        progress: Optional[DeploymentProgress] = None,
        logger: Optional[DeployLogger] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize deployment.

        Args:
            hive: Evaluated hive with every target's node configuration
            targets: Host instance per node name (one pipeline each)
            goal: Deployment goal
            progress: Optional live progress display
            logger: Optional run logger
            max_workers: Upper bound on concurrent pipelines (default: one per host)
        """
        self.hive = hive
        self.targets = targets
        self.goal = goal
        self.progress = progress
        self.logger = logger
        self.max_workers = max_workers

    def execute(self) -> List[HostResult]:
        """Run every pipeline and return the results in target order."""
        if not self.targets:
            return []

        handles: Dict[str, Optional[ProgressHandle]] = {}
        for name, host in self.targets.items():
            handles[name] = self.progress.add_host(name) if self.progress else None
            if handles[name]:
                host.set_progress(handles[name])

        results: Dict[str, HostResult] = {}
        workers = self.max_workers or len(self.targets)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="hivedeploy") as executor:
            futures = {
                executor.submit(self._deploy_host, name, host, handles[name]): name
                for name, host in self.targets.items()
            }
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except BaseException:
                # Ctrl-C lands on this thread; the workers only see their children die
                for future in futures:
                    future.cancel()
                self.cancel()
                raise

        return [results[name] for name in self.targets]

    def cancel(self) -> None:
        """Stop every host pipeline; safe to call from any thread."""
        for host in self.targets.values():
            host.cancel()

    def _deploy_host(self, name: str, host: Host, handle: Optional[ProgressHandle]) -> HostResult:
        step = "evaluate"
        try:
            node = self.hive.get_node(name)

            step = "copy closure"
            self._log(name, handle, f"Copying closure {node.system}")
            host.copy_closure(node.system, CopyDirection.TO_REMOTE, CopyOptions())

            step = "realize"
            self._log(name, handle, f"Realizing {node.system}")
            outputs = host.realize(node.system)
            if not outputs:
                raise ProfileError(f"Realizing {node.system} produced no output paths")
            profile = Profile.from_store_path(outputs[0])

            step = "upload keys"
            if node.keys:
                self._log(name, handle, f"Uploading {len(node.keys)} key(s)")
                host.upload_keys(node.keys)

            step = "activate"
            self._log(name, handle, f"Activating {profile} ({self.goal})")
            host.activate(profile, self.goal)
        except Exception as e:
            if isinstance(e, HiveDeployError):
                message, context = e.message, e.context
            else:
                message, context = f"{type(e).__name__}: {e}", None
            if handle:
                handle.fail(f"Failed to {step}")
            if self.logger:
                self.logger.log_error(f"[{name}] Failed to {step}: {message}", context=context)
            return HostResult(node=name, success=False, failed_step=step, error=e, logs=host.dump_logs())

        if handle:
            handle.succeed(f"Deployed ({self.goal})")
        if self.logger:
            self.logger.log(f"[{name}] Deployment succeeded ({self.goal})")
        return HostResult(node=name, success=True, logs=host.dump_logs())

    def _log(self, name: str, handle: Optional[ProgressHandle], message: str) -> None:
        if handle:
            handle.set_message(message)
        if self.logger:
            self.logger.log(f"[{name}] {message}")
