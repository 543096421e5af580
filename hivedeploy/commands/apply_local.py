"""
Apply Local Command

Build and activate this machine's own configuration from the hive.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import click

from hivedeploy.base import BaseCommand
from hivedeploy.constants import RELAUNCH_MARKER_FLAG, get_config_path
from hivedeploy.core import Deployment, load_hive
from hivedeploy.exceptions import DeploymentError
from hivedeploy.hosts import LocalHost
from hivedeploy.models import DeploymentGoal, HostResult
from hivedeploy.privilege import (
    EscalationState,
    PrivilegeEscalation,
    PrivilegeLevel,
    current_argv,
    current_privilege_level,
)
from hivedeploy.ui_components import DeploymentProgress
from hivedeploy.utils import ensure_supported_os, get_hostname


@dataclass
class ApplyLocalOptions:
    """Options for apply-local command."""

    goal: DeploymentGoal
    config_path: Path
    sudo: bool = False
    node: Optional[str] = None
    relaunched: bool = False


class ApplyLocalCommand(BaseCommand):
    """
    Apply a configuration on the local machine.

    Flow:
    - Refuse to run anywhere but NixOS
    - Escalate privileges once if asked to
    - Find this machine's node in the hive
    - Run the deployment pipeline against the local host
    """

    def __init__(
        self,
        options: ApplyLocalOptions,
        verbose: bool = False,
        log_dir: Optional[Path] = None,
        os_release_path: Optional[Path] = None,
        argv: Optional[Sequence[str]] = None,
        privilege_probe: Optional[Callable[[], PrivilegeLevel]] = None,
    ):
        """
        Initialize apply-local command.

        Args:
            options: ApplyLocalOptions with configuration
            verbose: Whether to show verbose output
            log_dir: Root directory for the run log
            os_release_path: OS identity file to check (default /etc/os-release)
            argv: argv used for the escalation re-exec (default: our own)
            privilege_probe: Returns the effective privilege level
        """
        super().__init__(verbose=verbose, log_dir=log_dir)
        self.options = options
        self.os_release_path = os_release_path
        self.argv = list(argv) if argv is not None else current_argv()
        self.privilege_probe = privilege_probe or current_privilege_level

    def execute(self) -> None:
        """Execute apply-local command."""
        ensure_supported_os(self.os_release_path)
        self._ensure_privileges()

        hive = load_hive(self.options.config_path)
        node_name = self.options.node or get_hostname()
        goal = self.options.goal

        self.show_header(
            title="Apply Local",
            node=node_name,
            details={"Goal": goal.value, "Hive": self.options.config_path},
        )

        logger = self.init_logger(node_name, "apply-local")

        logger.step("Enumerating nodes")
        node = hive.local_node(node_name)
        logger.success(f"Found {node.name} ({len(node.keys)} key(s))")

        if goal is DeploymentGoal.PUSH:
            logger.warning("push is a no-op locally: the system is only dry-activated")

        logger.step(f"Deploying {node_name}")
        host = LocalHost(label=node_name, logger=logger)

        if self.verbose:
            results = Deployment(hive, {node_name: host}, goal, logger=logger).execute()
        else:
            with DeploymentProgress(console=self.console) as progress:
                results = Deployment(hive, {node_name: host}, goal, progress=progress, logger=logger).execute()

        failed = [result for result in results if not result.success]
        if failed:
            self._dump_failed_logs(failed)
            raise DeploymentError(
                f"Deployment failed on {', '.join(result.node for result in failed)}",
                context="; ".join(f"{result.node}: {result.failed_step}" for result in failed),
            )

        logger.success(f"{node_name} deployed ({goal.value})")
        self.console.print(f"\n[dim]Logs saved to:[/dim] {logger.log_path}\n")

    def _ensure_privileges(self) -> None:
        """Run the one-shot escalation flow; exits with the child's status if we re-ran."""
        escalation = PrivilegeEscalation(
            self.argv,
            sudo_requested=self.options.sudo,
            relaunched=self.options.relaunched,
            privilege_probe=self.privilege_probe,
        )
        outcome = escalation.resolve()

        if outcome.state is EscalationState.UNPRIVILEGED:
            self.print_warning("hivedeploy was not started by root. This is probably not going to work.")
            self.print_dim("Hint: Add the --sudo flag.")
        elif outcome.should_exit:
            raise SystemExit(outcome.exit_code)

    def _dump_failed_logs(self, failed: List[HostResult]) -> None:
        for result in failed:
            if not result.logs:
                continue
            self.console.print(f"\n[bold]Logs for {result.node}:[/bold]")
            self.console.print(result.logs.rstrip(), markup=False, highlight=False)


@click.command("apply-local")
@click.argument(
    "goal",
    type=click.Choice([goal.value for goal in DeploymentGoal]),
    default=DeploymentGoal.SWITCH.value,
)
@click.option("--sudo", is_flag=True, help="Attempt to escalate privileges if not run as root")
@click.option("--node", default=None, help="Override the node name to use")
@click.option(RELAUNCH_MARKER_FLAG, "relaunched", is_flag=True, hidden=True)
@click.pass_context
def apply_local(ctx, goal, sudo, node, relaunched):
    """
    Apply configurations on the local machine

    GOAL is the same as the targets of switch-to-configuration;
    "push" is a no-op in apply-local.

    Examples:
        # Switch to the new configuration
        hivedeploy apply-local --sudo

        # Activate until next reboot, as another node
        hivedeploy apply-local test --node web1
    """
    settings = ctx.obj or {}
    options = ApplyLocalOptions(
        goal=DeploymentGoal.from_str(goal),
        config_path=Path(settings.get("config") or get_config_path()),
        sudo=sudo,
        node=node,
        relaunched=relaunched,
    )
    cmd = ApplyLocalCommand(options, verbose=settings.get("verbose", False))
    cmd.run()
