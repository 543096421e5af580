"""
Privilege Escalation

One-shot check run before any host pipeline starts:

    CHECK_PRIVILEGE ──elevated──────────────────────────▶ PRIVILEGED
          │
          ├─standard, relaunched by sudo──────────────────▶ PrivilegeError (exit 3)
          ├─standard, no --sudo───────────────────────────▶ UNPRIVILEGED (warn, continue)
          └─standard, --sudo──▶ ESCALATING ──child exits──▶ ESCALATED (exit with child status)

The relaunch marker flag appended to the child's argv is what makes the
re-exec happen at most once.
"""

import os
import subprocess
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence

from hivedeploy.constants import ESCALATION_COMMAND, RELAUNCH_MARKER_FLAG
from hivedeploy.exceptions import PrivilegeError


class PrivilegeLevel(Enum):
    """Effective privilege of this process."""

    ELEVATED = "elevated"
    STANDARD = "standard"


def current_privilege_level() -> PrivilegeLevel:
    """Effective-uid check, the only place that asks the OS."""
    return PrivilegeLevel.ELEVATED if os.geteuid() == 0 else PrivilegeLevel.STANDARD


class EscalationState(Enum):
    CHECK_PRIVILEGE = "check-privilege"
    ESCALATING = "escalating"
    PRIVILEGED = "privileged"
    UNPRIVILEGED = "unprivileged"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class EscalationOutcome:
    """Terminal state of the escalation flow."""

    state: EscalationState
    exit_code: Optional[int] = None

    @property
    def should_exit(self) -> bool:
        """True when the escalated child already did the work."""
        return self.state is EscalationState.ESCALATED


def current_argv() -> List[str]:
    """
    argv that re-runs this program.

    Under `python -m` or `python script.py` argv[0] is not executable on its
    own, so the interpreter is put in front.
    """
    argv = list(sys.argv)
    program = argv[0] if argv else ""
    if program.endswith(".py") or not os.access(program, os.X_OK):
        module_run = program.endswith("__main__.py")
        prefix = [sys.executable, "-m", "hivedeploy"] if module_run else [sys.executable, program]
        return prefix + argv[1:]
    return argv


class PrivilegeEscalation:
    """
    Runs the escalation state machine exactly once.

    Usage:
        outcome = PrivilegeEscalation(current_argv(), sudo_requested=True,
                                      relaunched=False).resolve()
        if outcome.should_exit:
            raise SystemExit(outcome.exit_code)
    """

    def __init__(
        self,
        argv: Sequence[str],
        sudo_requested: bool,
        relaunched: bool,
        privilege_probe: Callable[[], PrivilegeLevel] = current_privilege_level,
        escalation_command: str = ESCALATION_COMMAND,
    ):
        self.argv = list(argv)
        self.sudo_requested = sudo_requested
        self.relaunched = relaunched
        self.privilege_probe = privilege_probe
        self.escalation_command = escalation_command
        self.state = EscalationState.CHECK_PRIVILEGE

    def resolve(self) -> EscalationOutcome:
        """
        Drive the flow to a terminal state.

        Raises:
            PrivilegeError: If we were relaunched by sudo and are still unprivileged,
                or the escalation utility could not be run
        """
        if self.state is not EscalationState.CHECK_PRIVILEGE:
            raise RuntimeError(f"escalation flow already finished in state {self.state.value}")

        if self.privilege_probe() is PrivilegeLevel.ELEVATED:
            self.state = EscalationState.PRIVILEGED
            return EscalationOutcome(self.state)

        if self.relaunched:
            raise PrivilegeError(
                "Failed to escalate privileges",
                context="We are still not root despite a successful sudo invocation",
            )

        if not self.sudo_requested:
            self.state = EscalationState.UNPRIVILEGED
            return EscalationOutcome(self.state)

        self.state = EscalationState.ESCALATING
        exit_code = self._relaunch()
        self.state = EscalationState.ESCALATED
        return EscalationOutcome(self.state, exit_code=exit_code)

    def relaunch_command(self) -> List[str]:
        return [self.escalation_command, "--", *self.argv, RELAUNCH_MARKER_FLAG]

    def _relaunch(self) -> int:
        """Run ourselves again under the escalation utility and wait for it."""
        try:
            returncode = subprocess.call(self.relaunch_command())
        except OSError as e:
            raise PrivilegeError(
                f"Failed to run {self.escalation_command} to escalate privileges",
                context=str(e),
            ) from e

        # Killed by a signal: report it the way a shell would
        if returncode < 0:
            return 128 - returncode
        return returncode
