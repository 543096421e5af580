"""
Deployment Goal

The requested deployment intent, mirroring switch-to-configuration verbs.
"""

from enum import Enum


class DeploymentGoal(Enum):
    """What a deployment should do once the configuration is built."""

    PUSH = "push"
    SWITCH = "switch"
    BOOT = "boot"
    TEST = "test"
    DRY_ACTIVATE = "dry-activate"

    @classmethod
    def from_str(cls, value: str) -> "DeploymentGoal":
        """
        Parse a goal from its command-line spelling.

        Raises:
            ValueError: If the value is not a known goal
        """
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(goal.value for goal in cls)
            raise ValueError(f"Unknown deployment goal '{value}' (valid: {valid})") from None

    def should_switch_profile(self) -> bool:
        """Whether the system profile pointer is moved before activation."""
        return self in (DeploymentGoal.SWITCH, DeploymentGoal.BOOT, DeploymentGoal.TEST)

    @property
    def activation_verb(self) -> str:
        """Argument passed to switch-to-configuration for this goal."""
        # push never changes the running system, so only a dry run is performed
        if self is DeploymentGoal.PUSH:
            return DeploymentGoal.DRY_ACTIVATE.value
        return self.value

    def __str__(self) -> str:
        return self.value
