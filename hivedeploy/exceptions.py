"""
HiveDeploy Exception Hierarchy

Clean exception hierarchy for consistent error handling across the CLI.
Each exception carries the process exit code used by the outermost command.
"""

from typing import Optional

from hivedeploy.constants import (
    EXIT_CONFIGURATION,
    EXIT_FAILURE,
    EXIT_PLATFORM,
    EXIT_PRIVILEGE,
)


class HiveDeployError(Exception):
    """Base exception for all HiveDeploy errors."""

    exit_code = EXIT_FAILURE

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(HiveDeployError):
    """Raised when the hive manifest is invalid or does not describe the target."""

    exit_code = EXIT_CONFIGURATION


class NodeNotFoundError(ConfigurationError):
    """Raised when the requested node is not in the hive."""

    def __init__(self, node: str, available_nodes: list[str]):
        self.node = node
        self.available_nodes = available_nodes
        message = f"Host {node} is not present in the Hive configuration"
        context = f"Available nodes: {', '.join(available_nodes) or '(none)'}"
        super().__init__(message, context)


class LocalDeploymentDisabledError(ConfigurationError):
    """Raised when a node does not allow deploying on itself."""

    def __init__(self, node: str):
        self.node = node
        message = f"Local deployment is not enabled for host {node}"
        context = "Hint: Set deployment.allowLocalDeployment to true"
        super().__init__(message, context)


class PrivilegeError(HiveDeployError):
    """Raised when escalation was attempted and we are still unprivileged."""

    exit_code = EXIT_PRIVILEGE


class PlatformError(HiveDeployError):
    """Raised when the host OS is unsupported or cannot be determined."""

    exit_code = EXIT_PLATFORM


class ExecutionError(HiveDeployError):
    """Raised when an external command cannot be run to a successful exit."""

    def __init__(self, message: str, label: str = "", command: str = "", context: Optional[str] = None):
        self.label = label
        self.command = command
        super().__init__(message, context)


class SpawnError(ExecutionError):
    """Raised when the external program could not be started at all."""

    def __init__(self, label: str, command: str, cause: OSError):
        self.cause = cause
        super().__init__(
            f"Failed to spawn {command.split(' ', 1)[0]}: {cause}",
            label=label,
            command=command,
            context=f"Host: {label}, Command: {command}",
        )


class NonZeroExitError(ExecutionError):
    """Raised when the external program exits with a non-zero status."""

    def __init__(self, label: str, command: str, code: int, stderr: str):
        self.code = code
        self.stderr = stderr
        context = f"Host: {label}, Command: {command}"
        if stderr.strip():
            context += f"\n{stderr.rstrip()}"
        super().__init__(
            f"Child process exited with error code: {code}",
            label=label,
            command=command,
            context=context,
        )


class CommandTimeoutError(ExecutionError):
    """Raised when the external program exceeds its deadline."""

    def __init__(self, label: str, command: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Command timed out after {timeout}s",
            label=label,
            command=command,
            context=f"Host: {label}, Command: {command}",
        )


class CommandCancelledError(ExecutionError):
    """Raised when a running deployment is cancelled before the program finished."""

    def __init__(self, label: str, command: str):
        super().__init__(
            "Command cancelled",
            label=label,
            command=command,
            context=f"Host: {label}, Command: {command}",
        )


class StorePathError(HiveDeployError):
    """Raised when a string is not a valid store path."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid store path {value!r}", context=reason)


class ProfileError(HiveDeployError):
    """Raised when a store path is not an activatable system profile."""


class KeyDeploymentError(HiveDeployError):
    """Raised when a single key could not be installed."""

    def __init__(self, key_name: str, cause: Exception):
        self.key_name = key_name
        self.cause = cause
        context = cause.context if isinstance(cause, HiveDeployError) else None
        super().__init__(f"Failed to deploy key {key_name}: {getattr(cause, 'message', cause)}", context)


class DeploymentError(HiveDeployError):
    """Raised when one or more host pipelines failed."""
