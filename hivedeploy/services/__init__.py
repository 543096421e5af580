"""
HiveDeploy Services Layer

External command execution and key installation shared by all hosts.
"""

from .execution_service import CommandExecution, ExecutionGroup, run_command
from .key_service import KeyInstaller

__all__ = [
    "CommandExecution",
    "ExecutionGroup",
    "run_command",
    "KeyInstaller",
]
