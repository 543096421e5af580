"""
HiveDeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .goal import DeploymentGoal
from .store import StorePath, Profile, parse_store_paths
from .keys import Key
from .node import NodeConfig
from .results import ExecutionResult, HostResult, OutputStream

__all__ = [
    # Goal
    "DeploymentGoal",
    # Store
    "StorePath",
    "Profile",
    "parse_store_paths",
    # Keys
    "Key",
    # Nodes
    "NodeConfig",
    # Results
    "ExecutionResult",
    "HostResult",
    "OutputStream",
]
